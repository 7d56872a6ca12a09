"""Approve (merge) or reject (close) proposals, and inspect them for review."""

import logging
from typing import List

from .collections_config import ChangedFile, ChangeRequest, ModerationResult
from .errors import AlreadyClosed, InvalidInput, MergeBlocked
from .github import CHANGE_REQUEST_STATES, GitHubClient

logger = logging.getLogger(__name__)


def _require_open(client: GitHubClient, owner: str, repo: str, pr_number: int) -> ChangeRequest:
    change_request = client.get_change_request(owner, repo, pr_number)
    if not change_request.is_open:
        raise AlreadyClosed(f"Pull request #{pr_number} is already {change_request.state}.")
    return change_request


def _check_target(owner: str, repo: str, pr_number: int) -> None:
    if not owner or not repo or not pr_number:
        raise InvalidInput("Missing required parameters: owner, repo, prNumber")


def approve(client: GitHubClient, owner: str, repo: str, pr_number: int) -> ModerationResult:
    """Merge an open pull request into its base branch.

    Raises:
        InvalidInput: If a parameter is missing
        NotFound: If the pull request does not exist
        AlreadyClosed: If the pull request is merged or closed
        MergeBlocked: If the host refuses the merge
    """
    _check_target(owner, repo, pr_number)
    _require_open(client, owner, repo, pr_number)

    if not client.merge_change_request(owner, repo, pr_number):
        raise MergeBlocked(f"Pull request #{pr_number} was not merged.")

    logger.info("Merged pull request #%d in %s/%s", pr_number, owner, repo)
    return ModerationResult(pr_number=pr_number, status="merged", message="Pull request merged")


def reject(client: GitHubClient, owner: str, repo: str, pr_number: int) -> ModerationResult:
    """Close an open pull request without merging it.

    Raises:
        InvalidInput: If a parameter is missing
        NotFound: If the pull request does not exist
        AlreadyClosed: If the pull request is merged or closed
    """
    _check_target(owner, repo, pr_number)
    _require_open(client, owner, repo, pr_number)

    client.close_change_request(owner, repo, pr_number)
    logger.info("Closed pull request #%d in %s/%s", pr_number, owner, repo)
    return ModerationResult(
        pr_number=pr_number, status="closed", message="Pull request rejected and closed"
    )


def list_proposals(
    client: GitHubClient, owner: str, repo: str, state: str = "open"
) -> List[ChangeRequest]:
    """List pull requests, newest first."""
    if not owner or not repo:
        raise InvalidInput("Missing required parameters: owner, repo")
    if state not in CHANGE_REQUEST_STATES:
        raise InvalidInput(
            f"Invalid state '{state}'. Expected one of: {', '.join(CHANGE_REQUEST_STATES)}"
        )
    return client.list_change_requests(owner, repo, state)


def get_proposal_files(
    client: GitHubClient, owner: str, repo: str, pr_number: int
) -> List[ChangedFile]:
    """Files touched by a pull request, with their patches."""
    _check_target(owner, repo, pr_number)
    return client.list_change_request_files(owner, repo, pr_number)


def classify_diff_line(line: str) -> str:
    """Classify a unified diff line for display."""
    if line.startswith("+") and not line.startswith("+++"):
        return "addition"
    if line.startswith("-") and not line.startswith("---"):
        return "deletion"
    if line.startswith("@@"):
        return "hunk"
    return "context"
