"""Turn a submitted item into a pull request.

The write path is a strict sequence of host calls (read base head, create
branch, create file, open pull request). Nothing is retried and nothing is
rolled back: if a later step fails the new branch stays on the host.
"""

import json
import logging
import time
from typing import Any, Dict, Mapping, Optional

import frontmatter
import yaml

from .collections_config import SUPPORTED_FORMATS, CollectionSchema, ProposalResult
from .errors import BrevozaError, InvalidInput
from .github import GitHubClient

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {"json": ".json", "yaml": ".yml", "markdown": ".md"}
FENCE_LANGUAGES = {"json": "json", "yaml": "yaml", "markdown": "markdown"}

# Body field candidates for markdown items when the schema has no markdown field
BODY_FIELDS = ("body", "content")


def item_label(item_data: Mapping[str, Any]) -> str:
    """Short identifier used in commit messages and titles."""
    return str(item_data.get("id") or item_data.get("name") or "new-item")


def default_branch_name(collection_name: str, now: Optional[float] = None) -> str:
    """Generate a branch name with a millisecond timestamp suffix."""
    timestamp = int((time.time() if now is None else now) * 1000)
    return f"add-{collection_name}-item-{timestamp}"


def build_target_path(
    schema: CollectionSchema, collection_name: str, item_data: Mapping[str, Any]
) -> str:
    """Compute where a new item is written from the storage descriptor.

    Args:
        schema: The collection schema
        collection_name: Name of the collection
        item_data: Submitted form data

    Returns:
        Repo-relative path such as ``posts/my-post.json``
    """
    storage = schema.storage
    item_id = str(item_data.get(storage.id_field) or "").strip() or "new-item"
    extension = FORMAT_EXTENSIONS.get(storage.format, ".json")
    return f"{storage.directory_for(collection_name)}{item_id}{extension}"


def _markdown_body_field(item_data: Mapping[str, Any], schema: Optional[CollectionSchema]) -> Optional[str]:
    if schema:
        for name, spec in schema.properties.items():
            if spec.type == "markdown" and name in item_data:
                return name
    for name in BODY_FIELDS:
        if name in item_data:
            return name
    return None


def serialize_item(
    item_data: Mapping[str, Any], fmt: str = "json", schema: Optional[CollectionSchema] = None
) -> str:
    """Serialize form data into the collection's storage format.

    Raises:
        InvalidInput: If the format is not supported
    """
    if fmt == "json":
        return json.dumps(dict(item_data), indent=2, ensure_ascii=False)
    if fmt == "yaml":
        return yaml.safe_dump(dict(item_data), sort_keys=False, allow_unicode=True)
    if fmt == "markdown":
        metadata: Dict[str, Any] = dict(item_data)
        body_field = _markdown_body_field(item_data, schema)
        body = str(metadata.pop(body_field, "")) if body_field else ""
        post = frontmatter.Post(body)
        post.metadata.update(metadata)
        return frontmatter.dumps(post)
    raise InvalidInput(
        f"Unsupported storage format '{fmt}'. Supported: {', '.join(SUPPORTED_FORMATS)}"
    )


def proposal_body(collection_name: str, target_path: str, file_content: str, fmt: str = "json") -> str:
    """Pull request description shown to reviewers."""
    fence = FENCE_LANGUAGES.get(fmt, "")
    return (
        f"This PR adds a new item to the **{collection_name}** collection.\n\n"
        f"**File:** `{target_path}`\n\n"
        f"**Data:**\n```{fence}\n{file_content.rstrip()}\n```"
    )


def create_proposal(
    client: GitHubClient,
    owner: str,
    repo: str,
    collection_name: str,
    item_data: Mapping[str, Any],
    target_path: str,
    base_branch: str = "main",
    branch_name: Optional[str] = None,
    fmt: str = "json",
    schema: Optional[CollectionSchema] = None,
) -> ProposalResult:
    """Create a branch, write the item on it and open a pull request.

    Args:
        client: Host client
        owner: Repository owner
        repo: Repository name
        collection_name: Collection the item belongs to
        item_data: Submitted form data
        target_path: Repo-relative path of the new file
        base_branch: Branch the pull request targets (default: "main")
        branch_name: Branch to create (generated when omitted)
        fmt: Storage format of the new file (default: "json")
        schema: Collection schema, used to pick the markdown body field

    Returns:
        URL and number of the opened pull request

    Raises:
        InvalidInput: If a required parameter is missing (no host call is made)
        NotFound: If the base branch does not exist
        Conflict: If the branch or the file already exists
        UpstreamFailure: If a host call fails
    """
    missing = [
        label
        for label, value in (
            ("owner", owner),
            ("repo", repo),
            ("collectionName", collection_name),
            ("itemData", item_data),
            ("targetPath", target_path),
        )
        if not value
    ]
    if missing:
        raise InvalidInput(f"Missing required parameters: {', '.join(missing)}")

    base_branch = base_branch or "main"
    file_content = serialize_item(item_data, fmt, schema)
    branch_name = branch_name or default_branch_name(collection_name)
    label = item_label(item_data)

    base_sha = client.get_branch_head_commit(owner, repo, base_branch)
    client.create_branch(owner, repo, branch_name, base_sha)
    logger.info("Created branch %s from %s@%s", branch_name, base_branch, base_sha[:7])

    try:
        client.create_file(
            owner,
            repo,
            branch_name,
            target_path,
            file_content.encode("utf-8"),
            f"Add new {collection_name} item: {label}",
        )
        change_request = client.open_change_request(
            owner,
            repo,
            head=branch_name,
            base=base_branch,
            title=f"Add new {collection_name}: {label}",
            body=proposal_body(collection_name, target_path, file_content, fmt),
        )
    except BrevozaError as e:
        logger.warning(
            "Proposal for %s failed after creating branch %s; branch left on host: %s",
            collection_name,
            branch_name,
            e.message,
        )
        raise

    logger.info("Opened pull request #%d for %s", change_request.number, target_path)
    return ProposalResult(
        pr_url=change_request.url,
        pr_number=change_request.number,
        branch_name=branch_name,
        target_path=target_path,
    )
