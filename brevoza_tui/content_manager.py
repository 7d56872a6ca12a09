"""Unified content management interface over a GitHub-backed repository.

This module provides ContentManager, which ties the read path (config,
schema, item discovery, content fetch, pagination) and the write path
(proposals and moderation) together behind one object:
- READ operations: list_items, get_item_content
- WRITE operations: create_proposal, approve, reject
Only BrevozaError subclasses escape its methods.
"""

import logging
from typing import Any, List, Mapping, Optional

from . import moderation, proposals
from .collections_config import (
    ChangedFile,
    ChangeRequest,
    CollectionEntry,
    CollectionSchema,
    ItemFile,
    ItemListing,
    ModerationResult,
    ProposalResult,
)
from .errors import BrevozaError, InvalidInput, UpstreamFailure
from .github import GitHubClient
from .items import DEFAULT_MAX_WORKERS, fetch_items, paginate, resolve_items
from .site_loader import DEFAULT_CONFIG_PATH, SiteLoader

logger = logging.getLogger(__name__)


class ContentManager:
    """Content management interface for one repository and branch."""

    # Fields that can be searched
    SEARCHABLE_FIELDS = ["name", "path", "content"]

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repo: str,
        branch: str = "main",
        config_path: str = DEFAULT_CONFIG_PATH,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """Initialize the content manager.

        Args:
            client: Host client
            owner: Repository owner
            repo: Repository name
            branch: Branch to read from and propose against (default: "main")
            config_path: Path of the root config file
            max_workers: Upper bound on concurrent content fetches

        Raises:
            InvalidInput: If owner or repo is missing
        """
        if not owner or not repo:
            raise InvalidInput("Missing required parameters: owner, repo")
        self.client = client
        self.owner = owner
        self.repo = repo
        self.branch = branch or "main"
        self.max_workers = max_workers
        self.loader = SiteLoader(client, owner, repo, self.branch, config_path)

    def _wrap(self, action: str, error: Exception) -> UpstreamFailure:
        logger.exception("Unexpected error while trying to %s", action)
        return UpstreamFailure(f"Failed to {action}: {error}")

    # ====== Collections ======

    def get_collections(self) -> List[CollectionEntry]:
        try:
            return list(self.loader.get_collections().values())
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap("load collections", e) from e

    def get_schema(self, collection: str) -> CollectionSchema:
        try:
            return self.loader.get_schema(collection)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"load schema for {collection}", e) from e

    # ====== Item Operations ======

    def list_items(
        self,
        collection: str,
        page: int = 1,
        limit: int = 50,
        include_content: bool = False,
        search: str = "",
    ) -> ItemListing:
        """List one page of a collection's items.

        The full item set is always resolved first, then filtered by
        ``search`` and sliced, so totals describe the filtered set.

        Args:
            collection: Collection name
            page: 1-based page number (default: 1)
            limit: Items per page (default: 50)
            include_content: Fetch file contents as well (default: False)
            search: Case-insensitive filter over name, path and (when fetched) content

        Returns:
            The page of items with pagination info

        Raises:
            InvalidInput: If collection is empty or page/limit are below 1
            NotFound: If the config, collection, schema or items directory is missing
            UpstreamFailure: If the host fails
        """
        if not collection:
            raise InvalidInput("Missing required parameter: collection")
        if page < 1 or limit < 1:
            raise InvalidInput("page and limit must be >= 1")

        try:
            schema_text = self.loader.get_schema_text(collection)
            resolved = resolve_items(
                self.client, self.owner, self.repo, self.branch, collection, schema_text
            )
            result = fetch_items(
                self.client,
                self.owner,
                self.repo,
                self.branch,
                resolved,
                include_content=include_content,
                max_workers=self.max_workers,
            )
            matched = self.search_items(result.items, search)
            page_items, pagination = paginate(matched, page, limit)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"fetch collection items for {collection}", e) from e

        return ItemListing(collection=collection, items=page_items, pagination=pagination)

    def get_item_content(self, path: str) -> str:
        """Get the raw content of a single file.

        Raises:
            InvalidInput: If path is empty
            NotFound: If the file does not exist on the branch
        """
        if not path:
            raise InvalidInput("Missing required parameter: path")
        try:
            return self.loader.read_text(path)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"fetch file content for {path}", e) from e

    def search_items(self, items: List[ItemFile], search_term: str) -> List[ItemFile]:
        """Filter items by a case-insensitive substring.

        Args:
            items: Items to search
            search_term: Term to search for

        Returns:
            Matching items, in their original order
        """
        if not search_term:
            return items

        search_lower = search_term.lower()
        filtered = []

        for item in items:
            for attr in self.SEARCHABLE_FIELDS:
                value = getattr(item, attr, None)
                if value and search_lower in str(value).lower():
                    filtered.append(item)
                    break

        return filtered

    # ====== Proposal Operations ======

    def create_proposal(
        self,
        collection: str,
        item_data: Mapping[str, Any],
        target_path: Optional[str] = None,
        branch_name: Optional[str] = None,
    ) -> ProposalResult:
        """Propose a new item as a pull request against the current branch.

        Args:
            collection: Collection name
            item_data: Submitted form data
            target_path: File path (computed from the storage descriptor if omitted)
            branch_name: Branch to create (generated if omitted)

        Returns:
            URL and number of the pull request

        Raises:
            InvalidInput: If a required value is missing
            NotFound: If the collection or base branch is missing
            Conflict: If the branch or file already exists
            UpstreamFailure: If the host fails
        """
        if not collection or not item_data:
            raise InvalidInput("Missing required parameters: collectionName, itemData")

        try:
            schema = self.loader.get_schema(collection)
            return proposals.create_proposal(
                self.client,
                self.owner,
                self.repo,
                collection,
                item_data,
                target_path or proposals.build_target_path(schema, collection, item_data),
                base_branch=self.branch,
                branch_name=branch_name,
                fmt=schema.storage.format,
                schema=schema,
            )
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"create proposal for {collection}", e) from e

    # ====== Moderation Operations ======

    def list_proposals(self, state: str = "open") -> List[ChangeRequest]:
        try:
            return moderation.list_proposals(self.client, self.owner, self.repo, state)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap("list proposals", e) from e

    def get_proposal_files(self, pr_number: int) -> List[ChangedFile]:
        try:
            return moderation.get_proposal_files(self.client, self.owner, self.repo, pr_number)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"load files for proposal #{pr_number}", e) from e

    def approve(self, pr_number: int) -> ModerationResult:
        try:
            return moderation.approve(self.client, self.owner, self.repo, pr_number)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"approve proposal #{pr_number}", e) from e

    def reject(self, pr_number: int) -> ModerationResult:
        try:
            return moderation.reject(self.client, self.owner, self.repo, pr_number)
        except BrevozaError:
            raise
        except Exception as e:
            raise self._wrap(f"reject proposal #{pr_number}", e) from e
