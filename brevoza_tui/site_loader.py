"""Loads the brevoza configuration of a repository and its collections.

This module reads ``brevoza.config.yml`` and the per-collection config files
straight from the host on every call. Nothing is cached: callers that want
a short-lived cache keep one at their own boundary.
"""

import logging
from typing import Dict, List, Optional

from .collections_config import CollectionEntry, CollectionSchema
from .config_parser import parse_collections, parse_schema
from .errors import NotFound
from .github import GitHubClient

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "brevoza.config.yml"


class SiteLoader:
    """Reads a repository's collection declarations and schemas.

    All repository coordinates are explicit; the loader never consults the
    environment.
    """

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repo: str,
        branch: str = "main",
        config_path: str = DEFAULT_CONFIG_PATH,
    ):
        """Initialize the loader.

        Args:
            client: Host client used for every read
            owner: Repository owner
            repo: Repository name
            branch: Branch to read from (default: "main")
            config_path: Path of the root config file in the repository
        """
        self.client = client
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.config_path = config_path

    def read_text(self, path: str) -> str:
        """Read a text file from the repository.

        Raises:
            NotFound: If the file does not exist on the branch
        """
        raw = self.client.get_file_content(self.owner, self.repo, self.branch, path)
        return raw.decode("utf-8", errors="replace")

    def load_config_text(self) -> str:
        """Return the raw text of the root config file.

        Raises:
            NotFound: If the config file is missing
        """
        try:
            return self.read_text(self.config_path)
        except NotFound as e:
            raise NotFound(
                f"{self.config_path} not found in {self.owner}/{self.repo}@{self.branch}. "
                "Add a config file declaring your collections."
            ) from e

    def get_collections(self) -> Dict[str, CollectionEntry]:
        """Get all declared collections.

        Returns:
            Dictionary mapping collection names to entries, in declaration order
        """
        entries = parse_collections(self.load_config_text())
        return {entry.name: entry for entry in entries}

    def get_collection(self, name: str) -> Optional[CollectionEntry]:
        """Get a specific collection by name, or None if it is not declared."""
        return self.get_collections().get(name)

    def get_collection_names(self) -> List[str]:
        return list(self.get_collections().keys())

    def require_collection(self, name: str) -> CollectionEntry:
        """Like get_collection, but raises NotFound for unknown names."""
        entry = self.get_collection(name)
        if entry is None:
            raise NotFound(f"Collection '{name}' not found in {self.config_path}")
        return entry

    def get_schema_text(self, name: str) -> str:
        """Return the raw config text of a collection.

        Raises:
            NotFound: If the collection, its config path or the file is missing
        """
        entry = self.require_collection(name)
        if not entry.config_path:
            raise NotFound(f"Collection '{name}' has no config file specified")
        logger.debug("Loading config for %s from %s", name, entry.config_path)
        return self.read_text(entry.config_path)

    def get_schema(self, name: str) -> CollectionSchema:
        """Parse the config of a collection into a schema."""
        schema = parse_schema(self.get_schema_text(name))
        missing = schema.missing_required_properties()
        if missing:
            logger.warning("Collection %s requires undeclared fields: %s", name, ", ".join(missing))
        return schema
