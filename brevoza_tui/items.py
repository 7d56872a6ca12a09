"""Item discovery, content fetching and in-memory pagination.

The backing repository has no pagination primitive, so a collection is
always resolved in full and then sliced. Directory discovery probes an
ordered list of guessed paths and stops at the first non-empty listing.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .collections_config import ItemFile, Pagination
from .errors import BrevozaError, InvalidInput, NotFound
from .github import GitHubClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

# Probed after any hint from the schema, in this order
FALLBACK_DIRECTORIES = (
    "collections/{name}",
    "{name}",
    "content/{name}",
    "data/{name}",
    "_collections/{name}",
)

_DIRECTORY_HINT = re.compile(
    r"^[ \t]*(?:items_dir|items-directory|folder|path|dir)[ \t]*:[ \t]*(\S.*?)[ \t]*$",
    re.MULTILINE,
)


@dataclass
class FetchResult:
    items: List[ItemFile]
    total_count: int


def directory_hint(schema_text: Optional[str]) -> Optional[str]:
    """Extract the first items-directory hint from a collection config."""
    if not schema_text:
        return None
    match = _DIRECTORY_HINT.search(schema_text)
    if not match:
        return None
    hint = match.group(1).split(" #", 1)[0].strip().strip("'\"").strip("/")
    return hint or None


def candidate_paths(collection_name: str, schema_text: Optional[str] = None) -> List[str]:
    """Build the ordered list of directories to probe for a collection.

    Args:
        collection_name: Name of the collection
        schema_text: Raw collection config, searched for a directory hint

    Returns:
        Candidate paths without duplicates, hint first
    """
    candidates: List[str] = []
    hint = directory_hint(schema_text)
    if hint:
        candidates.append(hint)
    for template in FALLBACK_DIRECTORIES:
        path = template.format(name=collection_name)
        if path not in candidates:
            candidates.append(path)
    return candidates


def resolve_items(
    client: GitHubClient,
    owner: str,
    repo: str,
    branch: str,
    collection_name: str,
    schema_text: Optional[str] = None,
) -> List[ItemFile]:
    """Find the items directory of a collection and list its files.

    Candidates are probed strictly in order; the first one whose listing is
    non-empty wins and later candidates are never queried. A missing
    directory and an empty one are treated the same.

    Raises:
        NotFound: If no candidate yields entries
        UpstreamFailure: If the host fails for a reason other than absence
    """
    for path in candidate_paths(collection_name, schema_text):
        try:
            entries = client.list_directory(owner, repo, branch, path)
        except NotFound:
            logger.debug("No items directory at %s for %s", path, collection_name)
            continue
        if not entries:
            logger.debug("Empty items directory at %s for %s", path, collection_name)
            continue

        logger.debug("Resolved items for %s at %s (%d entries)", collection_name, path, len(entries))
        return [
            ItemFile(name=entry.name, path=entry.path)
            for entry in entries
            if entry.kind == "file"
        ]

    raise NotFound(f"no items directory found for collection '{collection_name}'")


def _fetch_one(
    client: GitHubClient, owner: str, repo: str, branch: str, item: ItemFile
) -> ItemFile:
    try:
        raw = client.get_file_content(owner, repo, branch, item.path)
    except BrevozaError as e:
        logger.warning("Failed to fetch %s: %s", item.path, e.message)
        return ItemFile(name=item.name, path=item.path, error=e.message)
    return ItemFile(name=item.name, path=item.path, content=raw.decode("utf-8", errors="replace"))


def fetch_items(
    client: GitHubClient,
    owner: str,
    repo: str,
    branch: str,
    items: Sequence[ItemFile],
    include_content: bool = False,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> FetchResult:
    """Optionally fetch the content of every item.

    In metadata-only mode the items are returned untouched. Otherwise all
    files are fetched through a bounded worker pool; a failed file gets its
    ``error`` set instead of failing the batch. Output order matches input.
    """
    items = list(items)
    if not include_content or not items:
        return FetchResult(items=items, total_count=len(items))

    pool = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items))))
    try:
        futures = [pool.submit(_fetch_one, client, owner, repo, branch, item) for item in items]
        fetched = [future.result() for future in futures]
    except BaseException:
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)

    failures = sum(1 for item in fetched if item.error is not None)
    if failures:
        logger.warning("%d of %d items failed to fetch", failures, len(fetched))
    return FetchResult(items=fetched, total_count=len(fetched))


def paginate(
    items: Sequence[ItemFile], page: int = 1, limit: int = 50
) -> Tuple[List[ItemFile], Pagination]:
    """Slice a fully resolved item set into one page.

    Raises:
        InvalidInput: If page or limit is below 1
    """
    if page < 1:
        raise InvalidInput(f"page must be >= 1 (got {page})")
    if limit < 1:
        raise InvalidInput(f"limit must be >= 1 (got {limit})")

    start = (page - 1) * limit
    return list(items[start:start + limit]), Pagination(
        page=page, limit=limit, total_count=len(items)
    )
