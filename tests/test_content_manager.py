"""Tests for ContentManager, the facade over the read and write paths.

Tests cover:
- list_items end to end against a fake repository
- Search over loaded items
- Proposals computed from the collection's storage descriptor
- Unexpected exceptions wrapped as UpstreamFailure
"""

from unittest.mock import Mock

import pytest

from brevoza_tui.collections_config import ChangeRequest, DirectoryEntry, ItemFile
from brevoza_tui.content_manager import ContentManager
from brevoza_tui.errors import (
    BrevozaError,
    ErrorKind,
    InvalidInput,
    NotFound,
    UpstreamFailure,
)
from brevoza_tui.github import GitHubClient


# ============================================================================
# Fixtures
# ============================================================================


POSTS = [f"post-{i:02d}.json" for i in range(12)]


@pytest.fixture
def repo_files():
    files = {
        "brevoza.config.yml": (
            "collections:\n"
            "  posts:\n"
            "    config: collections/posts.yml\n"
            "  pages:\n"
            "    config: collections/pages.yml\n"
        ),
        "collections/posts.yml": (
            "schema:\n"
            "  properties:\n"
            "    slug:\n"
            "      type: string\n"
            "    title:\n"
            "      type: string\n"
            "  required:\n"
            "    - title\n"
            "storage:\n"
            "  path: content/posts/\n"
            "  format: yaml\n"
            "  idField: slug\n"
        ),
        "collections/pages.yml": "schema:\n  properties:\n    title:\n      type: string\n",
    }
    for name in POSTS:
        files[f"content/posts/{name}"] = f'{{"title": "{name}"}}'
    return files


@pytest.fixture
def mock_client(repo_files):
    """Host client double backed by an in-memory file tree."""
    client = Mock(spec=GitHubClient)

    def get_file_content(owner, repo, ref, path):
        if path not in repo_files:
            raise NotFound(f"file '{path}' not found")
        return repo_files[path].encode("utf-8")

    def list_directory(owner, repo, ref, path):
        prefix = path.rstrip("/") + "/"
        names = sorted(p[len(prefix):] for p in repo_files if p.startswith(prefix))
        if not names:
            raise NotFound(f"directory '{path}' not found")
        return [DirectoryEntry(name=n, path=prefix + n) for n in names if "/" not in n]

    client.get_file_content.side_effect = get_file_content
    client.list_directory.side_effect = list_directory
    client.get_branch_head_commit.return_value = "abcdef0123"
    client.open_change_request.return_value = ChangeRequest(
        number=3, title="Add new posts: hi", url="https://github.com/acme/site/pull/3", state="open"
    )
    return client


@pytest.fixture
def manager(mock_client):
    return ContentManager(mock_client, "acme", "site", branch="main", max_workers=4)


# ============================================================================
# Construction
# ============================================================================


class TestConstruction:
    @pytest.mark.parametrize("owner,repo", [("", "site"), ("acme", ""), (None, None)])
    def test_owner_and_repo_required(self, mock_client, owner, repo):
        with pytest.raises(InvalidInput):
            ContentManager(mock_client, owner, repo)


# ============================================================================
# Read path
# ============================================================================


class TestListItems:
    """Test listing collections and items."""

    def test_get_collections(self, manager):
        assert [c.name for c in manager.get_collections()] == ["posts", "pages"]

    def test_items_found_through_storage_path_hint(self, manager, mock_client):
        listing = manager.list_items("posts", page=1, limit=5)

        assert listing.collection == "posts"
        assert [item.name for item in listing.items] == POSTS[:5]
        assert mock_client.list_directory.call_args_list[0].args[3] == "content/posts"

    def test_pagination_over_full_set(self, manager):
        listing = manager.list_items("posts", page=3, limit=5)

        assert [item.name for item in listing.items] == POSTS[10:]
        assert listing.pagination.total_count == 12
        assert listing.pagination.total_pages == 3
        assert listing.pagination.has_next_page is False
        assert listing.pagination.has_previous_page is True

    def test_metadata_only_by_default(self, manager, mock_client):
        listing = manager.list_items("posts")

        assert all(item.content is None and item.error is None for item in listing.items)
        fetched = [call.args[3] for call in mock_client.get_file_content.call_args_list]
        assert fetched == ["brevoza.config.yml", "collections/posts.yml"]

    def test_include_content(self, manager):
        listing = manager.list_items("posts", limit=2, include_content=True)
        assert listing.items[0].content == '{"title": "post-00.json"}'

    def test_partial_failure_is_data(self, manager, repo_files, mock_client):
        original = mock_client.get_file_content.side_effect

        def flaky(owner, repo, ref, path):
            if path.endswith("post-03.json"):
                raise UpstreamFailure("timeout")
            return original(owner, repo, ref, path)

        mock_client.get_file_content.side_effect = flaky

        listing = manager.list_items("posts", limit=50, include_content=True)

        assert listing.pagination.total_count == 12
        assert listing.items[3].error == "timeout"
        assert listing.items[4].content is not None

    def test_search_spans_every_page(self, manager):
        """Filtering happens before slicing, so totals describe the matches."""
        listing = manager.list_items("posts", page=1, limit=5, search="POST-1")

        assert [item.name for item in listing.items] == ["post-10.json", "post-11.json"]
        assert listing.pagination.total_count == 2
        assert listing.pagination.total_pages == 1
        assert listing.pagination.has_next_page is False

    def test_search_without_matches(self, manager):
        listing = manager.list_items("posts", search="nothing-like-this")

        assert listing.items == []
        assert listing.pagination.total_count == 0

    def test_unknown_collection(self, manager):
        with pytest.raises(NotFound, match="Collection 'authors' not found"):
            manager.list_items("authors")

    def test_no_items_directory(self, manager):
        with pytest.raises(NotFound, match="no items directory found for collection 'pages'"):
            manager.list_items("pages")

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0)])
    def test_invalid_page(self, manager, mock_client, page, limit):
        with pytest.raises(InvalidInput):
            manager.list_items("posts", page=page, limit=limit)

        mock_client.get_file_content.assert_not_called()

    def test_get_item_content(self, manager):
        assert manager.get_item_content("content/posts/post-01.json") == '{"title": "post-01.json"}'

    def test_get_item_content_requires_path(self, manager):
        with pytest.raises(InvalidInput):
            manager.get_item_content("")


class TestSearchItems:
    """Test filtering loaded items."""

    @pytest.fixture
    def items(self):
        return [
            ItemFile(name="hello.json", path="posts/hello.json", content='{"title": "Greeting"}'),
            ItemFile(name="world.json", path="posts/world.json"),
            ItemFile(name="about.json", path="pages/about.json", error="boom"),
        ]

    def test_empty_term_returns_everything(self, manager, items):
        assert manager.search_items(items, "") == items

    def test_matches_name_path_and_content(self, manager, items):
        assert [i.name for i in manager.search_items(items, "WORLD")] == ["world.json"]
        assert [i.name for i in manager.search_items(items, "pages/")] == ["about.json"]
        assert [i.name for i in manager.search_items(items, "greeting")] == ["hello.json"]

    def test_errors_are_not_searched(self, manager, items):
        assert manager.search_items(items, "boom") == []


# ============================================================================
# Write path
# ============================================================================


class TestCreateProposal:
    """Test proposals through the facade."""

    def test_target_path_from_storage(self, manager, mock_client):
        result = manager.create_proposal("posts", {"slug": "hi", "title": "Hi"}, branch_name="b")

        assert result.pr_number == 3
        assert result.target_path == "content/posts/hi.yml"
        content = mock_client.create_file.call_args.args[4].decode("utf-8")
        assert content == "slug: hi\ntitle: Hi\n"

    def test_explicit_target_path(self, manager):
        result = manager.create_proposal(
            "posts", {"slug": "hi"}, target_path="elsewhere/hi.yml", branch_name="b"
        )
        assert result.target_path == "elsewhere/hi.yml"

    def test_empty_item_is_rejected(self, manager, mock_client):
        with pytest.raises(InvalidInput):
            manager.create_proposal("posts", {})

        mock_client.create_branch.assert_not_called()


class TestModeration:
    def test_approve_and_reject_delegate(self, manager, mock_client):
        mock_client.get_change_request.return_value = ChangeRequest(
            number=3, title="t", url="u", state="open"
        )
        mock_client.merge_change_request.return_value = True

        assert manager.approve(3).status == "merged"
        assert manager.reject(3).status == "closed"

    def test_list_proposals(self, manager, mock_client):
        mock_client.list_change_requests.return_value = []
        assert manager.list_proposals("closed") == []
        mock_client.list_change_requests.assert_called_once_with("acme", "site", "closed")


# ============================================================================
# Error wrapping
# ============================================================================


class TestErrorWrapping:
    """Only BrevozaError subclasses escape the facade."""

    def test_unexpected_exception_is_wrapped(self, manager, mock_client):
        mock_client.get_file_content.side_effect = RuntimeError("socket closed")

        with pytest.raises(UpstreamFailure) as exc_info:
            manager.get_collections()

        assert exc_info.value.kind is ErrorKind.UPSTREAM_FAILURE
        assert "Failed to load collections: socket closed" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_structured_errors_pass_through(self, manager, mock_client):
        mock_client.list_change_requests.side_effect = NotFound("repository not found")

        with pytest.raises(NotFound) as exc_info:
            manager.list_proposals()

        assert exc_info.value.to_dict() == {"kind": "not_found", "message": "repository not found"}

    def test_every_operation_raises_brevoza_errors(self, manager, mock_client):
        for method in ("get_change_request", "list_change_request_files", "list_change_requests"):
            getattr(mock_client, method).side_effect = KeyError("number")

        for call in (
            lambda: manager.approve(1),
            lambda: manager.reject(1),
            lambda: manager.get_proposal_files(1),
            lambda: manager.list_proposals(),
        ):
            with pytest.raises(BrevozaError):
                call()
