"""Tests for turning submitted items into pull requests.

Tests cover:
- Target path computation from the storage descriptor
- Serialization to json, yaml and markdown
- The create_proposal call sequence and its failure modes
"""

import json
from unittest.mock import Mock

import frontmatter
import pytest
import yaml

from brevoza_tui.collections_config import (
    ChangeRequest,
    CollectionSchema,
    FieldSpec,
    StorageSpec,
)
from brevoza_tui.errors import Conflict, InvalidInput, NotFound
from brevoza_tui.github import GitHubClient
from brevoza_tui.proposals import (
    build_target_path,
    create_proposal,
    default_branch_name,
    item_label,
    proposal_body,
    serialize_item,
)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def client():
    """Host client double that accepts every write."""
    client = Mock(spec=GitHubClient)
    client.get_branch_head_commit.return_value = "0123456789abcdef"
    client.open_change_request.return_value = ChangeRequest(
        number=42,
        title="Add new posts: hello",
        url="https://github.com/o/r/pull/42",
        state="open",
    )
    return client


@pytest.fixture
def item():
    return {"id": "hello", "title": "Hello", "body": "# Hi\n\nThere."}


def host_calls(client):
    return [name for name, _args, _kwargs in client.mock_calls]


# ============================================================================
# Paths, labels and names
# ============================================================================


class TestTargetPath:
    """Test where new items are written."""

    def test_default_storage(self, item):
        assert build_target_path(CollectionSchema(), "posts", item) == "posts/hello.json"

    def test_storage_path_and_format(self, item):
        schema = CollectionSchema(storage=StorageSpec(path="content/blog", format="markdown"))
        assert build_target_path(schema, "posts", item) == "content/blog/hello.md"

    def test_custom_id_field(self):
        schema = CollectionSchema(storage=StorageSpec(format="yaml", id_field="slug"))
        assert build_target_path(schema, "posts", {"slug": "a-b"}) == "posts/a-b.yml"

    def test_missing_id_uses_placeholder(self):
        assert build_target_path(CollectionSchema(), "posts", {"title": "x"}) == "posts/new-item.json"


class TestLabels:
    """Test commit and branch naming helpers."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"id": "a", "name": "b"}, "a"),
            ({"name": "b"}, "b"),
            ({"title": "c"}, "new-item"),
        ],
    )
    def test_item_label(self, data, expected):
        assert item_label(data) == expected

    def test_default_branch_name_uses_milliseconds(self):
        assert default_branch_name("posts", now=1700000000.5) == "add-posts-item-1700000000500"


# ============================================================================
# Serialization
# ============================================================================


class TestSerializeItem:
    """Test serialization into the storage formats."""

    def test_json_is_pretty_printed(self, item):
        text = serialize_item(item, "json")
        assert text.startswith('{\n  "id": "hello"')
        assert json.loads(text) == item

    def test_json_keeps_unicode(self):
        assert "café" in serialize_item({"title": "café"}, "json")

    def test_yaml_keeps_key_order(self, item):
        text = serialize_item(item, "yaml")
        assert text.splitlines()[0] == "id: hello"
        assert yaml.safe_load(text) == item

    def test_markdown_uses_schema_markdown_field_as_body(self):
        schema = CollectionSchema(
            properties={"title": FieldSpec(), "text": FieldSpec(type="markdown")}
        )
        text = serialize_item({"title": "Hi", "text": "Body here"}, "markdown", schema)

        post = frontmatter.loads(text)
        assert post.content == "Body here"
        assert post.metadata == {"title": "Hi"}

    def test_markdown_falls_back_to_body_field(self, item):
        post = frontmatter.loads(serialize_item(item, "markdown"))
        assert post.content == "# Hi\n\nThere."
        assert post["title"] == "Hello"
        assert "body" not in post.metadata

    def test_markdown_content_field_is_not_a_keyword_clash(self):
        post = frontmatter.loads(serialize_item({"title": "T", "content": "text"}, "markdown"))
        assert post.content == "text"
        assert post.metadata == {"title": "T"}

    def test_unsupported_format(self, item):
        with pytest.raises(InvalidInput, match="Unsupported storage format 'toml'"):
            serialize_item(item, "toml")


class TestProposalBody:
    def test_body_embeds_file_and_data(self):
        body = proposal_body("posts", "posts/a.json", '{\n  "id": "a"\n}\n')
        assert body.startswith("This PR adds a new item to the **posts** collection.")
        assert "**File:** `posts/a.json`" in body
        assert body.endswith('```json\n{\n  "id": "a"\n}\n```')


# ============================================================================
# create_proposal
# ============================================================================


class TestCreateProposal:
    """Test the branch, file, pull request sequence."""

    def test_happy_path_call_order(self, client, item):
        result = create_proposal(
            client, "o", "r", "posts", item, "posts/hello.json", branch_name="add-hello"
        )

        assert host_calls(client) == [
            "get_branch_head_commit",
            "create_branch",
            "create_file",
            "open_change_request",
        ]
        assert result.pr_number == 42
        assert result.pr_url == "https://github.com/o/r/pull/42"
        assert result.branch_name == "add-hello"
        assert result.target_path == "posts/hello.json"

    def test_branch_is_cut_from_base_head(self, client, item):
        create_proposal(
            client, "o", "r", "posts", item, "posts/hello.json",
            base_branch="develop", branch_name="add-hello",
        )

        client.get_branch_head_commit.assert_called_once_with("o", "r", "develop")
        client.create_branch.assert_called_once_with("o", "r", "add-hello", "0123456789abcdef")

    def test_file_and_pull_request_contents(self, client, item):
        create_proposal(client, "o", "r", "posts", item, "posts/hello.json", branch_name="b")

        args = client.create_file.call_args.args
        assert args[:4] == ("o", "r", "b", "posts/hello.json")
        assert json.loads(args[4].decode("utf-8")) == item
        assert args[5] == "Add new posts item: hello"

        kwargs = client.open_change_request.call_args.kwargs
        assert kwargs["head"] == "b"
        assert kwargs["base"] == "main"
        assert kwargs["title"] == "Add new posts: hello"
        assert "`posts/hello.json`" in kwargs["body"]

    def test_generated_branch_name(self, client, item):
        result = create_proposal(client, "o", "r", "posts", item, "posts/hello.json")
        assert result.branch_name.startswith("add-posts-item-")

    def test_markdown_format_is_written(self, client, item):
        create_proposal(
            client, "o", "r", "posts", item, "posts/hello.md", branch_name="b", fmt="markdown"
        )

        written = client.create_file.call_args.args[4].decode("utf-8")
        assert written.startswith("---\n")
        assert frontmatter.loads(written).content == "# Hi\n\nThere."

    def test_existing_file_stops_before_pull_request(self, client, item):
        client.create_file.side_effect = Conflict("file 'posts/hello.json' conflict")

        with pytest.raises(Conflict):
            create_proposal(client, "o", "r", "posts", item, "posts/hello.json", branch_name="b")

        client.create_branch.assert_called_once()
        client.open_change_request.assert_not_called()

    def test_existing_branch_is_a_conflict(self, client, item):
        client.create_branch.side_effect = Conflict("branch 'b' conflict")

        with pytest.raises(Conflict):
            create_proposal(client, "o", "r", "posts", item, "posts/hello.json", branch_name="b")

        client.create_file.assert_not_called()

    def test_missing_base_branch(self, client, item):
        client.get_branch_head_commit.side_effect = NotFound("branch 'main' not found")

        with pytest.raises(NotFound):
            create_proposal(client, "o", "r", "posts", item, "posts/hello.json")

        client.create_branch.assert_not_called()

    @pytest.mark.parametrize(
        "owner,repo,collection,data,path,missing",
        [
            ("", "r", "posts", {"id": "a"}, "p.json", "owner"),
            ("o", "", "posts", {"id": "a"}, "p.json", "repo"),
            ("o", "r", "", {"id": "a"}, "p.json", "collectionName"),
            ("o", "r", "posts", {}, "p.json", "itemData"),
            ("o", "r", "posts", {"id": "a"}, "", "targetPath"),
        ],
    )
    def test_missing_parameters_make_no_host_calls(
        self, client, owner, repo, collection, data, path, missing
    ):
        with pytest.raises(InvalidInput, match=missing):
            create_proposal(client, owner, repo, collection, data, path)

        assert host_calls(client) == []

    def test_unsupported_format_makes_no_host_calls(self, client, item):
        with pytest.raises(InvalidInput):
            create_proposal(client, "o", "r", "posts", item, "posts/x.toml", fmt="toml")

        assert host_calls(client) == []
