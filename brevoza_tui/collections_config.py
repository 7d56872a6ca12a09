"""Configuration data classes for collections, items and proposals."""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional


# Field types the form layer knows how to render
KNOWN_FIELD_TYPES = ("string", "markdown", "image", "date")

SUPPORTED_FORMATS = ("json", "yaml", "markdown")


@dataclass
class CollectionEntry:
    """A collection declared in the root configuration document."""

    name: str
    config_path: Optional[str] = None


@dataclass
class FieldSpec:
    """A single schema property."""

    type: str = "string"
    description: Optional[str] = None


@dataclass
class StorageSpec:
    """Where and how a collection's items are serialized."""

    path: Optional[str] = None
    format: str = "json"
    id_field: str = "id"

    def directory_for(self, collection_name: str) -> str:
        """Return the storage directory, always ending in a slash."""
        directory = self.path or f"{collection_name}/"
        if not directory.endswith("/"):
            directory += "/"
        return directory


@dataclass
class CollectionSchema:
    """Field definitions and storage descriptor for a collection."""

    properties: Dict[str, FieldSpec] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    storage: StorageSpec = field(default_factory=StorageSpec)

    def has_field(self, name: str) -> bool:
        """Check if the schema declares a field."""
        return name in self.properties

    def missing_required_properties(self) -> List[str]:
        """List required names that are not declared as properties."""
        return [name for name in self.required if name not in self.properties]


@dataclass
class DirectoryEntry:
    """One entry of a host directory listing."""

    name: str
    path: str
    kind: str = "file"


@dataclass
class ItemFile:
    """A content item backed by a file in the repository.

    Exactly one of ``content``/``error`` is set once fetched; both stay
    unset in metadata-only mode.
    """

    name: str
    path: str
    content: Optional[str] = None
    error: Optional[str] = None

    @property
    def fetched(self) -> bool:
        return self.content is not None or self.error is not None


@dataclass
class Pagination:
    """Page window over a fully materialized item set."""

    page: int
    limit: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    def to_dict(self) -> Dict[str, object]:
        return {
            "page": self.page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
        }


@dataclass
class ItemListing:
    """Result of listing a collection."""

    collection: str
    items: List[ItemFile]
    pagination: Pagination


@dataclass
class ChangeRequest:
    """A pull request as reported by the host."""

    number: int
    title: str
    url: str
    state: str
    head: str = ""
    base: str = ""
    body: Optional[str] = None
    author: Optional[str] = None
    created_at: Optional[str] = None
    merged: bool = False

    @property
    def is_open(self) -> bool:
        return self.state == "open"


@dataclass
class ChangedFile:
    """A file touched by a change request."""

    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None


@dataclass
class ProposalResult:
    """Outcome of a successful proposal."""

    pr_url: str
    pr_number: int
    branch_name: str
    target_path: str


@dataclass
class ModerationResult:
    """Outcome of an approve or reject call."""

    pr_number: int
    status: str
    message: str = ""


def widget_kind(spec: FieldSpec) -> str:
    """Map a field type to the form widget used to edit it."""
    if spec.type == "markdown":
        return "textarea"
    if spec.type == "date":
        return "date"
    return "text"


def field_placeholder(name: str, spec: FieldSpec) -> str:
    """Placeholder text for a form input."""
    if spec.type == "date":
        return "YYYY-MM-DD"
    if spec.type in KNOWN_FIELD_TYPES:
        return f"Enter {name}"
    return f"Enter {name} ({spec.type})"
