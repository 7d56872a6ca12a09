"""Line-oriented parsers for brevoza configuration documents.

These scanners understand only the narrow, 2-space indented dialect used by
``brevoza.config.yml`` and per-collection config files. They are not YAML
parsers: unknown keys are ignored and non-conforming documents degrade to
partial results rather than errors.
"""

import re
from typing import List, Optional

from .collections_config import CollectionEntry, CollectionSchema, FieldSpec

_COLLECTION_ENTRY = re.compile(r"^(\s{2,})([A-Za-z0-9_][A-Za-z0-9_-]*):\s*$")
_CONFIG_KEY = re.compile(r"(?:^|[\s{,])config:\s*([^,}#]+)")

_STORAGE_KEYS = {
    "path": re.compile(r"^\s+path:\s*(.+)$"),
    "format": re.compile(r"^\s+format:\s*(.+)$"),
    "id_field": re.compile(r"^\s+idField:\s*(.+)$"),
}
_PROPERTY_KEY = re.compile(r"^\s{4}([A-Za-z0-9_]+):\s*$")
_PROPERTY_TYPE = re.compile(r"^\s{6}type:\s*(.+)$")
_PROPERTY_DESCRIPTION = re.compile(r"^\s{6}description:\s*(.+)$")
_REQUIRED_BLOCK = re.compile(r"^\s+required:\s*$")
_REQUIRED_INLINE = re.compile(r"^\s+required:\s*\[(.*)\]\s*$")
_LIST_ITEM = re.compile(r"^\s+-\s*(.+)$")

_SECTION_HEADERS = {"schema:": "schema", "storage:": "storage", "properties:": "properties"}


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def parse_collections(raw_text: Optional[str]) -> List[CollectionEntry]:
    """Extract the declared collections from the root configuration text.

    Scans the block under the ``collections:`` line until the next
    non-indented line. A ``<2+ spaces>name:`` line opens an entry and the
    first deeper ``config:`` key sets its config path.

    Args:
        raw_text: Contents of ``brevoza.config.yml`` (may be empty)

    Returns:
        Collections in declaration order; empty if none are declared
    """
    if not raw_text:
        return []

    lines = raw_text.splitlines()
    start = next((i for i, line in enumerate(lines) if line.strip() == "collections:"), None)
    if start is None:
        return []

    entries: List[CollectionEntry] = []
    current: Optional[CollectionEntry] = None
    entry_indent = 0

    for line in lines[start + 1:]:
        if not line.strip():
            continue
        if not line[0].isspace():
            break

        indent = _indent(line)
        match = _COLLECTION_ENTRY.match(line)
        if match and (current is None or indent <= entry_indent):
            current = CollectionEntry(name=match.group(2))
            entry_indent = indent
            entries.append(current)
            continue

        if current is not None and indent > entry_indent and current.config_path is None:
            config_match = _CONFIG_KEY.search(line)
            if config_match:
                current.config_path = _unquote(config_match.group(1)) or None

    return entries


def parse_schema(raw_text: Optional[str]) -> CollectionSchema:
    """Extract field definitions and storage settings from a collection config.

    A single pass over the lines with three mutually exclusive sections
    (``schema``, ``storage`` and ``properties`` nested in ``schema``),
    each selected by an exact section-header line.

    Args:
        raw_text: Contents of the collection's config file

    Returns:
        The parsed schema; defaults apply to anything not declared
    """
    schema = CollectionSchema()
    if not raw_text:
        return schema

    lines = raw_text.splitlines()
    section: Optional[str] = None
    current_property: Optional[str] = None

    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()
        i += 1

        if stripped in _SECTION_HEADERS:
            section = _SECTION_HEADERS[stripped]
            current_property = None
            continue
        if not stripped:
            continue

        # A new top-level key closes whatever section was open
        if not line[0].isspace():
            section = None
            current_property = None
            continue

        # Dedenting past the property keys returns to the enclosing schema block
        if section == "properties" and _indent(line) < 4:
            section = "schema"
            current_property = None

        if section == "storage":
            for attr, pattern in _STORAGE_KEYS.items():
                match = pattern.match(line)
                if match:
                    setattr(schema.storage, attr, _unquote(match.group(1)))
                    break
            continue

        if section == "properties":
            match = _PROPERTY_KEY.match(line)
            if match:
                current_property = match.group(1)
                schema.properties.setdefault(current_property, FieldSpec())
                continue
            if current_property:
                match = _PROPERTY_TYPE.match(line)
                if match:
                    schema.properties[current_property].type = _unquote(match.group(1))
                    continue
                match = _PROPERTY_DESCRIPTION.match(line)
                if match:
                    schema.properties[current_property].description = _unquote(match.group(1))
            continue

        if section == "schema":
            match = _REQUIRED_INLINE.match(line)
            if match:
                schema.required.extend(
                    _unquote(value) for value in match.group(1).split(",") if value.strip()
                )
                continue
            if _REQUIRED_BLOCK.match(line):
                while i < len(lines):
                    item = _LIST_ITEM.match(lines[i])
                    if not item:
                        break
                    schema.required.append(_unquote(item.group(1)))
                    i += 1

    return schema
