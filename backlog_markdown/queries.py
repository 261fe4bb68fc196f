"""
Flattening queries over a parsed Document.

`all_items` is a first-write-wins fold: sections are walked in document
order and an id already seen is skipped, so a later copy of an item never
replaces the first one.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Optional

from backlog_markdown.errors import DuplicateItemIdError
from backlog_markdown.models import Document, Item, TableGroup, TableRow


def iter_items(document: Document) -> Iterator[Item]:
    """All Item entries in document order, duplicates included."""
    for section in document.sections:
        for entry in section.entries:
            if isinstance(entry, Item):
                yield entry


def first_occurrences(items: Iterable[Item]) -> list[Item]:
    """Keep the first item per id, in input order."""
    seen: set[str] = set()
    kept: list[Item] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        kept.append(item)
    return kept


def all_items(document: Document) -> list[Item]:
    """Flat, de-duplicated item list (first occurrence wins)."""
    return first_occurrences(iter_items(document))


def items_by_type(document: Document, item_type: str) -> list[Item]:
    """De-duplicated items of one type; empty for an unknown type."""
    return [item for item in all_items(document) if item.type == item_type]


def find_item(document: Document, item_id: str) -> Optional[Item]:
    for item in iter_items(document):
        if item.id == item_id:
            return item
    return None


def duplicate_ids(document: Document) -> list[str]:
    """Ids that occur more than once, in order of their second occurrence."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for item in iter_items(document):
        if item.id in seen and item.id not in duplicates:
            duplicates.append(item.id)
        seen.add(item.id)
    return duplicates


def check_unique_ids(document: Document) -> None:
    """Strict import check.

    Raises:
        DuplicateItemIdError: If any item id occurs twice
    """
    duplicates = duplicate_ids(document)
    if duplicates:
        raise DuplicateItemIdError(duplicates)


def table_group_rows(document: Document) -> list[TableRow]:
    """Rows of every table group, in document order."""
    return [
        row
        for section in document.sections
        for entry in section.entries
        if isinstance(entry, TableGroup)
        for row in entry.rows
    ]


def item_types(document: Document) -> list[str]:
    """Distinct item types in order of first appearance."""
    types: list[str] = []
    for item in all_items(document):
        if item.type not in types:
            types.append(item.type)
    return types
