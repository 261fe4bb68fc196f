"""
Placement of newly authored items.

Decides which section a new item of a given type belongs to, and which id
it gets. Strategies, in order:

1. A section that already holds items of that type
2. A section whose title matches the type's labels
3. A section carrying a `<!-- Type: X -->` marker
4. The first section that is not a raw block
"""

from __future__ import annotations

import logging
from typing import Optional

from backlog_markdown.errors import PlacementError
from backlog_markdown.models import Document, Item, Section, id_number, type_from_id
from backlog_markdown.queries import find_item, iter_items, table_group_rows

logger = logging.getLogger(__name__)

# Section titles used for the built-in types.
TYPE_LABELS: dict[str, list[str]] = {
    "BUG": ["BUGS", "BUG"],
    "CT": ["COURT TERME", "COURT-TERME", "CT"],
    "LT": ["LONG TERME", "LONG-TERME", "LT"],
    "AUTRE": ["AUTRES IDÉES", "AUTRES IDEES", "AUTRES", "AUTRE", "IDÉES", "IDEES"],
    "TEST": ["TESTS", "TEST"],
}


def labels_for_type(item_type: str) -> list[str]:
    """Title labels for a type; custom `EXT_CHROME` also matches `EXT CHROME`."""
    if item_type in TYPE_LABELS:
        return TYPE_LABELS[item_type]
    labels = [item_type]
    if "_" in item_type:
        labels.append(item_type.replace("_", " "))
    return labels


def _title_matches(section: Section, labels: list[str]) -> bool:
    title = section.title.upper()
    return any(label.upper() in title for label in labels)


def _has_type_marker(section: Section, item_type: str) -> bool:
    marker = f"<!-- Type: {item_type} -->"
    return any(marker in getattr(entry, "raw_markdown", "") for entry in section.entries)


def find_target_section(document: Document, item_type: str) -> Optional[Section]:
    """Pick the section a new item of `item_type` should go to, or None."""
    for section in document.sections:
        if any(item.type == item_type for item in section.items):
            return section

    labels = labels_for_type(item_type)
    for section in document.sections:
        if not section.is_raw and _title_matches(section, labels):
            return section

    for section in document.sections:
        if _has_type_marker(section, item_type):
            return section

    for section in document.sections:
        if not section.is_raw:
            return section

    return None


def next_item_id(document: Document, item_type: str) -> str:
    """`TYPE-NNN` one above the highest number in use for that type.

    Counts items and table-group rows, so ids listed in a table are not
    handed out again.
    """
    ids = [item.id for item in iter_items(document)]
    ids.extend(row.id for row in table_group_rows(document))

    numbers = [
        id_number(item_id)
        for item_id in ids
        if type_from_id(item_id) == item_type
    ]
    highest = max((n for n in numbers if n is not None), default=0)
    return f"{item_type}-{highest + 1:03d}"


def place_item(document: Document, item: Item) -> Section:
    """Append a new item to its target section.

    Returns:
        The section that received the item

    Raises:
        PlacementError: If the id is already used or no section can take it
    """
    if find_item(document, item.id) is not None:
        raise PlacementError(f"Item {item.id} already exists")

    section = find_target_section(document, item.type)
    if section is None:
        raise PlacementError(f"No section can receive {item.id}")

    section.add_entry(item)
    logger.info("Placed %s in section %s (%s)", item.id, section.id, section.title)
    return section
