"""
Item serializer.

The inverse of the item block parser. A `VERBATIM` item returns its source
slice unchanged; anything else is regenerated in the same grammar, in a
fixed order, ending with the `---` separator:

    ### ID | [emoji] title
    metadata lines (only populated fields)
    description
    user story
    list sections (specs, reproduction, criteria, dependencies,
                   constraints, screens, screenshots)
    ---
"""

from __future__ import annotations

import dataclasses
import re
from typing import Optional

from backlog_markdown.errors import ItemUpdateError
from backlog_markdown.lines import LineKind, classify_line
from backlog_markdown.lists import LIST_LABELS, USER_STORY_LABEL, ListField
from backlog_markdown.metadata import (
    COMPONENT_LABEL,
    DESCRIPTION_LABEL,
    EFFORT_LABEL,
    MODULE_LABEL,
    PRIORITY_LABEL,
    SEVERITY_LABEL,
    split_segments,
)
from backlog_markdown.models import (
    EFFORT_LABELS,
    SEVERITY_LABELS,
    Item,
    ItemOrigin,
    TableGroup,
)
from backlog_markdown.screenshots import DEFAULT_SCREENSHOT_DIR, screenshot_markdown_ref

SEPARATOR = "---"

# Fields an edit may not touch.
_FIXED_FIELDS = {"id", "type", "raw_markdown", "origin", "position"}
_ITEM_FIELDS = {f.name for f in dataclasses.fields(Item)}

_CHECKBOX = re.compile(r"^([-*] \[)[ xX](\].*)$")


# =============================================================================
# ITEM TEXT
# =============================================================================


def _metadata_lines(item: Item) -> list[str]:
    lines = []
    if item.component:
        lines.append(f"**{COMPONENT_LABEL}:** {item.component}")
    if item.module:
        lines.append(f"**{MODULE_LABEL}:** {item.module}")
    if item.severity:
        lines.append(f"**{SEVERITY_LABEL}:** {item.severity.value} - {SEVERITY_LABELS[item.severity]}")
    if item.priority:
        lines.append(f"**{PRIORITY_LABEL}:** {item.priority.value}")
    if item.effort:
        lines.append(f"**{EFFORT_LABEL}:** {item.effort.value} ({EFFORT_LABELS[item.effort]})")
    return lines


def _description_lines(description: str) -> list[str]:
    """Labeled line when it re-reads as one segment, paragraph otherwise."""
    if "\n" not in description and len(split_segments(DESCRIPTION_LABEL, description)) == 1:
        return [f"**{DESCRIPTION_LABEL}:** {description}"]
    return [""] + [_paragraph_line(line) for line in description.split("\n")]


def _paragraph_line(line: str) -> str:
    # Indented, a line that looks like a list or quote reads back as text.
    if classify_line(line).kind == LineKind.TEXT:
        return line
    return f" {line}"


def _list_block(label: str, entries: list[str]) -> list[str]:
    return ["", f"**{label}:**"] + entries


def build_item_markdown(
    item: Item,
    screenshot_dir: str = DEFAULT_SCREENSHOT_DIR,
    screenshot_base_path: Optional[str] = None,
) -> str:
    """Regenerate an item's text from its fields.

    Args:
        item: The item to render
        screenshot_dir: Relative folder used in screenshot links
        screenshot_base_path: Absolute folder for clipboard export links

    Returns:
        Item text ending with the separator line
    """
    emoji = f"{item.emoji} " if item.emoji else ""
    lines = [f"### {item.id} | {emoji}{item.title}"]
    lines.extend(_metadata_lines(item))

    if item.description:
        lines.extend(_description_lines(item.description))

    if item.user_story:
        lines.extend(["", f"**{USER_STORY_LABEL}:**", f"> {item.user_story}"])

    if item.specs:
        lines.extend(_list_block(LIST_LABELS[ListField.SPECS], [f"- {s}" for s in item.specs]))
    if item.reproduction:
        steps = [f"{n}. {step}" for n, step in enumerate(item.reproduction, start=1)]
        lines.extend(_list_block(LIST_LABELS[ListField.REPRODUCTION], steps))
    if item.criteria:
        boxes = [f"- [{'x' if c.checked else ' '}] {c.text}" for c in item.criteria]
        lines.extend(_list_block(LIST_LABELS[ListField.CRITERIA], boxes))
    if item.dependencies:
        lines.extend(_list_block(LIST_LABELS[ListField.DEPENDENCIES], [f"- {d}" for d in item.dependencies]))
    if item.constraints:
        lines.extend(_list_block(LIST_LABELS[ListField.CONSTRAINTS], [f"- {c}" for c in item.constraints]))
    if item.screens:
        lines.extend(_list_block(LIST_LABELS[ListField.SCREENS], [f"- {s}" for s in item.screens]))
    if item.screenshots:
        refs = [
            screenshot_markdown_ref(s, screenshot_dir, screenshot_base_path)
            for s in item.screenshots
        ]
        lines.extend(_list_block(LIST_LABELS[ListField.SCREENSHOTS], refs))

    lines.extend(["", SEPARATOR, ""])
    return "\n".join(lines)


def serialize_item(item: Item, screenshot_dir: str = DEFAULT_SCREENSHOT_DIR) -> str:
    """Text for an item: its source slice when verbatim, else regenerated."""
    if item.is_verbatim:
        return item.raw_markdown
    return build_item_markdown(item, screenshot_dir)


def build_table_group_markdown(group: TableGroup) -> str:
    lines = [f"### {group.range_label} | {group.title}"]
    if group.severity:
        lines.append(f"**{SEVERITY_LABEL}:** {group.severity.value} - {SEVERITY_LABELS[group.severity]}")
    lines.extend(["", "| ID | Description | Action |", "|----|-------------|--------|"])
    for row in group.rows:
        cells = [value.replace("|", "\\|") for value in (row.id, row.description, row.action)]
        lines.append(f"| {' | '.join(cells)} |")
    lines.extend(["", SEPARATOR, ""])
    return "\n".join(lines)


def serialize_table_group(group: TableGroup) -> str:
    if group.origin == ItemOrigin.VERBATIM and group.raw_markdown:
        return group.raw_markdown
    return build_table_group_markdown(group)


# =============================================================================
# EDIT HELPERS
# =============================================================================


def update_item(item: Item, **changes) -> Item:
    """Return an edited copy of an item, marked for regeneration.

    Raises:
        ItemUpdateError: For unknown fields or fields that identify the item
    """
    fixed = _FIXED_FIELDS.intersection(changes)
    if fixed:
        raise ItemUpdateError(f"Cannot change {', '.join(sorted(fixed))} on {item.id}")
    unknown = set(changes) - _ITEM_FIELDS
    if unknown:
        raise ItemUpdateError(f"Unknown item fields: {', '.join(sorted(unknown))}")

    return dataclasses.replace(item, raw_markdown="", origin=ItemOrigin.SYNTHESIZED, **changes)


def toggle_criterion(item: Item, index: int) -> Item:
    """Flip one acceptance criterion.

    A verbatim item keeps its source text with only that checkbox rewritten;
    an out-of-range index returns the item unchanged.
    """
    if index < 0 or index >= len(item.criteria):
        return item

    criteria = [dataclasses.replace(c) for c in item.criteria]
    criteria[index].checked = not criteria[index].checked

    if not item.is_verbatim:
        return dataclasses.replace(item, criteria=criteria)

    lines = item.raw_markdown.split("\n")
    seen = 0
    for number, line in enumerate(lines):
        match = _CHECKBOX.match(line)
        if not match:
            continue
        if seen == index:
            mark = "x" if criteria[index].checked else " "
            lines[number] = f"{match.group(1)}{mark}{match.group(2)}"
            break
        seen += 1

    return dataclasses.replace(item, criteria=criteria, raw_markdown="\n".join(lines))
