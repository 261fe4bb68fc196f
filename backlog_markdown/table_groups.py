"""
Table-group parser.

A header carrying an id range (`### BUG-005 à 007 | Bugs mineurs`) introduces
a markdown table with the columns ID, Description, Action instead of a
single item. Rows are lightweight tickets, not Items.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from backlog_markdown.errors import BacklogParseError
from backlog_markdown.items import raw_extent
from backlog_markdown.lines import (
    LineKind,
    classify_line,
    is_table_divider,
    normalize_label,
    split_table_row,
)
from backlog_markdown.metadata import METADATA_LABELS, parse_severity, split_segments
from backlog_markdown.models import ItemOrigin, TableGroup, TableRow

logger = logging.getLogger(__name__)

RANGE_HEADER = re.compile(
    r"^###\s+(?P<first>(?P<type>[A-Z][A-Z0-9_]*)-(?P<start>\d+))"
    r"(?:\s*à\s*|\s+(?:a|to)\s+)"
    r"(?P<last>(?:[A-Z][A-Z0-9_]*-)?\d+)"
    r"\s*\|\s*(?P<title>.*?)\s*$"
)

TABLE_COLUMNS = ("id", "description", "action")


def _expand_last_id(item_type: str, start: str, last: str) -> str:
    """`007` -> `BUG-007`, padded like the first id."""
    if "-" in last:
        return last
    return f"{item_type}-{last.zfill(len(start))}"


def _is_header_row(cells: list[str]) -> bool:
    names = [re.sub(r"[^a-z]", "", normalize_label(cell)) for cell in cells[: len(TABLE_COLUMNS)]]
    return len(names) >= len(TABLE_COLUMNS) and names[0] == "id"


def parse_table_group(
    lines: list[str],
    position: int = 0,
    *,
    warn: Optional[Callable[[str], None]] = None,
) -> TableGroup:
    """Parse a range header and its table.

    Malformed rows (fewer than three cells, empty id) are dropped and
    reported through `warn`.

    Raises:
        BacklogParseError: If the first line is not a range header
    """
    if not lines:
        raise BacklogParseError("Empty table group block")
    header = RANGE_HEADER.match(lines[0])
    if not header:
        raise BacklogParseError(f"Invalid table group header: {lines[0]!r}")

    warn = warn or (lambda message: None)
    extent = raw_extent(lines)
    range_label = lines[0][3:].split("|", 1)[0].strip()

    group = TableGroup(
        title=header.group("title"),
        range_label=range_label,
        first_id=header.group("first"),
        last_id=_expand_last_id(header.group("type"), header.group("start"), header.group("last")),
        position=position,
        raw_markdown="\n".join(lines[:extent]),
        origin=ItemOrigin.VERBATIM,
    )

    in_table = False
    for text in lines[1:extent]:
        line = classify_line(text)

        if line.kind == LineKind.LABELED:
            for label, value in split_segments(*line.groups):
                if METADATA_LABELS.get(label) == "severity" and group.severity is None:
                    group.severity = parse_severity(value)
                    if group.severity is None:
                        warn(f"{range_label}: unknown severity value {value!r}")
            continue

        if line.kind != LineKind.TABLE:
            in_table = False
            continue

        cells = split_table_row(text) or []
        if not in_table:
            in_table = _is_header_row(cells)
            continue
        if is_table_divider(cells):
            continue
        if len(cells) < len(TABLE_COLUMNS) or not cells[0]:
            logger.warning("%s: dropping malformed table row %r", range_label, text)
            warn(f"{range_label}: malformed table row {text.strip()!r}")
            continue
        group.rows.append(TableRow(id=cells[0], description=cells[1], action=cells[2]))

    if not group.rows:
        warn(f"{range_label}: table group without rows")

    for row in group.rows:
        if not group.contains(row.id):
            logger.debug("%s: row %s lies outside the declared range", range_label, row.id)

    return group
