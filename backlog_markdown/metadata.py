"""
Metadata field extraction.

Handles the `**Label:** value` lines of an item block: component, module,
severity, priority, effort and the labeled description. Labels match
case-sensitively; values outside an enum's domain are dropped and reported.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from backlog_markdown.models import Effort, Item, Priority, Severity

logger = logging.getLogger(__name__)

METADATA_LABELS: dict[str, str] = {
    "Composant": "component",
    "Module": "module",
    "Sévérité": "severity",
    "Severité": "severity",
    "Sévérite": "severity",
    "Severite": "severity",
    "Priorité": "priority",
    "Priorite": "priority",
    "Effort": "effort",
    "Description": "description",
}

# Labels used when writing items back out
COMPONENT_LABEL = "Composant"
MODULE_LABEL = "Module"
SEVERITY_LABEL = "Sévérité"
PRIORITY_LABEL = "Priorité"
EFFORT_LABEL = "Effort"
DESCRIPTION_LABEL = "Description"

_SEGMENT_SPLIT = re.compile(r"\s+\|\s+(?=\*\*[^*\n]+?(?::\*\*|\*\*\s*:))")
_SEGMENT = re.compile(r"^\*\*([^*\n]+?)(?::\*\*|\*\*\s*:)\s*(.*?)\s*$")


def is_metadata_label(label: str) -> bool:
    return label.strip() in METADATA_LABELS


def split_segments(label: str, value: str) -> list[tuple[str, str]]:
    """Split `**A:** x | **B:** y` into `[("A", "x"), ("B", "y")]`."""
    parts = _SEGMENT_SPLIT.split(value)
    segments = [(label.strip(), parts[0].strip())]
    for part in parts[1:]:
        match = _SEGMENT.match(part.strip())
        if match:
            segments.append((match.group(1).strip(), match.group(2)))
    return segments


def parse_severity(value: str) -> Optional[Severity]:
    """`P1 - Critique` -> Severity.P1."""
    match = re.match(r"^(P\d+)\b", value.strip(), re.IGNORECASE)
    if not match:
        return None
    try:
        return Severity(match.group(1).upper())
    except ValueError:
        return None


def parse_priority(value: str) -> Optional[Priority]:
    words = value.strip().split()
    if not words:
        return None
    try:
        return Priority(words[0].strip(".,;:").capitalize())
    except ValueError:
        return None


def parse_effort(value: str) -> Optional[Effort]:
    """`M (Medium)` -> Effort.M."""
    match = re.match(r"^([A-Za-z]+)", value.strip())
    if not match:
        return None
    try:
        return Effort(match.group(1).upper())
    except ValueError:
        return None


_ENUM_PARSERS = {
    "severity": parse_severity,
    "priority": parse_priority,
    "effort": parse_effort,
}


def apply_metadata(
    item: Item,
    label: str,
    value: str,
    warn: Callable[[str], None],
) -> bool:
    """Store a labeled value on the item.

    Returns False when the label is not a metadata label, so the caller can
    try it as a list label instead.
    """
    field_name = METADATA_LABELS.get(label.strip())
    if field_name is None:
        return False

    value = value.strip()
    if not value:
        return True

    parser = _ENUM_PARSERS.get(field_name)
    if parser is None:
        setattr(item, field_name, value)
        return True

    parsed = parser(value)
    if parsed is None:
        logger.warning("%s: dropping unknown %s value %r", item.id, field_name, value)
        warn(f"{item.id}: unknown {field_name} value {value!r}")
    else:
        setattr(item, field_name, parsed)
    return True
