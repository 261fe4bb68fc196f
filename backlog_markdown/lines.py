"""
Line classifier.

Every parser in this package works on classified lines: `classify_line`
decides what kind of line a string is, the parsers decide what to do with
it. Patterns are anchored at column 0, so indented list items are plain text.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LineKind(Enum):
    HEADER1 = "header1"
    HEADER2 = "header2"
    HEADER3 = "header3"
    HEADING_OTHER = "heading_other"
    LABELED = "labeled"
    CHECKBOX = "checkbox"
    BULLET = "bullet"
    NUMBERED = "numbered"
    BLOCKQUOTE = "blockquote"
    IMAGE = "image"
    TABLE = "table"
    FENCE = "fence"
    SEPARATOR = "separator"
    BLANK = "blank"
    TEXT = "text"


@dataclass(frozen=True)
class Line:
    kind: LineKind
    text: str
    groups: tuple[str, ...] = ()


# Order matters: the first matching pattern wins.
_PATTERNS: list[tuple[LineKind, re.Pattern]] = [
    (LineKind.FENCE, re.compile(r"^(```|~~~)")),
    (LineKind.SEPARATOR, re.compile(r"^-{3,}\s*$")),
    (LineKind.HEADER3, re.compile(r"^###\s+(.*\S)\s*$")),
    (LineKind.HEADER2, re.compile(r"^##\s+(.*\S)\s*$")),
    (LineKind.HEADER1, re.compile(r"^#\s+(.*\S)\s*$")),
    (LineKind.HEADING_OTHER, re.compile(r"^#{4,6}\s+(.*\S)\s*$")),
    (LineKind.LABELED, re.compile(r"^\*\*([^*\n]+?):\*\*\s*(.*?)\s*$")),
    (LineKind.LABELED, re.compile(r"^\*\*([^*\n]+?)\*\*\s*:\s*(.*?)\s*$")),
    (LineKind.CHECKBOX, re.compile(r"^[-*] \[([ xX])\]\s*(.*?)\s*$")),
    (LineKind.BULLET, re.compile(r"^[-*] +(.*?)\s*$")),
    (LineKind.NUMBERED, re.compile(r"^\d+[.)]\s+(.*?)\s*$")),
    (LineKind.BLOCKQUOTE, re.compile(r"^>\s?(.*?)\s*$")),
    (LineKind.IMAGE, re.compile(r"^!\[([^\]]*)\]\(([^)]+)\)\s*$")),
    (LineKind.TABLE, re.compile(r"^\s*\|(.*)$")),
]

IMAGE_REF = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")


def classify_line(text: str) -> Line:
    """Classify one line of markdown (without its trailing newline)."""
    if not text.strip():
        return Line(LineKind.BLANK, text)
    for kind, pattern in _PATTERNS:
        match = pattern.match(text)
        if match:
            return Line(kind, text, tuple(g if g is not None else "" for g in match.groups()))
    return Line(LineKind.TEXT, text)


def classify_lines(lines: list[str]) -> list[Line]:
    return [classify_line(line) for line in lines]


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_label(text: str) -> str:
    """Fold a label for keyword matching: `Critères d’acceptation` -> `criteres d'acceptation`."""
    text = text.replace("\u2019", "'").replace("\u00a0", " ")
    return " ".join(strip_accents(text).casefold().split())


def slugify(text: str) -> str:
    """Anchor slug: lowercase, no diacritics, non-alphanumerics collapsed to `-`."""
    slug = re.sub(r"[^a-z0-9]+", "-", strip_accents(text).lower())
    return slug.strip("-")


def split_table_row(text: str) -> Optional[list[str]]:
    """Split `| a | b |` into stripped cells, honouring escaped pipes."""
    stripped = text.strip()
    if not stripped.startswith("|"):
        return None
    stripped = stripped[1:]
    if stripped.endswith("|") and not stripped.endswith("\\|"):
        stripped = stripped[:-1]
    cells = re.split(r"(?<!\\)\|", stripped)
    return [cell.strip().replace("\\|", "|") for cell in cells]


def is_table_divider(cells: list[str]) -> bool:
    return bool(cells) and all(re.fullmatch(r":?-{1,}:?", cell) for cell in cells if cell) and any(cells)
