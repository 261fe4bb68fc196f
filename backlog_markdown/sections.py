"""
Section splitter.

Normalizes line endings and un-fuses separator/header sequences that lost
their line break (`---## 2. FEATURES`), then cuts the document at `## `
headers. Everything before the first section is the preamble, from which
the table of contents is taken out.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from backlog_markdown.config import BacklogConfig
from backlog_markdown.lines import LineKind, classify_line, normalize_label

logger = logging.getLogger(__name__)

_NUMBERING = re.compile(r"^(?:\d+(?:\.\d+)*[.)]|[IVXLCDM]+[.)])\s+")
_FUSED_SEPARATOR = re.compile(r"^(?P<before>.*?)(?P<sep>-{3,})[ \t]*(?P<header>#{2,3}\s+\S.*)$")
_FUSED_HEADER = re.compile(r"^(?P<before>#{1,2}\s+[^#\n]*[^#\s])(?P<header>#{2,3}\s+\S.*)$")


@dataclass
class SectionBlock:
    """One `## ` section as lines, before entry decomposition."""

    id: str
    title: str
    header_line: str
    line_number: int  # 1-based line of the header in the normalized text
    body: list[str] = field(default_factory=list)
    is_raw: bool = False


@dataclass
class SplitDocument:
    header: str = ""
    table_of_contents: str = ""
    sections: list[SectionBlock] = field(default_factory=list)


def unfuse_line(line: str) -> list[str]:
    """Split a line where a separator or heading swallowed the next header."""
    match = _FUSED_SEPARATOR.match(line)
    if match:
        parts = [match.group("before")] if match.group("before").strip() else []
        return parts + [match.group("sep")] + unfuse_line(match.group("header"))
    match = _FUSED_HEADER.match(line)
    if match:
        return [match.group("before")] + unfuse_line(match.group("header"))
    return [line]


def normalize_lines(text: str) -> list[str]:
    """Split text into lines with `\\n` endings and fused headers separated.

    Lines inside fenced code blocks are left alone.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines: list[str] = []
    in_fence = False
    for line in text.split("\n"):
        if classify_line(line).kind == LineKind.FENCE:
            in_fence = not in_fence
        if in_fence:
            lines.append(line)
            continue
        parts = unfuse_line(line)
        if len(parts) > 1:
            logger.debug("Un-fused line %r into %d lines", line, len(parts))
        lines.extend(parts)
    return lines


def section_title(header_text: str) -> str:
    """`1. BUGS` -> `BUGS`; the numeral is decorative."""
    return _NUMBERING.sub("", header_text.strip(), count=1).strip()


def _matches_any(title: str, keywords: list[str]) -> bool:
    normalized = normalize_label(title)
    return any(normalize_label(keyword) in normalized for keyword in keywords)


def is_raw_section_title(title: str, config: Optional[BacklogConfig] = None) -> bool:
    """Legend, roadmap and convention sections are kept as raw blocks."""
    config = config or BacklogConfig()
    return _matches_any(title, config.raw_section_keywords)


def is_toc_title(title: str, config: Optional[BacklogConfig] = None) -> bool:
    config = config or BacklogConfig()
    normalized = normalize_label(title)
    return any(normalize_label(t) == normalized for t in config.toc_titles)


def split_sections(text: str, config: Optional[BacklogConfig] = None) -> SplitDocument:
    """Split a whole document into preamble, table of contents and sections.

    An empty document gives an empty result, never an error.
    """
    config = config or BacklogConfig()
    lines = normalize_lines(text)

    starts: list[int] = []
    toc_start: Optional[int] = None
    in_fence = False
    for index, line in enumerate(lines):
        classified = classify_line(line)
        if classified.kind == LineKind.FENCE:
            in_fence = not in_fence
            continue
        if in_fence or classified.kind != LineKind.HEADER2:
            continue
        title = section_title(classified.groups[0])
        if is_toc_title(title, config):
            if not starts and toc_start is None:
                toc_start = index
            continue
        starts.append(index)

    first = starts[0] if starts else len(lines)
    preamble = lines[:first]
    if toc_start is None:
        result = SplitDocument(header="\n".join(preamble))
    else:
        result = SplitDocument(
            header="\n".join(preamble[:toc_start]),
            table_of_contents="\n".join(preamble[toc_start:]),
        )

    for position, start in enumerate(starts):
        end = starts[position + 1] if position + 1 < len(starts) else len(lines)
        header_line = lines[start]
        title = section_title(classify_line(header_line).groups[0])
        result.sections.append(
            SectionBlock(
                id=str(position + 1),
                title=title,
                header_line=header_line,
                line_number=start + 1,
                body=lines[start + 1:end],
                is_raw=is_raw_section_title(title, config),
            )
        )

    return result
