"""
Document parser.

Composes the section splitter with the item and table-group parsers:

    split_sections -> for each section: RawBlock | (TableGroup | Item)* -> Document

A full-document parse always returns a Document. Anything that does not fit
the grammar is kept (absorbed into the neighbouring entry or wrapped in a
RawBlock) and reported in `Document.warnings`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from backlog_markdown.config import BacklogConfig
from backlog_markdown.errors import BacklogFileError
from backlog_markdown.items import ITEM_HEADER, parse_item_block
from backlog_markdown.lines import LineKind, classify_line
from backlog_markdown.models import Document, RawBlock, Section
from backlog_markdown.screenshots import now_millis
from backlog_markdown.sections import SectionBlock, split_sections
from backlog_markdown.table_groups import RANGE_HEADER, parse_table_group

logger = logging.getLogger(__name__)


def _trim_blank(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


class _Warnings:
    """Collects `line N: message` warnings for one parse."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def at(self, line_number: int) -> Callable[[str], None]:
        def warn(message: str) -> None:
            self.add(line_number, message)

        return warn

    def add(self, line_number: int, message: str) -> None:
        logger.warning("line %d: %s", line_number, message)
        self.messages.append(f"line {line_number}: {message}")


def _entry_starts(block: SectionBlock, warnings: _Warnings) -> list[int]:
    """Indices in the section body where an item or table group begins."""
    starts = []
    in_fence = False
    for index, text in enumerate(block.body):
        line = classify_line(text)
        if line.kind == LineKind.FENCE:
            in_fence = not in_fence
            continue
        if in_fence or line.kind != LineKind.HEADER3:
            continue
        if RANGE_HEADER.match(text) or ITEM_HEADER.match(text):
            starts.append(index)
        else:
            line_number = block.line_number + 1 + index
            target = "previous entry" if starts else "section text"
            warnings.add(line_number, f"heading {text.strip()!r} is not an item header, kept in {target}")
    return starts


def _parse_section(
    block: SectionBlock,
    config: BacklogConfig,
    warnings: _Warnings,
    clock: Callable[[], int],
) -> Section:
    section = Section(
        id=block.id,
        title=block.title,
        raw_header_line=block.header_line,
        is_raw=block.is_raw,
    )

    if block.is_raw:
        section.add_entry(RawBlock(title=block.title, raw_markdown="\n".join(_trim_blank(block.body))))
        return section

    starts = _entry_starts(block, warnings)

    leading = _trim_blank(block.body[: starts[0] if starts else len(block.body)])
    if any(classify_line(line).kind != LineKind.SEPARATOR for line in leading if line.strip()):
        warnings.add(block.line_number + 1, f"text before the first item of {block.title!r} kept as a raw block")
        section.add_entry(RawBlock(title=block.title, raw_markdown="\n".join(leading)))

    for number, start in enumerate(starts):
        end = starts[number + 1] if number + 1 < len(starts) else len(block.body)
        lines = block.body[start:end]
        warn = warnings.at(block.line_number + 1 + start)
        position = len(section.entries)
        if RANGE_HEADER.match(lines[0]):
            entry = parse_table_group(lines, position, warn=warn)
        else:
            entry = parse_item_block(
                lines,
                position,
                screenshot_dir=config.screenshot_dir,
                warn=warn,
                clock=clock,
            )
        section.add_entry(entry)

    return section


def _report_duplicates(document: Document, warnings: _Warnings) -> None:
    first_seen: dict[str, str] = {}
    for section in document.sections:
        for item in section.items:
            if item.id in first_seen:
                message = (
                    f"duplicate item id {item.id} in section {section.id} "
                    f"(first seen in section {first_seen[item.id]})"
                )
                logger.warning("%s", message)
                warnings.messages.append(message)
            else:
                first_seen[item.id] = section.id


def parse_document(
    text: str,
    config: Optional[BacklogConfig] = None,
    *,
    clock: Callable[[], int] = now_millis,
) -> Document:
    """Parse a whole backlog document.

    Args:
        text: Markdown source
        config: Parser settings (defaults when omitted)
        clock: Epoch-millis source for screenshots without a timestamp

    Returns:
        Document; never raises on content
    """
    config = config or BacklogConfig()
    split = split_sections(text, config)
    warnings = _Warnings()

    document = Document(header=split.header, table_of_contents=split.table_of_contents)
    for block in split.sections:
        document.sections.append(_parse_section(block, config, warnings, clock))

    _report_duplicates(document, warnings)
    document.warnings = warnings.messages

    logger.debug(
        "Parsed %d sections, %d items, %d warnings",
        len(document.sections),
        sum(len(s.items) for s in document.sections),
        len(document.warnings),
    )
    return document


def parse_file(
    path: Path,
    config: Optional[BacklogConfig] = None,
    *,
    clock: Callable[[], int] = now_millis,
) -> Document:
    """
    Parse a backlog file.

    Args:
        path: Path to the markdown file
        config: Parser settings
        clock: Epoch-millis source for screenshots without a timestamp

    Returns:
        Parsed Document

    Raises:
        BacklogFileError: If the file is missing or not UTF-8
    """
    path = Path(path)
    if not path.exists():
        raise BacklogFileError(f"Backlog file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise BacklogFileError(f"Backlog file is not valid UTF-8: {path}") from e

    return parse_document(content, config, clock=clock)
