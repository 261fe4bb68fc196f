"""
Document exporter.

The inverse of the document parser at document scale. Walks an already
parsed (or programmatically built) Document and writes it back out; nothing
here re-parses text. Three modes share the same per-entry output:

    export_document   preamble + generated TOC + every section
    export_sections   partial export of the sections whose id is requested
    export_types      one synthetic `## <TYPE>` section per requested type
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from backlog_markdown.config import BacklogConfig
from backlog_markdown.lines import slugify
from backlog_markdown.models import Document, Entry, Item, RawBlock, Section, TableGroup
from backlog_markdown.queries import items_by_type
from backlog_markdown.serializer import (
    SEPARATOR,
    build_item_markdown,
    serialize_item,
    serialize_table_group,
)

logger = logging.getLogger(__name__)


def section_anchor(section: Section) -> str:
    """`## 2. Court terme` -> `2-court-terme`."""
    return slugify(f"{section.id} {section.title}")


def section_header_line(section: Section) -> str:
    return section.raw_header_line or f"## {section.id}. {section.title}"


def generate_toc(sections: Iterable[Section], heading: str) -> str:
    """Table of contents with one numbered link per section."""
    lines = [f"## {heading}", ""]
    for section in sections:
        lines.append(f"{section.id}. [{section.title}](#{section_anchor(section)})")
    lines.extend(["", SEPARATOR])
    return "\n".join(lines)


def entry_markdown(entry: Entry, config: Optional[BacklogConfig] = None) -> str:
    """Text of one entry, closed by a separator unless it is a raw block."""
    config = config or BacklogConfig()
    if isinstance(entry, RawBlock):
        return entry.raw_markdown.strip("\n")

    if isinstance(entry, TableGroup):
        text = serialize_table_group(entry)
    else:
        text = serialize_item(entry, config.screenshot_dir)

    text = text.rstrip("\n")
    if not text.rstrip().endswith(SEPARATOR):
        text = f"{text}\n\n{SEPARATOR}"
    return text


def _section_chunks(section: Section, config: BacklogConfig) -> list[str]:
    chunks = [section_header_line(section)]
    for entry in section.entries:
        text = entry_markdown(entry, config)
        if text:
            chunks.append(text)
    return chunks


def _join(chunks: list[str]) -> str:
    return "\n\n".join(chunk for chunk in chunks if chunk) + "\n"


def export_document(document: Document, config: Optional[BacklogConfig] = None) -> str:
    """Write a whole document.

    The preamble is kept as parsed (or replaced by a title line when empty);
    the table of contents is regenerated from the current sections.
    """
    config = config or BacklogConfig()
    preamble = document.header.strip("\n") if document.header.strip() else ""
    chunks = [preamble or f"# {config.document_title}"]
    if document.sections:
        chunks.append(generate_toc(document.sections, config.toc_heading))
    for section in document.sections:
        chunks.extend(_section_chunks(section, config))

    logger.debug("Exported %d sections", len(document.sections))
    return _join(chunks)


def export_sections(
    document: Document,
    section_ids: Iterable[str],
    config: Optional[BacklogConfig] = None,
) -> str:
    """Write only the requested sections, in document order.

    Sections not requested are skipped entirely; unknown ids are ignored.
    """
    config = config or BacklogConfig()
    wanted = {str(section_id) for section_id in section_ids}
    selected = [section for section in document.sections if section.id in wanted]

    missing = wanted - {section.id for section in selected}
    if missing:
        logger.warning("Unknown section ids ignored: %s", ", ".join(sorted(missing)))

    chunks = [f"# {config.document_title} (Partial Export)"]
    if selected:
        chunks.append(generate_toc(selected, config.toc_heading))
    for section in selected:
        chunks.extend(_section_chunks(section, config))
    return _join(chunks)


def export_types(
    document: Document,
    types: Iterable[str],
    config: Optional[BacklogConfig] = None,
) -> str:
    """Write the items of the requested types, one section per type.

    Section structure of the source is ignored; items come from the
    de-duplicated flat list, so each id appears once.
    """
    config = config or BacklogConfig()
    types = list(types)
    chunks = [
        f"# {config.document_title} (Type Export)",
        f"Exported types: {', '.join(types)}",
        SEPARATOR,
    ]
    for item_type in types:
        chunks.append(f"## {item_type}")
        for item in items_by_type(document, item_type):
            chunks.append(entry_markdown(item, config))
    return _join(chunks)


def export_item(item: Item, config: Optional[BacklogConfig] = None) -> str:
    """Text of a single item, verbatim when unmodified."""
    config = config or BacklogConfig()
    return serialize_item(item, config.screenshot_dir)


def export_item_for_clipboard(
    item: Item,
    source_path: str,
    screenshot_base_path: Optional[str] = None,
    config: Optional[BacklogConfig] = None,
) -> str:
    """Item text prefixed with its source file, for pasting elsewhere.

    Always regenerated from fields so screenshot links can point at
    `screenshot_base_path` (absolute) instead of the relative folder.
    """
    config = config or BacklogConfig()
    body = build_item_markdown(item, config.screenshot_dir, screenshot_base_path)
    return f"From {source_path} :\n\n{body.rstrip()}"
