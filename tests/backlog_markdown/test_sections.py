"""
Tests for the section splitter.

Sections are cut at `## ` headers; ids are positional, raw sections are kept
whole and fused separator/header lines are split apart first.
"""

from backlog_markdown.config import BacklogConfig
from backlog_markdown.models import RawBlock
from backlog_markdown.parser import parse_document
from backlog_markdown.sections import (
    is_raw_section_title,
    normalize_lines,
    section_title,
    split_sections,
    unfuse_line,
)


DOC_WITH_TOC = """# Product Backlog

Intro paragraph.

## Table des matières

1. [BUGS](#1-bugs)

---

## 1. BUGS

### BUG-001 | First
"""

LEGEND_DOC = """## Légende

| Sévérité | Sens |
|---|---|
| P0 | Bloquant |

### BUG-001 | Looks like an item

---
"""

FUSED_DOC = """## 1. BUGS

### BUG-001 | First

---## 2. FEATURES

### CT-001 | Second
"""

UNFUSED_DOC = FUSED_DOC.replace("---## 2.", "---\n## 2.")


class TestSplitSections:
    """Preamble, table of contents and section blocks."""

    def test_empty_document(self):
        """An empty text gives no sections and empty strings."""
        doc = parse_document("")
        assert doc.sections == []
        assert doc.header == ""
        assert doc.table_of_contents == ""

    def test_preamble_and_toc(self):
        """The TOC block is taken out of the preamble."""
        split = split_sections(DOC_WITH_TOC)
        assert split.header.startswith("# Product Backlog")
        assert "Intro paragraph." in split.header
        assert "Table des matières" not in split.header
        assert split.table_of_contents.startswith("## Table des matières")
        assert "(#1-bugs)" in split.table_of_contents
        assert len(split.sections) == 1

    def test_toc_is_not_a_section(self):
        """The TOC heading never opens a section."""
        doc = parse_document(DOC_WITH_TOC)
        assert [s.title for s in doc.sections] == ["BUGS"]

    def test_positional_ids(self):
        """Ids follow position, whatever numeral the header carries."""
        doc = parse_document("## BUGS\n\n## 7. Features\n\n## III. Ideas\n")
        assert [s.id for s in doc.sections] == ["1", "2", "3"]
        assert [s.title for s in doc.sections] == ["BUGS", "Features", "Ideas"]

    def test_raw_header_line_kept(self):
        """The header line is kept verbatim."""
        doc = parse_document("## 7. Features\n")
        assert doc.sections[0].raw_header_line == "## 7. Features"

    def test_header_lines_in_fence_ignored(self):
        """`## ` inside a code fence does not start a section."""
        split = split_sections("## 1. A\n\n```\n## not a section\n```\n")
        assert len(split.sections) == 1

    def test_line_numbers(self):
        """Blocks record the 1-based line of their header."""
        split = split_sections("# T\n\n## 1. A\n\n## 2. B\n")
        assert [block.line_number for block in split.sections] == [3, 5]


class TestSectionTitles:
    """Title cleanup and raw-section detection."""

    def test_numbering_stripped(self):
        """Ordinals are decorative."""
        assert section_title("1. BUGS") == "BUGS"
        assert section_title("2) Court terme") == "Court terme"
        assert section_title("IV. Ideas") == "Ideas"
        assert section_title("BUGS") == "BUGS"

    def test_raw_keywords_accent_insensitive(self):
        """Legend/roadmap/convention titles are raw, accents or not."""
        assert is_raw_section_title("Légende")
        assert is_raw_section_title("LEGENDE DES PRIORITES")
        assert is_raw_section_title("Roadmap 2025")
        assert is_raw_section_title("Conventions de nommage")
        assert not is_raw_section_title("BUGS")

    def test_custom_keywords(self):
        """Raw keywords come from configuration."""
        config = BacklogConfig(raw_section_keywords=["notes"])
        assert is_raw_section_title("Release notes", config)
        assert not is_raw_section_title("Légende", config)


class TestRawSections:
    """Opaque sections."""

    def test_legend_is_one_raw_block(self):
        """A legend yields exactly one RawBlock and no items."""
        doc = parse_document(LEGEND_DOC)
        section = doc.sections[0]
        assert len(section.entries) == 1
        assert isinstance(section.entries[0], RawBlock)
        assert section.items == []
        assert section.is_raw

    def test_raw_block_body(self):
        """The body is kept verbatim, minus surrounding blank lines."""
        doc = parse_document(LEGEND_DOC)
        raw = doc.sections[0].entries[0].raw_markdown
        assert raw.startswith("| Sévérité | Sens |")
        assert "### BUG-001 | Looks like an item" in raw
        assert raw.endswith("---")


class TestFusedLines:
    """Separator/header sequences that lost their line break."""

    def test_unfuse_separator(self):
        """`---## Title` becomes two lines."""
        assert unfuse_line("---## 2. FEATURES") == ["---", "## 2. FEATURES"]

    def test_unfuse_with_text_before(self):
        """Text before the separator stays on its own line."""
        assert unfuse_line("end of item---### CT-001 | X") == ["end of item", "---", "### CT-001 | X"]

    def test_unfuse_fused_headers(self):
        """A header swallowing the next header is split."""
        assert unfuse_line("## 1. BUGS### BUG-001 | A") == ["## 1. BUGS", "### BUG-001 | A"]

    def test_plain_lines_untouched(self):
        """Ordinary lines and ids with dashes are left alone."""
        assert unfuse_line("### BUG-001 | A - B") == ["### BUG-001 | A - B"]
        assert unfuse_line("---") == ["---"]

    def test_fenced_lines_untouched(self):
        """Nothing is split inside a code fence."""
        assert normalize_lines("```\n---## x\n```") == ["```", "---## x", "```"]

    def test_fused_equals_unfused(self):
        """A fused document parses like the one with a line break."""
        fused = parse_document(FUSED_DOC)
        unfused = parse_document(UNFUSED_DOC)
        assert len(fused.sections) == 2
        assert fused == unfused
        assert [s.title for s in fused.sections] == ["BUGS", "FEATURES"]
