"""
Command line entry point: `backlog-md`.

Usage:
    backlog-md parse BACKLOG.md [--json]
    backlog-md export BACKLOG.md [--sections 1,3] [--types BUG,CT] [-o OUT]
    backlog-md check BACKLOG.md [--strict]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from backlog_markdown.config import BacklogConfig, load_config, load_config_from_pyproject
from backlog_markdown.errors import BacklogConfigError, BacklogFileError, BacklogParseError
from backlog_markdown.exporter import export_document, export_sections, export_types
from backlog_markdown.items import parse_item
from backlog_markdown.models import Document, Item, TableGroup
from backlog_markdown.parser import parse_file
from backlog_markdown.queries import all_items, duplicate_ids, iter_items
from backlog_markdown.serializer import build_item_markdown, serialize_item

logger = logging.getLogger("backlog_markdown")

# Exit codes
EXIT_OK = 0
EXIT_LAW_VIOLATION = 1
EXIT_DUPLICATE_IDS = 2
EXIT_CONFIG_ERROR = 4
EXIT_FILE_ERROR = 5

# Fixed clock for `check`, so screenshots without a timestamp compare equal.
CHECK_CLOCK_MILLIS = 0


def configure_logging(verbose: bool = False) -> None:
    """Send package logs to stderr as one JSON object per line."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"message": "%(message)s", "name": "%(name)s"}'
        )
    )
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backlog-md",
        description="Parse, check and export markdown product backlogs",
    )
    parser.add_argument(
        "action",
        choices=["parse", "export", "check"],
        help="Action to perform",
    )
    parser.add_argument("file", help="Backlog markdown file")
    parser.add_argument(
        "--config",
        "-c",
        help="TOML config file (default: [tool.backlog-markdown] in ./pyproject.toml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    parse_group = parser.add_argument_group("parse")
    parse_group.add_argument("--json", "-j", action="store_true", help="Output the document as JSON")

    export_group = parser.add_argument_group("export")
    export_group.add_argument(
        "--sections",
        help="Comma-separated section ids to export (e.g., 1,3)",
    )
    export_group.add_argument(
        "--types",
        help="Comma-separated item types to export (e.g., BUG,CT)",
    )
    export_group.add_argument("--output", "-o", help="Write to file instead of stdout")

    check_group = parser.add_argument_group("check")
    check_group.add_argument(
        "--strict",
        action="store_true",
        help="Fail when item ids repeat",
    )
    return parser


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _load_config(args: argparse.Namespace) -> BacklogConfig:
    if args.config:
        return load_config(Path(args.config))
    return load_config_from_pyproject(Path.cwd())


# =============================================================================
# ACTIONS
# =============================================================================


def _entry_label(entry) -> str:
    if isinstance(entry, Item):
        return f"{entry.id} | {entry.title}"
    if isinstance(entry, TableGroup):
        return f"{entry.range_label} | {entry.title} ({len(entry.rows)} rows)"
    return f"[raw] {entry.title}"


def print_summary(document: Document) -> None:
    items = all_items(document)
    print(f"Sections: {len(document.sections)}")
    print(f"Items: {len(items)}")
    for section in document.sections:
        kind = "raw" if section.is_raw else f"{len(section.entries)} entries"
        print(f"\n  {section.id}. {section.title} ({kind})")
        if section.is_raw:
            continue
        for entry in section.entries:
            print(f"     {_entry_label(entry)}")
    if document.warnings:
        print(f"\nWarnings: {len(document.warnings)}")
        for warning in document.warnings:
            print(f"  - {warning}")


def handle_parse(args: argparse.Namespace, document: Document) -> int:
    if args.json:
        print(document.to_json())
    else:
        print_summary(document)
    return EXIT_OK


def handle_export(args: argparse.Namespace, document: Document, config: BacklogConfig) -> int:
    if args.types:
        output = export_types(document, _split_list(args.types), config)
    elif args.sections:
        output = export_sections(document, _split_list(args.sections), config)
    else:
        output = export_document(document, config)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"Exported to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(output)
    return EXIT_OK


def check_item(item: Item, config: BacklogConfig) -> list[str]:
    """Fidelity and round-trip checks for one parsed item."""
    problems = []
    if item.is_verbatim and serialize_item(item, config.screenshot_dir) != item.raw_markdown:
        problems.append(f"{item.id}: serialized text differs from source")

    text = build_item_markdown(item, config.screenshot_dir)
    try:
        reparsed = parse_item(
            text,
            screenshot_dir=config.screenshot_dir,
            clock=lambda: CHECK_CLOCK_MILLIS,
        )
    except BacklogParseError as e:
        problems.append(f"{item.id}: regenerated text does not parse ({e})")
        return problems
    if reparsed != item:
        problems.append(f"{item.id}: regenerated text parses to a different item")
    return problems


def handle_check(args: argparse.Namespace, document: Document, config: BacklogConfig) -> int:
    problems = []
    for item in iter_items(document):
        problems.extend(check_item(item, config))

    duplicates = duplicate_ids(document)
    items_checked = sum(1 for _ in iter_items(document))

    for problem in problems:
        print(f"FAIL {problem}")
    if duplicates:
        print(f"Duplicate ids: {', '.join(duplicates)}")
    print(f"Checked {items_checked} items, {len(problems)} problems")

    if problems:
        return EXIT_LAW_VIOLATION
    if duplicates and args.strict:
        return EXIT_DUPLICATE_IDS
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = _load_config(args)
    except BacklogConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if args.action == "check":
            document = parse_file(Path(args.file), config, clock=lambda: CHECK_CLOCK_MILLIS)
        else:
            document = parse_file(Path(args.file), config)
    except BacklogFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FILE_ERROR

    if args.action == "parse":
        return handle_parse(args, document)
    if args.action == "export":
        return handle_export(args, document, config)
    return handle_check(args, document, config)


if __name__ == "__main__":
    sys.exit(main())
