"""
Backlog Markdown - Parse and serialize markdown product backlogs.

This package turns a human-edited backlog document into structured items
and back again: unmodified items re-serialize to their exact source text,
edited or new ones are regenerated in the same grammar.
"""

from backlog_markdown.models import (
    Document,
    Section,
    Item,
    TableGroup,
    TableRow,
    RawBlock,
    Entry,
    EntryKind,
    Criterion,
    Screenshot,
    Severity,
    Priority,
    Effort,
    ItemOrigin,
    SEVERITY_LABELS,
    EFFORT_LABELS,
    type_from_id,
)
from backlog_markdown.errors import (
    BacklogError,
    BacklogParseError,
    ItemHeaderError,
    BacklogFileError,
    BacklogConfigError,
    ItemUpdateError,
    DuplicateItemIdError,
    PlacementError,
)
from backlog_markdown.config import (
    BacklogConfig,
    load_config,
    load_config_from_pyproject,
)
from backlog_markdown.parser import (
    parse_document,
    parse_file,
)
from backlog_markdown.items import parse_item
from backlog_markdown.table_groups import parse_table_group
from backlog_markdown.sections import split_sections
from backlog_markdown.queries import (
    all_items,
    items_by_type,
    find_item,
    duplicate_ids,
    check_unique_ids,
    table_group_rows,
)
from backlog_markdown.serializer import (
    serialize_item,
    serialize_table_group,
    update_item,
    toggle_criterion,
)
from backlog_markdown.exporter import (
    export_document,
    export_sections,
    export_types,
    export_item,
    export_item_for_clipboard,
    generate_toc,
)
from backlog_markdown.placement import (
    find_target_section,
    next_item_id,
    place_item,
)
from backlog_markdown.screenshots import (
    generate_screenshot_filename,
    parse_screenshot_filename,
)

__all__ = [
    # models
    "Document",
    "Section",
    "Item",
    "TableGroup",
    "TableRow",
    "RawBlock",
    "Entry",
    "EntryKind",
    "Criterion",
    "Screenshot",
    "Severity",
    "Priority",
    "Effort",
    "ItemOrigin",
    "SEVERITY_LABELS",
    "EFFORT_LABELS",
    "type_from_id",
    # errors
    "BacklogError",
    "BacklogParseError",
    "ItemHeaderError",
    "BacklogFileError",
    "BacklogConfigError",
    "ItemUpdateError",
    "DuplicateItemIdError",
    "PlacementError",
    # config
    "BacklogConfig",
    "load_config",
    "load_config_from_pyproject",
    # parsing
    "parse_document",
    "parse_file",
    "parse_item",
    "parse_table_group",
    "split_sections",
    # queries
    "all_items",
    "items_by_type",
    "find_item",
    "duplicate_ids",
    "check_unique_ids",
    "table_group_rows",
    # serialization
    "serialize_item",
    "serialize_table_group",
    "update_item",
    "toggle_criterion",
    # export
    "export_document",
    "export_sections",
    "export_types",
    "export_item",
    "export_item_for_clipboard",
    "generate_toc",
    # placement
    "find_target_section",
    "next_item_id",
    "place_item",
    # screenshots
    "generate_screenshot_filename",
    "parse_screenshot_filename",
]
