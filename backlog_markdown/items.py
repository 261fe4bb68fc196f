"""
Item block parser.

An item block starts at an `### <ID> | [<emoji>] <title>` line and runs to
the next entry header or the end of its section. The block is walked as a
small state machine over classified lines; metadata and list extraction are
delegated to `metadata` and `lists`.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from backlog_markdown.errors import ItemHeaderError
from backlog_markdown.lines import LineKind, classify_line
from backlog_markdown.lists import (
    ListField,
    add_criterion,
    add_list_entry,
    add_screenshots,
    add_user_story_line,
    detect_list_field,
)
from backlog_markdown.metadata import apply_metadata, split_segments
from backlog_markdown.models import Item, ItemOrigin, type_from_id
from backlog_markdown.screenshots import (
    DEFAULT_SCREENSHOT_DIR,
    find_image_refs,
    in_screenshot_dir,
    now_millis,
)

logger = logging.getLogger(__name__)

ITEM_HEADER = re.compile(
    r"^###\s+(?P<id>[A-Z][A-Z0-9_]*-\d+)\s*\|\s*(?P<title>.*?)\s*$"
)

# A leading pictograph (with optional variation selector / ZWJ sequence).
_PICTO = r"[\u2190-\u21FF\u2300-\u23FF\u2460-\u27BF\u2900-\u297F\u2B00-\u2BFF\U0001F000-\U0001FAFF]"
EMOJI = re.compile(rf"^({_PICTO}\uFE0F?(?:\u200D{_PICTO}\uFE0F?)*)\s+(?=\S)")

_SEPARATOR = re.compile(r"^-{3,}\s*$")


def split_title(title: str) -> tuple[Optional[str], str]:
    """`🚀 Launch` -> ("🚀", "Launch"); titles without a leading emoji pass through."""
    match = EMOJI.match(title)
    if not match:
        return None, title.strip()
    return match.group(1), title[match.end():].strip()


def raw_extent(lines: list[str]) -> int:
    """Number of leading lines that make up a block's raw slice.

    Trailing blank lines are dropped, then a final separator together with
    the blank lines just before it. The header line always stays.
    """
    end = len(lines)
    while end > 1 and not lines[end - 1].strip():
        end -= 1
    if end > 1 and _SEPARATOR.match(lines[end - 1]):
        end -= 1
        while end > 1 and not lines[end - 1].strip():
            end -= 1
    return end


class _ItemState:
    """Mutable walk state for one block."""

    def __init__(self) -> None:
        self.context: Optional[ListField] = None
        self.context_filled = False
        self.in_fence = False
        self.description_open = False
        self.description_done = False

    def open_context(self, list_field: Optional[ListField]) -> None:
        self.context = list_field
        self.context_filled = False

    def close_description(self) -> None:
        if self.description_open:
            self.description_open = False
            self.description_done = True


def parse_item_block(
    lines: list[str],
    position: int = 0,
    *,
    screenshot_dir: str = DEFAULT_SCREENSHOT_DIR,
    warn: Optional[Callable[[str], None]] = None,
    clock: Callable[[], int] = now_millis,
) -> Item:
    """Parse one item block (header line first) into an Item.

    Raises:
        ItemHeaderError: If the first line is not an item header
    """
    if not lines:
        raise ItemHeaderError("")
    header = ITEM_HEADER.match(lines[0])
    if not header:
        raise ItemHeaderError(lines[0])

    warn = warn or (lambda message: None)
    item_id = header.group("id")
    emoji, title = split_title(header.group("title"))
    extent = raw_extent(lines)

    item = Item(
        id=item_id,
        type=type_from_id(item_id) or "",
        title=title,
        emoji=emoji,
        position=position,
        raw_markdown="\n".join(lines[:extent]),
        origin=ItemOrigin.VERBATIM,
    )

    state = _ItemState()
    for text in lines[1:extent]:
        _consume(item, state, text, screenshot_dir, warn, clock)

    return item


def _consume(item, state, text, screenshot_dir, warn, clock) -> None:
    line = classify_line(text)
    kind = line.kind

    if kind == LineKind.FENCE:
        state.in_fence = not state.in_fence
        state.open_context(None)
        state.close_description()
        return
    if state.in_fence:
        return

    if kind == LineKind.BLANK:
        if state.context is not None and state.context_filled:
            state.open_context(None)
        state.close_description()
        return

    if kind == LineKind.LABELED:
        state.close_description()
        for label, value in split_segments(*line.groups):
            _consume_label(item, state, label, value, warn, clock)
        return

    if kind == LineKind.BLOCKQUOTE:
        state.close_description()
        add_user_story_line(item, line.groups[0])
        return

    if kind == LineKind.CHECKBOX:
        state.close_description()
        add_criterion(item, line.groups[0], line.groups[1])
        state.context_filled = True
        return

    if kind in (LineKind.BULLET, LineKind.NUMBERED):
        state.close_description()
        entry = line.groups[0]
        if state.context != ListField.SCREENSHOTS and _asset_images(entry, screenshot_dir):
            add_screenshots(item, entry, clock)
        else:
            add_list_entry(item, state.context, entry, clock)
        state.context_filled = True
        return

    if kind == LineKind.IMAGE:
        state.close_description()
        alt, target = line.groups
        if state.context == ListField.SCREENSHOTS or in_screenshot_dir(target, screenshot_dir):
            add_screenshots(item, text, clock)
            state.context_filled = True
        return

    if kind == LineKind.TEXT:
        if _nested_list_line(state, text):
            _consume(item, state, text.strip(), screenshot_dir, warn, clock)
            return
        state.open_context(None)
        if _asset_images(text, screenshot_dir):
            add_screenshots(item, text, clock)
            return
        if state.description_open:
            # Continuation lines keep their indentation.
            item.description = f"{item.description}\n{text.rstrip()}"
        elif item.description is None and not state.description_done:
            item.description = text.strip()
            state.description_open = True
        return

    # Tables, separators and stray headings end any open list.
    state.open_context(None)
    state.close_description()


def _consume_label(item, state, label, value, warn, clock) -> None:
    if apply_metadata(item, label, value, warn):
        state.open_context(None)
        if item.description is not None:
            state.description_done = True
        return

    list_field = detect_list_field(label)
    if list_field is None:
        logger.debug("%s: ignoring unknown label %r", item.id, label)
        state.open_context(None)
        return

    state.open_context(list_field)
    if not value:
        return
    if list_field == ListField.USER_STORY:
        add_user_story_line(item, value)
    else:
        add_list_entry(item, list_field, value, clock)
    state.context_filled = True


_LIST_KINDS = (LineKind.CHECKBOX, LineKind.BULLET, LineKind.NUMBERED)


def _nested_list_line(state: _ItemState, text: str) -> bool:
    """An indented list line under an open list; it joins that list flattened."""
    if state.description_open or not text[:1].isspace():
        return False
    if state.context is None and not state.context_filled:
        return False
    return classify_line(text.strip()).kind in _LIST_KINDS


def _asset_images(text: str, screenshot_dir: str) -> bool:
    refs = find_image_refs(text)
    return bool(refs) and all(in_screenshot_dir(target, screenshot_dir) for _, target in refs)


def parse_item(
    text: str,
    position: int = 0,
    *,
    screenshot_dir: str = DEFAULT_SCREENSHOT_DIR,
    clock: Callable[[], int] = now_millis,
) -> Item:
    """Parse a standalone item block.

    Leading blank lines are skipped; line endings are normalized.

    Raises:
        ItemHeaderError: If the text does not start with an item header
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    return parse_item_block(lines, position, screenshot_dir=screenshot_dir, clock=clock)
