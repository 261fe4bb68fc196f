"""
Screenshot references.

Screenshots live next to the backlog file, in `.backlog-assets/screenshots/`
by default, and are named `<TICKET-ID>_<epoch-millis>.<ext>`.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Optional

from backlog_markdown.lines import IMAGE_REF
from backlog_markdown.models import Screenshot

logger = logging.getLogger(__name__)

DEFAULT_SCREENSHOT_DIR = ".backlog-assets/screenshots"

_FILENAME = re.compile(r"^(?P<ticket>[A-Z][A-Z0-9_]*-\d+)_(?P<timestamp>\d+)\.[A-Za-z0-9]+$")


def now_millis() -> int:
    return int(time.time() * 1000)


def generate_screenshot_filename(ticket_id: str, timestamp: Optional[int] = None) -> str:
    """Generate `<TICKET-ID>_<timestamp>.png`."""
    if timestamp is None:
        timestamp = now_millis()
    return f"{ticket_id}_{timestamp}.png"


def parse_screenshot_filename(filename: str) -> Optional[tuple[str, int]]:
    """Return `(ticket_id, timestamp)` for a conventional filename, else None."""
    match = _FILENAME.match(filename)
    if not match:
        return None
    return match.group("ticket"), int(match.group("timestamp"))


def basename(target: str) -> str:
    return re.split(r"[\\/]", target.strip())[-1]


def in_screenshot_dir(target: str, screenshot_dir: str = DEFAULT_SCREENSHOT_DIR) -> bool:
    """Check whether a link target points into the screenshot directory."""
    folder = screenshot_dir.strip("./\\").replace("\\", "/")
    normalized = target.replace("\\", "/").lstrip("./")
    return normalized.startswith(folder + "/") or f"/{folder}/" in normalized


def screenshot_from_ref(alt: str, target: str, clock=now_millis) -> Screenshot:
    """Build a Screenshot from an image reference.

    The timestamp comes from the filename; when it cannot be read, the
    current time is used instead.
    """
    filename = basename(target)
    parsed = parse_screenshot_filename(filename)
    if parsed is None:
        logger.debug("No timestamp in screenshot filename %s, using current time", filename)
        added_at = clock()
    else:
        added_at = parsed[1]
    return Screenshot(filename=filename, alt=alt.strip() or None, added_at=added_at)


def find_image_refs(text: str) -> list[tuple[str, str]]:
    """Return `(alt, target)` for every inline image in text."""
    return [(m.group(1), m.group(2)) for m in IMAGE_REF.finditer(text)]


def screenshot_markdown_ref(
    screenshot: Screenshot,
    screenshot_dir: str = DEFAULT_SCREENSHOT_DIR,
    base_path: Optional[str] = None,
) -> str:
    """Markdown image line for a screenshot.

    With `base_path`, the link is absolute (clipboard export) and the alt
    text falls back to the filename stem.
    """
    if base_path:
        alt = screenshot.alt or screenshot.filename.rsplit(".", 1)[0]
        separator = "\\" if "\\" in base_path else "/"
        return f"![{alt}]({base_path.rstrip(separator)}{separator}{screenshot.filename})"
    return f"![{screenshot.alt or ''}]({screenshot_dir.rstrip('/')}/{screenshot.filename})"
