"""
Exception hierarchy for backlog-markdown.

Parsing a whole document never raises on content; these are raised by the
single-block helpers, the file/config loaders and the edit helpers.
"""

from __future__ import annotations


class BacklogError(Exception):
    """Base class for all backlog-markdown errors."""

    pass


class BacklogParseError(BacklogError):
    """Raised when a standalone block cannot be parsed."""

    pass


class ItemHeaderError(BacklogParseError):
    """Raised when an item block does not start with an `### ID | title` line."""

    def __init__(self, line: str):
        super().__init__(f"Invalid item header: {line!r}")
        self.line = line


class BacklogFileError(BacklogError):
    """Raised when a backlog file cannot be read."""

    pass


class BacklogConfigError(BacklogError):
    """Raised when configuration is present but invalid."""

    pass


class ItemUpdateError(BacklogError):
    """Raised when an item edit targets an unknown or immutable field."""

    pass


class DuplicateItemIdError(BacklogError):
    """Raised by the strict uniqueness check when item ids repeat."""

    def __init__(self, duplicates: list[str]):
        super().__init__(f"Duplicate item ids: {', '.join(duplicates)}")
        self.duplicates = duplicates


class PlacementError(BacklogError):
    """Raised when no section can receive a new item."""

    pass
