"""
Backlog data model.

A parsed backlog is a `Document` holding ordered `Section`s, each holding an
ordered list of entries. An entry is exactly one of `Item`, `TableGroup` or
`RawBlock`; every entry class carries a `kind` tag.

Items and table groups remember where their text came from through an
explicit `origin` tag: `VERBATIM` entries re-serialize to their source slice,
`SYNTHESIZED` ones are regenerated from their fields.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Union

ITEM_ID_PATTERN = re.compile(r"^(?P<type>[A-Z][A-Z0-9_]*)-(?P<number>\d+)$")


# =============================================================================
# ENUMS
# =============================================================================


class Severity(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class Priority(str, Enum):
    HAUTE = "Haute"
    MOYENNE = "Moyenne"
    FAIBLE = "Faible"


class Effort(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"


class ItemOrigin(str, Enum):
    """Where an entry's text comes from when serialized."""

    VERBATIM = "verbatim"
    SYNTHESIZED = "synthesized"


class EntryKind(str, Enum):
    ITEM = "item"
    TABLE_GROUP = "table-group"
    RAW = "raw"


SEVERITY_LABELS: dict[Severity, str] = {
    Severity.P0: "Bloquant",
    Severity.P1: "Critique",
    Severity.P2: "Moyenne",
    Severity.P3: "Faible",
    Severity.P4: "Mineure",
}

EFFORT_LABELS: dict[Effort, str] = {
    Effort.XS: "Extra Small",
    Effort.S: "Small",
    Effort.M: "Medium",
    Effort.L: "Large",
    Effort.XL: "Extra Large",
}


def type_from_id(item_id: str) -> Optional[str]:
    """Return the type prefix of an item id (`BUG-001` -> `BUG`), or None."""
    match = ITEM_ID_PATTERN.match(item_id.strip())
    if match:
        return match.group("type")
    return None


def id_number(item_id: str) -> Optional[int]:
    """Return the numeric part of an item id (`BUG-007` -> 7), or None."""
    match = ITEM_ID_PATTERN.match(item_id.strip())
    if match:
        return int(match.group("number"))
    return None


# =============================================================================
# ITEM
# =============================================================================


@dataclass
class Criterion:
    """One acceptance criterion checkbox."""

    text: str
    checked: bool = False


@dataclass
class Screenshot:
    """An image attached to an item."""

    filename: str
    alt: Optional[str] = None
    added_at: int = 0  # epoch milliseconds


@dataclass
class Item:
    """One backlog ticket (`### BUG-001 | Title` block).

    `position`, `raw_markdown` and `origin` describe where the item sits and
    how it was obtained; they do not take part in equality, so two items
    are equal when their ticket content is.
    """

    kind: ClassVar[EntryKind] = EntryKind.ITEM

    id: str
    type: str
    title: str
    emoji: Optional[str] = None
    component: Optional[str] = None
    module: Optional[str] = None
    severity: Optional[Severity] = None
    priority: Optional[Priority] = None
    effort: Optional[Effort] = None
    description: Optional[str] = None
    user_story: Optional[str] = None
    specs: list[str] = field(default_factory=list)
    reproduction: list[str] = field(default_factory=list)
    criteria: list[Criterion] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    constraints: list[str] = field(default_factory=list)
    screens: list[str] = field(default_factory=list)
    screenshots: list[Screenshot] = field(default_factory=list)
    position: int = field(default=0, compare=False)
    raw_markdown: str = field(default="", compare=False, repr=False)
    origin: ItemOrigin = field(default=ItemOrigin.SYNTHESIZED, compare=False)

    @classmethod
    def create(cls, id: str, title: str, **fields) -> Item:
        """Build a new, synthesized item; the type is derived from the id."""
        item_type = type_from_id(id)
        if item_type is None:
            raise ValueError(f"Invalid item id: {id!r}")
        fields.pop("raw_markdown", None)
        fields.pop("origin", None)
        return cls(id=id, type=item_type, title=title, **fields)

    @property
    def is_verbatim(self) -> bool:
        return self.origin == ItemOrigin.VERBATIM and bool(self.raw_markdown)


# =============================================================================
# TABLE GROUPS AND RAW BLOCKS
# =============================================================================


@dataclass
class TableRow:
    """One lightweight ticket inside a table group."""

    id: str
    description: str
    action: str


@dataclass
class TableGroup:
    """Several tickets compressed into one `### BUG-005 à 007 | Title` table."""

    kind: ClassVar[EntryKind] = EntryKind.TABLE_GROUP

    title: str
    range_label: str  # e.g. "BUG-005 à 007", as written
    first_id: str
    last_id: str
    severity: Optional[Severity] = None
    rows: list[TableRow] = field(default_factory=list)
    position: int = field(default=0, compare=False)
    raw_markdown: str = field(default="", compare=False, repr=False)
    origin: ItemOrigin = field(default=ItemOrigin.SYNTHESIZED, compare=False)

    @property
    def type(self) -> Optional[str]:
        return type_from_id(self.first_id)

    def contains(self, row_id: str) -> bool:
        """Check whether an id falls inside the declared range."""
        if type_from_id(row_id) != self.type:
            return False
        number = id_number(row_id)
        low, high = id_number(self.first_id), id_number(self.last_id)
        if number is None or low is None or high is None:
            return False
        return low <= number <= high


@dataclass
class RawBlock:
    """Section text kept verbatim (legend, roadmap, conventions, prose)."""

    kind: ClassVar[EntryKind] = EntryKind.RAW

    title: str
    raw_markdown: str
    position: int = field(default=0, compare=False)


Entry = Union[Item, TableGroup, RawBlock]


# =============================================================================
# SECTION / DOCUMENT
# =============================================================================


@dataclass
class Section:
    """A `## ` section. `id` is positional (1-based), not a stored identity."""

    id: str
    title: str
    raw_header_line: str = ""
    entries: list[Entry] = field(default_factory=list)
    # Set for keyword sections (legend, roadmap) whose body is one RawBlock.
    is_raw: bool = False

    @property
    def items(self) -> list[Item]:
        return [entry for entry in self.entries if isinstance(entry, Item)]

    def add_entry(self, entry: Entry, position: Optional[int] = None) -> None:
        """Insert an entry (appending by default) and renumber positions."""
        if position is None:
            self.entries.append(entry)
        else:
            self.entries.insert(position, entry)
        for index, current in enumerate(self.entries):
            current.position = index


@dataclass
class Document:
    """A parsed backlog document."""

    header: str = ""
    table_of_contents: str = ""
    sections: list[Section] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list, compare=False)

    def get_section(self, section_id: str) -> Optional[Section]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def to_dict(self) -> dict:
        return {
            "header": self.header,
            "table_of_contents": self.table_of_contents,
            "sections": [
                {
                    "id": section.id,
                    "title": section.title,
                    "raw_header_line": section.raw_header_line,
                    "entries": [_entry_to_dict(entry) for entry in section.entries],
                    "is_raw": section.is_raw,
                }
                for section in self.sections
            ],
            "warnings": list(self.warnings),
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False, default=str)

    @classmethod
    def from_dict(cls, data: dict) -> Document:
        sections = [
            Section(
                id=s["id"],
                title=s["title"],
                raw_header_line=s.get("raw_header_line", ""),
                entries=[_entry_from_dict(e) for e in s.get("entries", [])],
                is_raw=s.get("is_raw", False),
            )
            for s in data.get("sections", [])
        ]
        return cls(
            header=data.get("header", ""),
            table_of_contents=data.get("table_of_contents", ""),
            sections=sections,
            warnings=list(data.get("warnings", [])),
        )

    @classmethod
    def from_json(cls, json_str: str) -> Document:
        """Deserialize from JSON string."""
        return cls.from_dict(json.loads(json_str))


def _entry_to_dict(entry: Entry) -> dict:
    data = asdict(entry)
    data["kind"] = entry.kind.value
    return data


def _optional_enum(enum_cls, value):
    return enum_cls(value) if value is not None else None


def _entry_from_dict(data: dict) -> Entry:
    data = dict(data)
    kind = EntryKind(data.pop("kind"))

    if kind == EntryKind.RAW:
        return RawBlock(**data)

    data["origin"] = ItemOrigin(data.get("origin", ItemOrigin.SYNTHESIZED.value))
    data["severity"] = _optional_enum(Severity, data.get("severity"))

    if kind == EntryKind.TABLE_GROUP:
        data["rows"] = [TableRow(**row) for row in data.get("rows", [])]
        return TableGroup(**data)

    data["priority"] = _optional_enum(Priority, data.get("priority"))
    data["effort"] = _optional_enum(Effort, data.get("effort"))
    data["criteria"] = [Criterion(**c) for c in data.get("criteria", [])]
    data["screenshots"] = [Screenshot(**s) for s in data.get("screenshots", [])]
    return Item(**data)
