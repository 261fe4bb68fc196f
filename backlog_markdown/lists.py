"""
List field extraction.

A bold label line (`**Spécifications:**`) opens a list context; the bullet,
numbered, checkbox and image lines that follow feed the matching item field.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from backlog_markdown.lines import normalize_label
from backlog_markdown.models import Criterion, Item
from backlog_markdown.screenshots import find_image_refs, now_millis, screenshot_from_ref


class ListField(Enum):
    SPECS = "specs"
    REPRODUCTION = "reproduction"
    CRITERIA = "criteria"
    DEPENDENCIES = "dependencies"
    CONSTRAINTS = "constraints"
    SCREENS = "screens"
    SCREENSHOTS = "screenshots"
    USER_STORY = "user_story"


# Checked in order against the normalized label.
LIST_KEYWORDS: list[tuple[str, ListField]] = [
    ("specification", ListField.SPECS),
    ("reproduction", ListField.REPRODUCTION),
    ("critere", ListField.CRITERIA),
    ("acceptation", ListField.CRITERIA),
    ("acceptance", ListField.CRITERIA),
    ("dependance", ListField.DEPENDENCIES),
    ("dependenc", ListField.DEPENDENCIES),
    ("contrainte", ListField.CONSTRAINTS),
    ("constraint", ListField.CONSTRAINTS),
    ("screenshot", ListField.SCREENSHOTS),
    ("capture", ListField.SCREENSHOTS),
    ("ecran", ListField.SCREENS),
    ("screen", ListField.SCREENS),
    ("user story", ListField.USER_STORY),
]

# Labels written by the serializer, in canonical order.
LIST_LABELS: dict[ListField, str] = {
    ListField.SPECS: "Spécifications",
    ListField.REPRODUCTION: "Reproduction",
    ListField.CRITERIA: "Critères d'acceptation",
    ListField.DEPENDENCIES: "Dépendances",
    ListField.CONSTRAINTS: "Contraintes",
    ListField.SCREENS: "Écrans",
    ListField.SCREENSHOTS: "Screenshots",
}

USER_STORY_LABEL = "User Story"

_PLAIN_LISTS = {
    ListField.SPECS,
    ListField.REPRODUCTION,
    ListField.DEPENDENCIES,
    ListField.CONSTRAINTS,
    ListField.SCREENS,
}


def detect_list_field(label: str) -> Optional[ListField]:
    normalized = normalize_label(label)
    for keyword, list_field in LIST_KEYWORDS:
        if keyword in normalized:
            return list_field
    return None


def add_list_entry(item: Item, list_field: Optional[ListField], text: str, clock=now_millis) -> None:
    """Append a bullet or numbered entry to the list the context points at.

    Entries outside any plain list context go to `specs`.
    """
    text = text.strip()
    if not text:
        return
    if list_field == ListField.SCREENSHOTS:
        if add_screenshots(item, text, clock):
            return
    elif list_field == ListField.CRITERIA:
        item.criteria.append(Criterion(text=text))
        return
    target = list_field if list_field in _PLAIN_LISTS else ListField.SPECS
    getattr(item, target.value).append(text)


def add_criterion(item: Item, mark: str, text: str) -> None:
    item.criteria.append(Criterion(text=text.strip(), checked=mark.lower() == "x"))


def add_screenshots(item: Item, text: str, clock=now_millis) -> int:
    """Add one Screenshot per image reference in text; returns how many."""
    refs = find_image_refs(text)
    for alt, target in refs:
        item.screenshots.append(screenshot_from_ref(alt, target, clock))
    return len(refs)


def add_user_story_line(item: Item, text: str) -> None:
    text = text.strip()
    if not text:
        return
    item.user_story = f"{item.user_story} {text}" if item.user_story else text
