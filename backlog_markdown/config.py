"""
Configuration for parsing and export.

Read from the `[tool.backlog-markdown]` table of a project's pyproject.toml,
or from a standalone TOML file. Every setting has a default, so an absent
file or table is not an error.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from backlog_markdown.errors import BacklogConfigError
from backlog_markdown.screenshots import DEFAULT_SCREENSHOT_DIR

logger = logging.getLogger(__name__)

TOOL_TABLE = "backlog-markdown"


class BacklogConfig(BaseModel):
    """Settings shared by the parser and the exporter."""

    # Sections whose title contains one of these (accent/case-insensitive)
    # are kept as one raw block.
    raw_section_keywords: list[str] = Field(
        default_factory=lambda: [
            "légende",
            "legend",
            "roadmap",
            "convention",
            "sévérité",
            "priorité",
        ],
        min_length=1,
    )
    # `## <title>` headings that open the table of contents.
    toc_titles: list[str] = Field(
        default_factory=lambda: [
            "table des matières",
            "sommaire",
            "contents",
            "table of contents",
        ],
        min_length=1,
    )
    toc_heading: str = Field(default="Table des matières", min_length=1)
    screenshot_dir: str = Field(default=DEFAULT_SCREENSHOT_DIR, min_length=1)
    document_title: str = Field(default="Product Backlog", min_length=1)


def _from_table(table: dict, source: Path) -> BacklogConfig:
    try:
        return BacklogConfig(**table)
    except ValidationError as e:
        raise BacklogConfigError(f"Invalid configuration in {source}: {e}") from e


def load_config(path: Path) -> BacklogConfig:
    """Load a standalone TOML config file.

    Accepts settings at the top level or under `[tool.backlog-markdown]`.
    """
    path = Path(path)
    if not path.exists():
        raise BacklogConfigError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise BacklogConfigError(f"Could not parse {path}: {e}") from e

    table = data.get("tool", {}).get(TOOL_TABLE, data)
    return _from_table(table, path)


def load_config_from_pyproject(repo_root: Path) -> BacklogConfig:
    """Load configuration from pyproject.toml.

    Args:
        repo_root: Directory holding pyproject.toml

    Returns:
        BacklogConfig (defaults if the file or table is missing)
    """
    pyproject_path = Path(repo_root) / "pyproject.toml"

    if not pyproject_path.exists():
        return BacklogConfig()

    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise BacklogConfigError(f"Could not parse {pyproject_path}: {e}") from e

    tool_config = data.get("tool", {}).get(TOOL_TABLE, {})
    if not tool_config:
        logger.debug("No [tool.%s] table in %s, using defaults", TOOL_TABLE, pyproject_path)
        return BacklogConfig()

    return _from_table(tool_config, pyproject_path)
