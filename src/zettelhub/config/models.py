"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, zettelhub.toml only contains
overrides.  An empty (or absent) config file is a valid notebook.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class IndexConfig(BaseModel):
    """[index] section."""

    model_config = {"frozen": True}

    private_dir: str = ".zh"
    db_filename: str = "index.db"
    extensions: list[str] = Field(default_factory=lambda: [".md"])
    exclude_dirs: list[str] = Field(default_factory=lambda: [".git", ".obsidian"])
    write_generated_ids: bool = True
    backlinks_section: bool = False
    max_reported_failures: int = Field(default=50, ge=1)

    @field_validator("extensions")
    @classmethod
    def _dotted(cls, value: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in value]


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    limit: int = Field(default=50, ge=1)


class ImportConfig(BaseModel):
    """[import] section."""

    model_config = {"frozen": True}

    target_dir: str = "."
    path_template: str = "{{ id }}{% if slug %}-{{ slug }}{% endif %}.md"
    slug_replacement: str = "-"


class GraphConfig(BaseModel):
    """[graph] section."""

    model_config = {"frozen": True}

    depth: int = Field(default=1, ge=1)
