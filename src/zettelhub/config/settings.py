"""ZhSettings: one frozen object built from flags, environment and TOML.

Later sources only fill what earlier ones leave unset:

* keyword arguments (the global CLI flags),
* ``ZH_*`` environment variables, nested with ``__``
  (``ZH_SEARCH__LIMIT=20``),
* the ``zettelhub.toml`` found by :func:`~zettelhub.config.discovery.find_config`,
* the defaults of the section models.
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from zettelhub.config.discovery import find_config
from zettelhub.config.models import GraphConfig, ImportConfig, IndexConfig, SearchConfig

# Config file handed to the TOML source while from_cli() builds an instance.
_pending_toml: ContextVar[Path | None] = ContextVar("zh_pending_toml", default=None)


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Top-level tables of ``zettelhub.toml`` as settings fields."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._tables = _load_toml(path) if path is not None and path.is_file() else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._tables.get(field_name), field_name, field_name in self._tables

    def __call__(self) -> dict[str, Any]:
        return dict(self._tables)


class ZhSettings(BaseSettings):
    """Settings shared by the CLI and the services.

    ``notebook_root`` is the directory holding ``zettelhub.toml`` unless
    ``--notebook`` names one; without either it is the working directory.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="ZH_",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    notebook_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Global flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # zettelhub.toml tables
    index: IndexConfig = Field(default_factory=IndexConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    import_: ImportConfig = Field(default_factory=ImportConfig, alias="import")
    graph: GraphConfig = Field(default_factory=GraphConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _pending_toml.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        notebook_root: Path | None = None,
        **flags: Any,
    ) -> ZhSettings:
        """Build settings for one CLI invocation.

        Raises:
            click.ClickException: The ``--config`` file is missing, the
                TOML does not parse, or a value fails validation.
        """
        if config_path:
            toml_path: Path | None = Path(config_path)
            if not toml_path.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            toml_path = find_config(notebook_root)

        if notebook_root is None:
            notebook_root = toml_path.parent if toml_path else Path.cwd()

        token = _pending_toml.set(toml_path)
        try:
            return cls(notebook_root=notebook_root.resolve(), config_path=toml_path, **flags)
        except ValidationError as exc:
            where = toml_path or "environment"
            raise click.ClickException(f"Invalid configuration ({where}): {exc}") from exc
        finally:
            _pending_toml.reset(token)
