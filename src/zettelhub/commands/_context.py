"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``.  Vaults are opened lazily so ``--help`` and
``--version`` never touch the index database.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

import click

from zettelhub.infrastructure.database import StoreUnavailable
from zettelhub.output.formatters import format_result
from zettelhub.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterator

    from zettelhub.config.settings import ZhSettings
    from zettelhub.infrastructure.vault import Vault


def store_failure(op: str, exc: StoreUnavailable) -> ServiceResult:
    """Translate an unavailable index into a failed result."""
    if exc.reason == "missing":
        return ServiceResult.failure(
            op,
            ErrorCode.INDEX_NOT_BUILT,
            "No index found for this notebook; run `zh reindex` first",
            db_path=str(exc.db_path),
        )
    return ServiceResult.failure(
        op, ErrorCode.STORE_UNAVAILABLE, str(exc), db_path=str(exc.db_path)
    )


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: ZhSettings) -> None:
        self.settings = settings
        self._vault: Vault | None = None
        self._read_vault: Vault | None = None

        from zettelhub.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from zettelhub.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def vault(self) -> Vault:
        """Vault for indexing commands; creates the index database if needed."""
        if self._vault is None:
            from zettelhub.infrastructure.vault import Vault

            self._vault = Vault(self.settings, create=True)
        return self._vault

    @property
    def read_vault(self) -> Vault:
        """Vault for read commands; never creates an index database."""
        if self._read_vault is None:
            from zettelhub.infrastructure.vault import Vault

            self._read_vault = Vault(self.settings, create=False)
        return self._read_vault

    def close(self) -> None:
        for vault in (self._vault, self._read_vault):
            if vault is not None:
                vault.close()

    @contextmanager
    def store_errors(self, op: str) -> Iterator[None]:
        """Emit ``INDEX_NOT_BUILT`` / ``STORE_UNAVAILABLE`` for store failures."""
        try:
            yield
        except StoreUnavailable as exc:
            self.emit(store_failure(op, exc))

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and exit 1 on failure.

        Success goes to stdout; warnings go to stderr unless they are
        already part of the JSON payload.  Failures go to stderr.
        """
        output = format_result(
            result,
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        if result.ok:
            if output:
                click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
