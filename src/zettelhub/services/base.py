"""BaseService — foundation for all zettelhub services.

Every service receives a :class:`Vault` at construction time. The Vault
provides transactional access to the index database and the notebook
files. Services own their transaction boundaries via
``self._vault.transaction()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from zettelhub.infrastructure.vault import Vault


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class IndexService(BaseService):
            def index_file(self, path: Path) -> ServiceResult:
                with self._vault.transaction() as txn:
                    ...
    """

    def __init__(self, vault: Vault) -> None:
        self._vault = vault
        self._log = structlog.get_logger(type(self).__module__)
