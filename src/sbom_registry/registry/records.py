"""Write-once record table keyed by content hash."""
from __future__ import annotations

from typing import TYPE_CHECKING

from sbom_registry.core.errors import InvalidContentHash, RecordAlreadyExists
from sbom_registry.core.interfaces import RECORDS
from sbom_registry.core.types import ContentHash, Record, normalize_hash

if TYPE_CHECKING:
    from sbom_registry.core.interfaces import LedgerReader, LedgerTransaction


class RecordStore:
    """Owns every :class:`Record`.

    Records are inserted exactly once and never updated or removed.
    Lookups with a malformed hash behave as lookups of an absent hash.
    """

    def __init__(self, ledger: LedgerReader) -> None:
        self._ledger = ledger

    async def get(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> Record | None:
        """Return the record for *content_hash*, or ``None``."""
        try:
            key = normalize_hash(content_hash)
        except InvalidContentHash:
            return None
        return await (view or self._ledger).get(RECORDS, key)

    async def exists(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> bool:
        """Return ``True`` if a record for *content_hash* exists."""
        return await self.get(content_hash, view=view) is not None

    async def insert(self, txn: LedgerTransaction, record: Record) -> None:
        """Stage *record* for insertion.

        Raises
        ------
        RecordAlreadyExists
            If a record with the same content hash is committed or staged.
        """
        if await txn.get(RECORDS, record.content_hash) is not None:
            raise RecordAlreadyExists(details={"content_hash": record.content_hash})
        txn.put(RECORDS, record.content_hash, record)
