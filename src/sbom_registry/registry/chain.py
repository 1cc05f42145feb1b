"""Version-chain index: root pointers and ordered version lists.

Two derived tables, never holding record content:

* ``root_hash[h]`` -- the genesis hash of the chain containing ``h``.  A
  root points at itself.
* ``version_chain[root]`` -- tuple of every hash in the chain, oldest
  first.  Appends only; entries are never reordered or dropped.

Every query resolves through ``root_hash`` first, so asking about any
version of a chain answers for the whole chain.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from sbom_registry.core.errors import (
    ChainLengthExceeded,
    InvalidContentHash,
    RecordNotFound,
)
from sbom_registry.core.interfaces import ROOT_HASH, VERSION_CHAIN
from sbom_registry.core.types import ContentHash, normalize_hash

if TYPE_CHECKING:
    from sbom_registry.core.config import RegistryConfig
    from sbom_registry.core.interfaces import LedgerReader, LedgerTransaction


class VersionChainIndex:
    """Secondary index linking every hash to its lineage.

    Parameters
    ----------
    ledger:
        Reader for committed state.
    config:
        Supplies the optional chain-length cap and history page size.
    """

    def __init__(self, ledger: LedgerReader, config: RegistryConfig) -> None:
        self._ledger = ledger
        self._config = config

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def root(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> ContentHash | None:
        """Return the root of the chain containing *content_hash*."""
        try:
            key = normalize_hash(content_hash)
        except InvalidContentHash:
            return None
        return await (view or self._ledger).get(ROOT_HASH, key)

    async def chain(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> tuple[ContentHash, ...]:
        """Return the full chain containing *content_hash* (empty if unknown)."""
        reader = view or self._ledger
        root = await self.root(content_hash, view=reader)
        if root is None:
            return ()
        return await reader.get(VERSION_CHAIN, root) or ()

    async def history(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        offset: int = 0,
        limit: int | None = None,
        view: LedgerReader | None = None,
    ) -> list[ContentHash]:
        """Return the chain's hashes oldest first.

        ``limit`` defaults to the configured ``history_page_size``; when
        both are ``None`` the whole chain is returned.
        """
        versions = await self.chain(content_hash, view=view)
        start = max(offset, 0)
        page = limit if limit is not None else self._config.history_page_size
        if page is None:
            return list(versions[start:])
        return list(versions[start : start + max(page, 0)])

    async def version_count(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> int:
        """Return the number of versions in the chain (0 if unknown)."""
        return len(await self.chain(content_hash, view=view))

    async def latest(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> ContentHash | None:
        """Return the most recently appended hash of the chain."""
        versions = await self.chain(content_hash, view=view)
        return versions[-1] if versions else None

    # ------------------------------------------------------------------
    # Mutations (staged inside a caller-owned transaction)
    # ------------------------------------------------------------------

    def start_chain(self, txn: LedgerTransaction, root: ContentHash) -> None:
        """Stage a new single-version chain rooted at *root*."""
        txn.put(ROOT_HASH, root, root)
        txn.put(VERSION_CHAIN, root, (root,))

    async def extend(
        self,
        txn: LedgerTransaction,
        previous_hash: ContentHash,
        new_hash: ContentHash,
    ) -> ContentHash:
        """Stage *new_hash* as the next version after *previous_hash*.

        Returns
        -------
        ContentHash
            The root of the extended chain.

        Raises
        ------
        RecordNotFound
            If *previous_hash* is not indexed.
        ChainLengthExceeded
            If the configured ``max_chain_length`` would be exceeded.
        """
        root = await txn.get(ROOT_HASH, previous_hash)
        if root is None:
            raise RecordNotFound(details={"content_hash": previous_hash})
        versions: tuple[ContentHash, ...] = await txn.get(VERSION_CHAIN, root) or ()
        cap = self._config.max_chain_length
        if cap is not None and len(versions) >= cap:
            raise ChainLengthExceeded(
                f"Chain {root} already holds {len(versions)} versions",
                details={"root_hash": root, "max_chain_length": cap},
            )
        txn.put(ROOT_HASH, new_hash, root)
        txn.put(VERSION_CHAIN, root, (*versions, new_hash))
        return root
