"""Ledger substrate interfaces and in-memory implementation.

The registry core is pure logic layered over an external ledger: durable,
publicly readable key-value storage that applies every mutating call as
one indivisible, totally ordered unit.  This module defines the
*structural* interfaces (``typing.Protocol``) the core consumes, plus an
in-memory ledger suitable for testing and local development.

Every Protocol class is decorated with ``@runtime_checkable`` so that
``isinstance`` checks work at run-time in addition to static analysis.

Contract
--------
* :meth:`Ledger.transaction` serialises writers: at most one transaction
  is open at a time.
* Reads inside a transaction see that transaction's staged writes.
* Leaving the ``async with`` block normally applies every staged write and
  event together.  Leaving it with an exception applies nothing and the
  exception propagates unchanged.
* Reads outside a transaction see the last committed state.

Stored values must be immutable (frozen models, tuples, strings).
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol, runtime_checkable

from sbom_registry.core.events import RegistryEvent

# ---------------------------------------------------------------------------
# Table names
# ---------------------------------------------------------------------------

PUBLISHERS = "publishers"
RECORDS = "records"
ROOT_HASH = "root_hash"
VERSION_CHAIN = "version_chain"
REGISTRY = "registry"


# ===================================================================
# Protocol (interface) definitions
# ===================================================================

@runtime_checkable
class LedgerReader(Protocol):
    """Read access to committed (or, inside a transaction, staged) state."""

    async def get(self, table: str, key: str) -> Any | None:
        """Return the value stored under *key* in *table*, or ``None``."""
        ...


@runtime_checkable
class LedgerTransaction(LedgerReader, Protocol):
    """An open, exclusive write transaction."""

    def put(self, table: str, key: str, value: Any) -> None:
        """Stage *value* under *key* in *table*."""
        ...

    def emit(self, event: RegistryEvent) -> None:
        """Stage a change notification to publish on commit."""
        ...


@runtime_checkable
class Ledger(LedgerReader, Protocol):
    """The ledger substrate: atomic apply plus public reads."""

    def transaction(self) -> AbstractAsyncContextManager[LedgerTransaction]:
        """Open an exclusive transaction (use with ``async with``)."""
        ...

    async def events(
        self,
        since: int = 0,
        limit: int | None = None,
    ) -> list[RegistryEvent]:
        """Return committed events starting at position *since*."""
        ...

    async def event_count(self) -> int:
        """Return the number of committed events."""
        ...


# ===================================================================
# In-memory implementation (testing / development)
# ===================================================================

class _InMemoryTransaction:
    """Staging buffer for :class:`InMemoryLedger`."""

    __slots__ = ("_committed", "events", "writes")

    def __init__(self, committed: dict[str, dict[str, Any]]) -> None:
        self._committed = committed
        self.writes: dict[tuple[str, str], Any] = {}
        self.events: list[RegistryEvent] = []

    async def get(self, table: str, key: str) -> Any | None:
        staged_key = (table, key)
        if staged_key in self.writes:
            return self.writes[staged_key]
        return self._committed.get(table, {}).get(key)

    def put(self, table: str, key: str, value: Any) -> None:
        self.writes[(table, key)] = value

    def emit(self, event: RegistryEvent) -> None:
        self.events.append(event)


class InMemoryLedger:
    """In-memory ledger for testing and development.

    Writers are serialised with an :class:`asyncio.Lock`; the commit step
    contains no ``await`` so concurrent readers observe either the state
    before or the state after a transaction, never a mix.  This
    implementation is NOT durable and NOT shared across processes.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Any]] = {}
        self._events: list[RegistryEvent] = []
        self._lock = asyncio.Lock()

    async def get(self, table: str, key: str) -> Any | None:
        """Return the committed value for *key* in *table*, or ``None``."""
        return self._tables.get(table, {}).get(key)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_InMemoryTransaction]:
        """Open an exclusive transaction; commit on clean exit only."""
        async with self._lock:
            txn = _InMemoryTransaction(self._tables)
            yield txn
            for (table, key), value in txn.writes.items():
                self._tables.setdefault(table, {})[key] = value
            self._events.extend(txn.events)

    async def events(
        self,
        since: int = 0,
        limit: int | None = None,
    ) -> list[RegistryEvent]:
        """Return committed events from position *since* (at most *limit*)."""
        start = max(since, 0)
        if limit is None:
            return list(self._events[start:])
        return list(self._events[start : start + limit])

    async def event_count(self) -> int:
        """Return the number of committed events."""
        return len(self._events)

    def table_size(self, table: str) -> int:
        """Number of committed keys in *table* (test helper)."""
        return len(self._tables.get(table, {}))
