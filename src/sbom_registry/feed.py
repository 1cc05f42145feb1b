"""Event feed and NDJSON export for external indexers.

This module exposes the registry's committed change notifications:

* **EventFeed** -- cursor-based reader over the ledger's event log.
* **NDJSONEventWriter** -- writes events to an async stream, one compact
  JSON object per line.
* **NDJSONEventReader** -- reads such a stream back into typed events.

The log is append-only and totally ordered, so an indexer that persists
its cursor can resume without gaps or duplicates.
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from sbom_registry.core.events import RegistryEvent, parse_event, serialize_event

if TYPE_CHECKING:
    from sbom_registry.core.interfaces import Ledger

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_BATCH_SIZE: int = 100


# ---------------------------------------------------------------------------
# EventFeed
# ---------------------------------------------------------------------------


class EventFeed:
    """Cursor over the committed event log.

    Parameters
    ----------
    ledger:
        The ledger whose events are read.
    cursor:
        Position of the next event to return (0 for the beginning).
    batch_size:
        Maximum number of events returned by one :meth:`poll`.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        cursor: int = 0,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if cursor < 0:
            raise ValueError("cursor must be non-negative")
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._ledger = ledger
        self._cursor = cursor
        self._batch_size = batch_size

    @property
    def cursor(self) -> int:
        """Position of the next unread event."""
        return self._cursor

    async def read(self, since: int = 0, limit: int | None = None) -> list[RegistryEvent]:
        """Return events from position *since* without moving the cursor."""
        return await self._ledger.events(since, limit)

    async def poll(self) -> list[RegistryEvent]:
        """Return the next batch of unread events and advance the cursor."""
        batch = await self._ledger.events(self._cursor, self._batch_size)
        self._cursor += len(batch)
        return batch

    async def drain(self) -> AsyncIterator[RegistryEvent]:
        """Yield every unread event, polling until the log is exhausted."""
        while True:
            batch = await self.poll()
            if not batch:
                return
            for event in batch:
                yield event

    async def pending(self) -> int:
        """Number of committed events not yet returned by :meth:`poll`."""
        return max(await self._ledger.event_count() - self._cursor, 0)


# ---------------------------------------------------------------------------
# NDJSON framing
# ---------------------------------------------------------------------------


class NDJSONEventWriter:
    """Writes events to an async stream as newline-delimited JSON.

    Parameters
    ----------
    writer:
        An :class:`asyncio.StreamWriter` (a file, socket or ``stdout``).
    """

    def __init__(self, writer: asyncio.StreamWriter) -> None:
        self._writer = writer

    async def write_event(self, event: RegistryEvent) -> None:
        """Write one event as a single line and flush."""
        self._writer.write(serialize_event(event).encode("utf-8") + b"\n")
        await self._writer.drain()

    async def write_feed(self, feed: EventFeed) -> int:
        """Write every unread event from *feed*; return how many were written."""
        written = 0
        async for event in feed.drain():
            await self.write_event(event)
            written += 1
        return written


class NDJSONEventReader:
    """Reads events back from a newline-delimited JSON stream.

    Empty lines are skipped.  A malformed line raises
    :class:`~sbom_registry.core.errors.MalformedEvent`.
    """

    def __init__(self, reader: asyncio.StreamReader) -> None:
        self._reader = reader

    async def read_event(self) -> RegistryEvent | None:
        """Return the next event, or ``None`` at end of stream."""
        while True:
            line = await self._reader.readline()
            if not line:
                return None
            stripped = line.rstrip(b"\r\n")
            if not stripped:
                continue
            return parse_event(stripped)

    async def __aiter__(self) -> AsyncIterator[RegistryEvent]:
        while (event := await self.read_event()) is not None:
            yield event
