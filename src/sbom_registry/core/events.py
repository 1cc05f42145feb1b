"""Change-notification models.

Every successful mutation emits exactly one event inside the same atomic
unit as its state change, so a rejected operation never leaves an event
behind.  Each event carries enough fields for an external indexer to
rebuild the state transition without querying the registry.

The ``type`` literal doubles as the discriminator used by
:func:`parse_event`.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from sbom_registry.core.errors import MalformedEvent
from sbom_registry.core.types import ContentHash, Identity


class RecordRegistered(BaseModel):
    """A new chain root was registered."""

    model_config = ConfigDict(strict=True, frozen=True)

    type: Literal["record_registered"] = "record_registered"
    content_hash: ContentHash
    publisher: Identity
    timestamp: datetime
    metadata: str


class RecordUpdated(BaseModel):
    """A chain was extended from ``old_hash`` to ``new_hash``."""

    model_config = ConfigDict(strict=True, frozen=True)

    type: Literal["record_updated"] = "record_updated"
    old_hash: ContentHash
    new_hash: ContentHash
    publisher: Identity
    timestamp: datetime


class PublisherRegistered(BaseModel):
    """The admin registered (or re-registered) a publisher."""

    model_config = ConfigDict(strict=True, frozen=True)

    type: Literal["publisher_registered"] = "publisher_registered"
    identity: Identity
    name: str
    timestamp: datetime


class PublisherRevoked(BaseModel):
    """The admin revoked a publisher's verified status."""

    model_config = ConfigDict(strict=True, frozen=True)

    type: Literal["publisher_revoked"] = "publisher_revoked"
    identity: Identity
    timestamp: datetime


class AdminTransferred(BaseModel):
    """The admin capability moved to a new identity."""

    model_config = ConfigDict(strict=True, frozen=True)

    type: Literal["admin_transferred"] = "admin_transferred"
    previous_admin: Identity
    new_admin: Identity
    timestamp: datetime


RegistryEvent = (
    RecordRegistered
    | RecordUpdated
    | PublisherRegistered
    | PublisherRevoked
    | AdminTransferred
)
"""Union of every change notification the registry emits."""

_EVENT_TYPES: dict[str, type[BaseModel]] = {
    "record_registered": RecordRegistered,
    "record_updated": RecordUpdated,
    "publisher_registered": PublisherRegistered,
    "publisher_revoked": PublisherRevoked,
    "admin_transferred": AdminTransferred,
}


def serialize_event(event: RegistryEvent) -> str:
    """Serialise *event* to compact JSON with no embedded newlines."""
    return event.model_dump_json()


def parse_event(raw: str | bytes) -> RegistryEvent:
    """Parse one JSON-encoded event back into its typed model.

    Raises
    ------
    MalformedEvent
        If the input is not a JSON object, names an unknown event type, or
        fails validation for that type.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    raw = raw.strip()
    if not raw:
        raise MalformedEvent("Empty event")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedEvent(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedEvent("Event must be a JSON object")

    event_type = data.get("type")
    model = _EVENT_TYPES.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        raise MalformedEvent(
            f"Unknown event type: {event_type!r}",
            details={"type": event_type},
        )

    try:
        # JSON validation so ISO 8601 timestamps pass strict mode.
        return model.model_validate_json(raw)  # type: ignore[return-value]
    except ValidationError as exc:
        raise MalformedEvent(f"Event validation failed: {exc}") from exc
