"""SBOM registry shared domain types.

This module defines the value types, normalisers and Pydantic models shared
across the registry.

Key design decisions:
* ``Identity`` and ``ContentHash`` are ``NewType`` wrappers around ``str``
  holding lowercase ``0x``-prefixed hex, so they are hashable, comparable
  and JSON-serialisable without conversion.
* Stored models (:class:`Publisher`, :class:`Record`) are frozen.  A
  change of state (revocation) replaces the stored instance; nothing is
  ever mutated in place.
* Signatures are stored as ``0x`` hex text; the verifier works on bytes.
"""
from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field

from sbom_registry.core.errors import (
    InvalidContentHash,
    InvalidEncoding,
    InvalidIdentity,
)

# ---------------------------------------------------------------------------
# Value types (NewType wrappers)
# ---------------------------------------------------------------------------

Identity = NewType("Identity", str)
"""A 20-byte account address as lowercase ``0x`` hex (42 characters)."""

ContentHash = NewType("ContentHash", str)
"""A 32-byte content digest as lowercase ``0x`` hex (66 characters)."""

NULL_IDENTITY = Identity("0x" + "0" * 40)
"""The zero identity.  Never a valid publisher, admin or signer."""

IDENTITY_BYTES = 20
HASH_BYTES = 32

_IDENTITY_RE: re.Pattern[str] = re.compile(r"^0x[0-9a-f]{40}$")
_HASH_RE: re.Pattern[str] = re.compile(r"^0x[0-9a-f]{64}$")


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Normalisers
# ---------------------------------------------------------------------------

def decode_hex(value: str | bytes, *, field: str = "value") -> bytes:
    """Return *value* as raw bytes.

    ``bytes`` are returned unchanged; text is decoded from hex with an
    optional ``0x`` prefix.

    Raises
    ------
    InvalidEncoding
        If *value* is text that is not valid hex.
    """
    if isinstance(value, bytes | bytearray):
        return bytes(value)
    text = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise InvalidEncoding(
            f"{field} is not valid hex",
            details={"field": field},
        ) from exc


def normalize_identity(value: str | bytes) -> Identity:
    """Normalise *value* to a lowercase ``0x`` identity.

    The null identity is accepted here; callers that require a real
    identity check against :data:`NULL_IDENTITY` themselves.

    Raises
    ------
    InvalidIdentity
        If *value* is not a 20-byte address.
    """
    if isinstance(value, bytes | bytearray):
        if len(value) != IDENTITY_BYTES:
            raise InvalidIdentity(
                f"Identity must be {IDENTITY_BYTES} bytes, got {len(value)}",
            )
        return Identity("0x" + bytes(value).hex())
    candidate = value.strip().lower()
    if not _IDENTITY_RE.match(candidate):
        raise InvalidIdentity(
            f"Malformed identity: {value!r}",
            details={"identity": value},
        )
    return Identity(candidate)


def normalize_hash(value: str | bytes) -> ContentHash:
    """Normalise *value* to a lowercase ``0x`` content hash.

    Raises
    ------
    InvalidContentHash
        If *value* is not a 32-byte digest.
    """
    if isinstance(value, bytes | bytearray):
        if len(value) != HASH_BYTES:
            raise InvalidContentHash(
                f"Content hash must be {HASH_BYTES} bytes, got {len(value)}",
            )
        return ContentHash("0x" + bytes(value).hex())
    candidate = value.strip().lower()
    if not _HASH_RE.match(candidate):
        raise InvalidContentHash(
            f"Malformed content hash: {value!r}",
            details={"content_hash": value},
        )
    return ContentHash(candidate)


def hash_bytes(content_hash: ContentHash) -> bytes:
    """Return the raw 32-byte digest behind a normalised content hash."""
    return bytes.fromhex(content_hash[2:])


# ---------------------------------------------------------------------------
# Stored models
# ---------------------------------------------------------------------------

class Publisher(BaseModel):
    """A publisher identity in the trust table.

    Publishers are created only by the admin and never deleted.  Revocation
    stores a copy with ``verified=False``.  An identity that was never
    registered reads back as a zero-valued publisher (see :meth:`empty`).
    """

    model_config = ConfigDict(strict=True, frozen=True)

    identity: Identity
    name: str = ""
    website: str = ""
    contact_email: str = ""
    verified: bool = False
    registered_at: datetime | None = None

    @classmethod
    def empty(cls, identity: Identity) -> Publisher:
        """Return the zero-valued publisher for an unknown *identity*."""
        return cls(identity=identity)


class Record(BaseModel):
    """One immutable attestation keyed by its content hash.

    ``previous_hash`` is ``None`` for the first version of a chain (the
    root) and the prior version's hash otherwise.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    content_hash: ContentHash
    publisher: Identity
    timestamp: datetime = Field(default_factory=_utcnow)
    metadata: str = Field(
        default="",
        description="Opaque publisher-supplied metadata; never interpreted.",
    )
    previous_hash: ContentHash | None = None
    signature: str = Field(description="65-byte detached signature as 0x hex.")

    @property
    def is_root(self) -> bool:
        """``True`` when this record starts its own version chain."""
        return self.previous_hash is None


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------

class SignatureCheck(BaseModel):
    """Outcome of re-verifying a stored record's signature."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    signer: Identity = NULL_IDENTITY


class VerificationReport(BaseModel):
    """Authenticity and trust summary for one content hash.

    An unknown hash yields ``(False, False, False, "")``.
    """

    model_config = ConfigDict(frozen=True)

    exists: bool = False
    signature_valid: bool = False
    publisher_verified: bool = False
    publisher_name: str = ""

    def as_tuple(self) -> tuple[bool, bool, bool, str]:
        """Return ``(exists, signature_valid, publisher_verified, publisher_name)``."""
        return (
            self.exists,
            self.signature_valid,
            self.publisher_verified,
            self.publisher_name,
        )
