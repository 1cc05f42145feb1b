"""Keccak-256 hashing and signed-message domain separation.

The registry never hashes artifact content itself; callers submit a
32-byte content hash.  :func:`content_hash` is the reference hasher for
callers that have the raw bytes at hand.

Signatures are never made over a bare digest.  The digest is first wrapped
in the standard signed-message envelope::

    keccak256(b"\\x19Ethereum Signed Message:\\n" + b"32" + digest)

so that a registry signature can never be replayed as a signature over an
unrelated 32-byte value (for example a transaction hash).
"""
from __future__ import annotations

from Crypto.Hash import keccak

from sbom_registry.core.types import ContentHash, normalize_hash

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
"""ASCII prefix of the signed-message envelope (followed by the length)."""


def keccak256(data: bytes) -> bytes:
    """Return the 32-byte Keccak-256 digest of *data*.

    This is the original Keccak padding, not NIST SHA3-256.
    """
    hasher = keccak.new(digest_bits=256)
    hasher.update(data)
    return hasher.digest()


def signed_message_digest(digest: bytes) -> bytes:
    """Wrap *digest* in the signed-message envelope and hash it."""
    length = str(len(digest)).encode("ascii")
    return keccak256(SIGNED_MESSAGE_PREFIX + length + digest)


def content_hash(data: bytes) -> ContentHash:
    """Hash raw artifact bytes into a registry content hash."""
    return normalize_hash(keccak256(data))
