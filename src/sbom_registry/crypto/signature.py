"""Detached-signature decoding and signer recovery (secp256k1).

A registry signature is 65 bytes::

    r (32 bytes, big-endian) || s (32 bytes, big-endian) || v (1 byte)

``v`` is the recovery discriminant.  Both encodings in circulation are
accepted: ``0``/``1`` are normalised to ``27``/``28``; anything else is
rejected with :class:`InvalidSignatureVersion`.

Recovery runs over the signed-message envelope of the digest (see
:mod:`sbom_registry.crypto.hashing`) and yields the signer's identity: the
last 20 bytes of ``keccak256`` over the uncompressed public key.  A
well-formed signature that does not correspond to any curve point recovers
the null identity rather than raising, mirroring ``ecrecover``.
"""
from __future__ import annotations

from dataclasses import dataclass

from coincurve import PublicKey

from sbom_registry.core.errors import (
    InvalidSignatureLength,
    InvalidSignatureVersion,
    SBOMRegistryError,
)
from sbom_registry.core.types import (
    NULL_IDENTITY,
    ContentHash,
    Identity,
    decode_hex,
    hash_bytes,
    normalize_hash,
    normalize_identity,
)
from sbom_registry.crypto.hashing import keccak256, signed_message_digest

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SIGNATURE_LENGTH = 65
SCALAR_LENGTH = 32

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
"""Order of the secp256k1 group."""

_VALID_VERSIONS = (27, 28)


# ---------------------------------------------------------------------------
# Structured signature
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RecoverableSignature:
    """A decoded ``{r, s, v}`` signature with ``v`` normalised to 27/28."""

    r: int
    s: int
    v: int

    @classmethod
    def decode(cls, signature: bytes) -> RecoverableSignature:
        """Decode and validate a 65-byte signature.

        Raises
        ------
        InvalidSignatureLength
            If *signature* is not exactly 65 bytes.
        InvalidSignatureVersion
            If the discriminant is not 0, 1, 27 or 28.
        """
        if len(signature) != SIGNATURE_LENGTH:
            raise InvalidSignatureLength(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}",
                details={"length": len(signature)},
            )
        r = int.from_bytes(signature[:SCALAR_LENGTH], "big")
        s = int.from_bytes(signature[SCALAR_LENGTH : 2 * SCALAR_LENGTH], "big")
        v = signature[2 * SCALAR_LENGTH]
        if v < 27:
            v += 27
        if v not in _VALID_VERSIONS:
            raise InvalidSignatureVersion(
                f"Unsupported signature version byte: {signature[-1]}",
                details={"v": signature[-1]},
            )
        return cls(r=r, s=s, v=v)

    @property
    def recovery_id(self) -> int:
        """The 0/1 recovery id expected by libsecp256k1."""
        return self.v - 27

    def scalars_in_range(self) -> bool:
        """``True`` when both ``r`` and ``s`` lie in ``[1, n - 1]``."""
        return 0 < self.r < SECP256K1_N and 0 < self.s < SECP256K1_N

    def to_bytes(self) -> bytes:
        """Re-encode as ``r || s || v`` with ``v`` in 27/28."""
        return (
            self.r.to_bytes(SCALAR_LENGTH, "big")
            + self.s.to_bytes(SCALAR_LENGTH, "big")
            + bytes([self.v])
        )

    def to_compact(self) -> bytes:
        """Encode as ``r || s || recovery_id`` for libsecp256k1."""
        return (
            self.r.to_bytes(SCALAR_LENGTH, "big")
            + self.s.to_bytes(SCALAR_LENGTH, "big")
            + bytes([self.recovery_id])
        )


def identity_from_public_key(public_key: PublicKey) -> Identity:
    """Derive the 20-byte identity of a secp256k1 public key."""
    uncompressed = public_key.format(compressed=False)
    return normalize_identity(keccak256(uncompressed[1:])[-20:])


def digest_bytes(digest: bytes | ContentHash | str) -> bytes:
    return hash_bytes(normalize_hash(digest))


# ---------------------------------------------------------------------------
# SignatureVerifier
# ---------------------------------------------------------------------------

class SignatureVerifier:
    """Stateless recovery of a signer identity from a digest and signature.

    Usage
    -----
    ::

        verifier = SignatureVerifier()
        signer = verifier.recover(content_hash, signature)
        ok = verifier.verify(content_hash, signature, expected_identity)
    """

    def recover(
        self,
        digest: bytes | ContentHash | str,
        signature: bytes | str,
    ) -> Identity:
        """Recover the identity that signed *digest*.

        Parameters
        ----------
        digest:
            The 32-byte content hash (raw bytes or ``0x`` hex).
        signature:
            The 65-byte detached signature (raw bytes or ``0x`` hex).

        Returns
        -------
        Identity
            The recovered signer, or :data:`NULL_IDENTITY` when the
            signature is well-formed but recovers no valid public key.

        Raises
        ------
        InvalidSignatureLength
            If the signature is not 65 bytes.
        InvalidSignatureVersion
            If the recovery discriminant cannot be normalised.
        InvalidEncoding
            If *signature* is text that is not hex.
        InvalidContentHash
            If *digest* is not 32 bytes.
        """
        parsed = RecoverableSignature.decode(decode_hex(signature, field="signature"))
        message = signed_message_digest(digest_bytes(digest))
        if not parsed.scalars_in_range():
            return NULL_IDENTITY
        try:
            public_key = PublicKey.from_signature_and_message(
                parsed.to_compact(), message, hasher=None
            )
        except ValueError:
            return NULL_IDENTITY
        return identity_from_public_key(public_key)

    def verify(
        self,
        digest: bytes | ContentHash | str,
        signature: bytes | str,
        expected: Identity | str,
    ) -> bool:
        """Return ``True`` iff *signature* over *digest* recovers *expected*.

        Never raises: any decoding or recovery problem yields ``False``.
        """
        try:
            recovered = self.recover(digest, signature)
            expected_identity = normalize_identity(expected)
        except SBOMRegistryError:
            return False
        return recovered != NULL_IDENTITY and recovered == expected_identity
