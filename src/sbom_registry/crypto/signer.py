"""Reference signer for publishers.

Key management sits outside the registry: the core only ever sees
signatures.  :class:`LocalSigner` is the reference implementation of the
signer collaborator, used by tests, examples and simple tooling.  It signs
the signed-message envelope of a content hash, so its output round-trips
through :meth:`SignatureVerifier.recover`.

Keys can be loaded from raw bytes, hex, or PKCS#8 PEM (via
``cryptography``).
"""
from __future__ import annotations

from coincurve import PrivateKey
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from sbom_registry.core.errors import InvalidEncoding, InvalidPrivateKey
from sbom_registry.core.types import ContentHash, Identity, decode_hex
from sbom_registry.crypto.hashing import signed_message_digest
from sbom_registry.crypto.signature import (
    RecoverableSignature,
    digest_bytes,
    identity_from_public_key,
)

_SECRET_LENGTH = 32


class LocalSigner:
    """Holds a secp256k1 private key and produces registry signatures.

    Parameters
    ----------
    secret:
        The 32-byte private scalar.

    Raises
    ------
    InvalidPrivateKey
        If *secret* is not a valid secp256k1 private key.
    """

    __slots__ = ("_identity", "_key")

    def __init__(self, secret: bytes) -> None:
        if len(secret) != _SECRET_LENGTH:
            raise InvalidPrivateKey(
                f"Private key must be {_SECRET_LENGTH} bytes, got {len(secret)}",
            )
        try:
            self._key = PrivateKey(secret)
        except ValueError as exc:
            raise InvalidPrivateKey("Private key is out of range") from exc
        self._identity = identity_from_public_key(self._key.public_key)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls) -> LocalSigner:
        """Create a signer with a fresh random key."""
        return cls(PrivateKey().secret)

    @classmethod
    def from_hex(cls, text: str) -> LocalSigner:
        """Load a key from hex, with or without a ``0x`` prefix."""
        try:
            secret = decode_hex(text.strip(), field="private_key")
        except InvalidEncoding as exc:
            raise InvalidPrivateKey("Private key is not valid hex") from exc
        return cls(secret)

    @classmethod
    def from_pem(cls, data: bytes, password: bytes | None = None) -> LocalSigner:
        """Load a SECP256K1 key from PEM (PKCS#8 or SEC1).

        Raises
        ------
        InvalidPrivateKey
            If the PEM cannot be parsed or holds a key on another curve.
        """
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError) as exc:
            raise InvalidPrivateKey(f"Could not load PEM private key: {exc}") from exc
        if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(
            key.curve, ec.SECP256K1
        ):
            raise InvalidPrivateKey("PEM key is not a secp256k1 private key")
        value = key.private_numbers().private_value
        return cls(value.to_bytes(_SECRET_LENGTH, "big"))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def identity(self) -> Identity:
        """The identity (address) this signer signs as."""
        return self._identity

    def sign_digest(self, digest: bytes | ContentHash | str) -> bytes:
        """Sign a 32-byte content hash.

        Returns
        -------
        bytes
            A 65-byte ``r || s || v`` signature with ``v`` in 27/28.
        """
        message = signed_message_digest(digest_bytes(digest))
        compact = self._key.sign_recoverable(message, hasher=None)
        recovery_id = compact[-1]
        return RecoverableSignature(
            r=int.from_bytes(compact[:32], "big"),
            s=int.from_bytes(compact[32:64], "big"),
            v=recovery_id + 27,
        ).to_bytes()

    def to_pem(self, password: bytes | None = None) -> bytes:
        """Export the key as PKCS#8 PEM, optionally password-encrypted."""
        key = ec.derive_private_key(
            int.from_bytes(self._key.secret, "big"), ec.SECP256K1()
        )
        encryption: serialization.KeySerializationEncryption = (
            serialization.BestAvailableEncryption(password)
            if password
            else serialization.NoEncryption()
        )
        return key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption,
        )

    def __repr__(self) -> str:
        return f"LocalSigner(identity={self._identity!r})"
