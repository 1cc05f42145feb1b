"""Cryptographic primitives for the SBOM registry.

* **Hashing** -- Keccak-256, the signed-message envelope, and the reference
  content hasher (:mod:`~sbom_registry.crypto.hashing`).
* **SignatureVerifier** -- signer recovery and verification for 65-byte
  secp256k1 signatures (:mod:`~sbom_registry.crypto.signature`).
* **LocalSigner** -- reference signer collaborator
  (:mod:`~sbom_registry.crypto.signer`).
"""
from __future__ import annotations

from sbom_registry.crypto.hashing import (
    SIGNED_MESSAGE_PREFIX,
    content_hash,
    keccak256,
    signed_message_digest,
)
from sbom_registry.crypto.signature import (
    SECP256K1_N,
    SIGNATURE_LENGTH,
    RecoverableSignature,
    SignatureVerifier,
    identity_from_public_key,
)
from sbom_registry.crypto.signer import LocalSigner

__all__ = [
    # Hashing
    "SIGNED_MESSAGE_PREFIX",
    "content_hash",
    "keccak256",
    "signed_message_digest",
    # Signature
    "SECP256K1_N",
    "SIGNATURE_LENGTH",
    "RecoverableSignature",
    "SignatureVerifier",
    "identity_from_public_key",
    # Signer
    "LocalSigner",
]
