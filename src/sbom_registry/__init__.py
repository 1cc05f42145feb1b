"""SBOM Attestation Registry.

Publishers sign the content hash of a Software Bill of Materials; the
registry verifies the signature, checks the publisher against an
admin-managed trust list, and links successive versions of the same
artefact into an append-only hash chain.

Layers
------
0. Core types, errors, config, ledger interfaces (:mod:`sbom_registry.core`)
1. Hashing, signer recovery, reference signer (:mod:`sbom_registry.crypto`)
2. Publisher trust, records, version chains (:mod:`sbom_registry.registry`)
3. Change notifications for indexers (:mod:`sbom_registry.feed`)
"""
from __future__ import annotations

__version__ = "1.0.0a1"

# ---------------------------------------------------------------------------
# Layer 0 -- Core types, errors, config, interfaces
# ---------------------------------------------------------------------------
from sbom_registry.core.config import RegistryConfig
from sbom_registry.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    SBOMRegistryError,
    SignatureError,
    ValidationError,
)
from sbom_registry.core.events import (
    AdminTransferred,
    PublisherRegistered,
    PublisherRevoked,
    RecordRegistered,
    RecordUpdated,
    RegistryEvent,
    parse_event,
    serialize_event,
)
from sbom_registry.core.interfaces import (
    InMemoryLedger,
    Ledger,
    LedgerReader,
    LedgerTransaction,
)
from sbom_registry.core.types import (
    NULL_IDENTITY,
    ContentHash,
    Identity,
    Publisher,
    Record,
    SignatureCheck,
    VerificationReport,
)

# ---------------------------------------------------------------------------
# Layer 1 -- Cryptography
# ---------------------------------------------------------------------------
from sbom_registry.crypto import (
    LocalSigner,
    SignatureVerifier,
    content_hash,
    keccak256,
)

# ---------------------------------------------------------------------------
# Layer 3 -- Change notifications
# ---------------------------------------------------------------------------
from sbom_registry.feed import EventFeed, NDJSONEventReader, NDJSONEventWriter

# ---------------------------------------------------------------------------
# Layer 2 -- Registry state
# ---------------------------------------------------------------------------
from sbom_registry.registry import (
    LineageIssue,
    LineageVerificationResult,
    PublisherRegistry,
    RecordStore,
    VersionChainIndex,
)

# ---------------------------------------------------------------------------
# Main orchestrator
# ---------------------------------------------------------------------------
from sbom_registry.service import RegistryService

__all__ = [
    # Meta
    "__version__",
    # Core types
    "Identity",
    "ContentHash",
    "NULL_IDENTITY",
    "Publisher",
    "Record",
    "SignatureCheck",
    "VerificationReport",
    # Config
    "RegistryConfig",
    # Error hierarchy
    "SBOMRegistryError",
    "AuthorizationError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "SignatureError",
    # Ledger
    "Ledger",
    "LedgerReader",
    "LedgerTransaction",
    "InMemoryLedger",
    # Events
    "RegistryEvent",
    "RecordRegistered",
    "RecordUpdated",
    "PublisherRegistered",
    "PublisherRevoked",
    "AdminTransferred",
    "parse_event",
    "serialize_event",
    "EventFeed",
    "NDJSONEventReader",
    "NDJSONEventWriter",
    # Crypto
    "keccak256",
    "content_hash",
    "SignatureVerifier",
    "LocalSigner",
    # Registry
    "PublisherRegistry",
    "RecordStore",
    "VersionChainIndex",
    "LineageIssue",
    "LineageVerificationResult",
    # Orchestrator
    "RegistryService",
]
