"""Registry state components.

* **PublisherRegistry** -- publisher trust table and admin capability.
* **RecordStore** -- write-once records keyed by content hash.
* **VersionChainIndex** -- root pointers and ordered version lists.
* **verify_lineage** -- end-to-end re-verification of one chain.

Mutations reach these components only through
:class:`~sbom_registry.service.RegistryService` (and, for the trust table,
:class:`PublisherRegistry` itself), always inside a ledger transaction.
"""
from __future__ import annotations

from sbom_registry.registry.chain import VersionChainIndex
from sbom_registry.registry.lineage import (
    LineageIssue,
    LineageVerificationResult,
    verify_lineage,
)
from sbom_registry.registry.publishers import PublisherRegistry
from sbom_registry.registry.records import RecordStore

__all__ = [
    "LineageIssue",
    "LineageVerificationResult",
    "PublisherRegistry",
    "RecordStore",
    "VersionChainIndex",
    "verify_lineage",
]
