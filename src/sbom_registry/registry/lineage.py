"""Lineage verification for version chains.

Walks the chain containing a content hash from its root to its latest
version and re-checks every link:

1. Each hash in the chain has a stored record.
2. Each record's root pointer names the chain's root.
3. The root record has no ``previous_hash``; every later record's
   ``previous_hash`` is an *earlier* member of the same chain.
4. Each stored signature still recovers the record's publisher.
5. Every version was published by the chain owner (the root's publisher).

Verification never raises; problems are reported as :class:`LineageIssue`
entries.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sbom_registry.core.types import ContentHash

if TYPE_CHECKING:
    from sbom_registry.core.interfaces import LedgerReader
    from sbom_registry.crypto.signature import SignatureVerifier
    from sbom_registry.registry.chain import VersionChainIndex
    from sbom_registry.registry.records import RecordStore

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class LineageIssue:
    """Describes one integrity problem found in a chain."""

    position: int | None
    content_hash: str
    reason: str


@dataclass(slots=True)
class LineageVerificationResult:
    """Result of verifying one version chain.

    Attributes
    ----------
    valid:
        ``True`` if the chain exists and no issue was found.
    root_hash:
        Root of the verified chain, ``None`` if the hash is unknown.
    versions_verified:
        Number of chain entries that were checked.
    issues:
        Every problem detected, in chain order.
    """

    valid: bool
    root_hash: ContentHash | None = None
    versions_verified: int = 0
    issues: list[LineageIssue] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

async def verify_lineage(
    content_hash: ContentHash | str | bytes,
    *,
    records: RecordStore,
    index: VersionChainIndex,
    verifier: SignatureVerifier,
    view: LedgerReader | None = None,
) -> LineageVerificationResult:
    """Verify the chain containing *content_hash*.

    Parameters
    ----------
    content_hash:
        Any version of the chain to verify.
    records:
        Store holding the chain's records.
    index:
        Index holding the root pointers and version list.
    verifier:
        Used to re-check every stored signature.
    view:
        Optional reader to verify against instead of committed state.
    """
    root = await index.root(content_hash, view=view)
    if root is None:
        return LineageVerificationResult(
            valid=False,
            issues=[
                LineageIssue(
                    position=None,
                    content_hash=str(content_hash),
                    reason="content hash is not registered",
                )
            ],
        )

    versions = await index.chain(root, view=view)
    issues: list[LineageIssue] = []
    seen: set[str] = set()
    owner = None

    for position, version in enumerate(versions):
        record = await records.get(version, view=view)
        if record is None:
            issues.append(LineageIssue(position, version, "record missing"))
            seen.add(version)
            continue

        if await index.root(version, view=view) != root:
            issues.append(
                LineageIssue(position, version, "root pointer does not match chain root")
            )

        if position == 0:
            owner = record.publisher
            if version != root:
                issues.append(LineageIssue(position, version, "first version is not the root"))
            if record.previous_hash is not None:
                issues.append(LineageIssue(position, version, "root record has a previous hash"))
        elif record.previous_hash is None or record.previous_hash not in seen:
            issues.append(
                LineageIssue(
                    position,
                    version,
                    "previous version is not an earlier member of the chain",
                )
            )

        if owner is not None and record.publisher != owner:
            issues.append(LineageIssue(position, version, "publisher differs from chain owner"))

        if not verifier.verify(version, record.signature, record.publisher):
            issues.append(
                LineageIssue(position, version, "signature does not recover the publisher")
            )

        seen.add(version)

    return LineageVerificationResult(
        valid=not issues,
        root_hash=root,
        versions_verified=len(versions),
        issues=issues,
    )
