"""SBOM Registry Service -- the main orchestrator.

This module implements :class:`RegistryService`, the single entry point
for every registry operation.  It composes the signature verifier, the
publisher trust table, the record store and the version-chain index, and
runs each mutating call as one ledger transaction so that every
check-then-write sequence is applied without interleaving.

Pipeline for ``register_record``
--------------------------------

1. **Uniqueness** -- reject a content hash that already has a record.
2. **Signature** -- decode the 65-byte signature and recover its signer.
3. **Ownership** -- the recovered signer must be the submitter.
4. **Trust** -- the submitter must be a verified publisher.
5. **Commit** -- insert the record, start its chain, emit
   ``RecordRegistered``.

``update_record`` replaces step 4 with an ownership check against the
prior version: only the original publisher may extend a chain, and the
publisher's *current* trust status is deliberately not re-checked.

Usage
-----
::

    from sbom_registry.core.config import RegistryConfig
    from sbom_registry.core.interfaces import InMemoryLedger
    from sbom_registry.service import RegistryService

    service = RegistryService(InMemoryLedger(), RegistryConfig(admin=admin))
    await service.initialise()
    await service.register_publisher(admin, vendor, "Acme Corp")
    await service.register_record(vendor, content_hash, "v1.0", signature)
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sbom_registry.core.config import RegistryConfig
from sbom_registry.core.errors import (
    InvalidIdentity,
    MetadataTooLarge,
    NotOriginalPublisher,
    PublisherNotVerified,
    RecordAlreadyExists,
    RecordNotFound,
    SBOMRegistryError,
    SignatureMismatch,
)
from sbom_registry.core.events import RecordRegistered, RecordUpdated
from sbom_registry.core.types import (
    NULL_IDENTITY,
    ContentHash,
    Identity,
    Publisher,
    Record,
    SignatureCheck,
    VerificationReport,
    decode_hex,
    normalize_hash,
    normalize_identity,
)
from sbom_registry.crypto.signature import SignatureVerifier
from sbom_registry.registry.chain import VersionChainIndex
from sbom_registry.registry.lineage import LineageVerificationResult, verify_lineage
from sbom_registry.registry.publishers import PublisherRegistry
from sbom_registry.registry.records import RecordStore

if TYPE_CHECKING:
    from sbom_registry.core.interfaces import Ledger

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RegistryService:
    """Register, extend and verify signed SBOM attestations.

    Parameters
    ----------
    ledger:
        The ledger substrate.  All registry state lives there; the service
        itself holds none.
    config:
        Registry configuration.  Defaults to an unbounded registry with no
        genesis admin.
    verifier:
        Signature verifier; a fresh :class:`SignatureVerifier` by default.
    clock:
        Returns the timestamp recorded on records and events.
    """

    def __init__(
        self,
        ledger: Ledger,
        config: RegistryConfig | None = None,
        *,
        verifier: SignatureVerifier | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ledger = ledger
        self._config = config or RegistryConfig()
        self._verifier = verifier or SignatureVerifier()
        self._clock = clock

        self._publishers = PublisherRegistry(ledger, clock=clock)
        self._records = RecordStore(ledger)
        self._index = VersionChainIndex(ledger, self._config)

    # ------------------------------------------------------------------
    # Genesis and admin
    # ------------------------------------------------------------------

    async def initialise(self) -> Identity:
        """Record the configured admin if the ledger has none yet.

        Returns
        -------
        Identity
            The admin in effect after genesis.

        Raises
        ------
        InvalidIdentity
            If the ledger has no admin and none is configured.
        """
        current = await self._publishers.admin()
        if current is not None:
            logger.debug("Registry already initialised; admin=%s", current)
            return current
        if self._config.admin is None:
            raise InvalidIdentity("No admin configured for registry genesis")
        admin = await self._publishers.initialise(self._config.admin)
        logger.info("Registry initialised; admin=%s", admin)
        return admin

    async def admin(self) -> Identity | None:
        """Return the current admin identity (``None`` before genesis)."""
        return await self._publishers.admin()

    async def transfer_admin(self, caller: str, new_admin: str) -> Identity:
        """Hand the admin capability to *new_admin* (admin only)."""
        try:
            target = await self._publishers.transfer_admin(caller, new_admin)
        except SBOMRegistryError as exc:
            logger.debug("transfer_admin rejected: %s %s", exc.code, exc.message)
            raise
        logger.info("Admin transferred to %s", target)
        return target

    # ------------------------------------------------------------------
    # Publisher management
    # ------------------------------------------------------------------

    async def register_publisher(
        self,
        caller: str,
        identity: str,
        name: str,
        website: str = "",
        contact_email: str = "",
    ) -> Publisher:
        """Register *identity* as a verified publisher (admin only)."""
        try:
            publisher = await self._publishers.register(
                caller, identity, name, website, contact_email
            )
        except SBOMRegistryError as exc:
            logger.debug("register_publisher rejected: %s %s", exc.code, exc.message)
            raise
        logger.info("Publisher registered: %s (%s)", publisher.identity, publisher.name)
        return publisher

    async def revoke_publisher(self, caller: str, identity: str) -> Publisher:
        """Revoke the verified status of *identity* (admin only)."""
        try:
            publisher = await self._publishers.revoke(caller, identity)
        except SBOMRegistryError as exc:
            logger.debug("revoke_publisher rejected: %s %s", exc.code, exc.message)
            raise
        logger.info("Publisher revoked: %s", publisher.identity)
        return publisher

    async def is_verified_publisher(self, identity: str) -> bool:
        """Return ``True`` if *identity* is currently verified."""
        return await self._publishers.is_verified(identity)

    async def get_publisher(self, identity: str) -> Publisher:
        """Return the publisher entry for *identity* (zero-valued if unknown)."""
        try:
            return await self._publishers.get(identity)
        except InvalidIdentity:
            return Publisher.empty(NULL_IDENTITY)

    # ------------------------------------------------------------------
    # Record registration
    # ------------------------------------------------------------------

    async def register_record(
        self,
        submitter: str,
        content_hash: ContentHash | str | bytes,
        metadata: str,
        signature: bytes | str,
    ) -> Record:
        """Register the first version of a new chain.

        Raises
        ------
        RecordAlreadyExists
            If *content_hash* already has a record.
        InvalidSignatureLength, InvalidSignatureVersion
            If *signature* is malformed.
        SignatureMismatch
            If *signature* was not made by *submitter*.
        PublisherNotVerified
            If *submitter* is not a verified publisher.
        MetadataTooLarge
            If *metadata* exceeds ``max_metadata_bytes``.
        """
        try:
            record = await self._register_record(
                submitter, content_hash, metadata, signature
            )
        except SBOMRegistryError as exc:
            logger.debug("register_record rejected: %s %s", exc.code, exc.message)
            raise
        logger.info(
            "Record registered: %s by %s", record.content_hash, record.publisher
        )
        return record

    async def _register_record(
        self,
        submitter: str,
        content_hash: ContentHash | str | bytes,
        metadata: str,
        signature: bytes | str,
    ) -> Record:
        key = normalize_hash(content_hash)
        sender = normalize_identity(submitter)
        signature_bytes = decode_hex(signature, field="signature")

        async with self._ledger.transaction() as txn:
            if await self._records.exists(key, view=txn):
                raise RecordAlreadyExists(details={"content_hash": key})
            self._require_signer(key, signature_bytes, sender)
            if not await self._publishers.is_verified(sender, view=txn):
                raise PublisherNotVerified(
                    "Publisher not verified - please register as publisher first",
                    details={"publisher": sender},
                )
            self._check_metadata(metadata)

            now = self._clock()
            record = Record(
                content_hash=key,
                publisher=sender,
                timestamp=now,
                metadata=metadata,
                previous_hash=None,
                signature="0x" + signature_bytes.hex(),
            )
            await self._records.insert(txn, record)
            self._index.start_chain(txn, key)
            txn.emit(
                RecordRegistered(
                    content_hash=key,
                    publisher=sender,
                    timestamp=now,
                    metadata=metadata,
                )
            )
        return record

    async def update_record(
        self,
        submitter: str,
        old_hash: ContentHash | str | bytes,
        new_hash: ContentHash | str | bytes,
        metadata: str,
        signature: bytes | str,
    ) -> Record:
        """Append *new_hash* to the chain containing *old_hash*.

        Only the publisher of *old_hash* may do this.  The publisher's
        current verified status is not consulted, so a revoked publisher
        can still extend chains it owns.

        Raises
        ------
        RecordNotFound
            If *old_hash* has no record.
        NotOriginalPublisher
            If *submitter* did not publish *old_hash*.
        RecordAlreadyExists
            If *new_hash* already has a record.
        InvalidSignatureLength, InvalidSignatureVersion
            If *signature* is malformed.
        SignatureMismatch
            If *signature* over *new_hash* was not made by *submitter*.
        MetadataTooLarge
            If *metadata* exceeds ``max_metadata_bytes``.
        ChainLengthExceeded
            If the chain is already at ``max_chain_length``.
        """
        try:
            record = await self._update_record(
                submitter, old_hash, new_hash, metadata, signature
            )
        except SBOMRegistryError as exc:
            logger.debug("update_record rejected: %s %s", exc.code, exc.message)
            raise
        logger.info(
            "Record updated: %s -> %s by %s",
            record.previous_hash,
            record.content_hash,
            record.publisher,
        )
        return record

    async def _update_record(
        self,
        submitter: str,
        old_hash: ContentHash | str | bytes,
        new_hash: ContentHash | str | bytes,
        metadata: str,
        signature: bytes | str,
    ) -> Record:
        previous_key = normalize_hash(old_hash)
        key = normalize_hash(new_hash)
        sender = normalize_identity(submitter)
        signature_bytes = decode_hex(signature, field="signature")

        async with self._ledger.transaction() as txn:
            previous = await self._records.get(previous_key, view=txn)
            if previous is None:
                raise RecordNotFound(details={"content_hash": previous_key})
            if previous.publisher != sender:
                raise NotOriginalPublisher(
                    details={"owner": previous.publisher, "submitter": sender},
                )
            if await self._records.exists(key, view=txn):
                raise RecordAlreadyExists(details={"content_hash": key})
            self._require_signer(key, signature_bytes, sender)
            self._check_metadata(metadata)

            now = self._clock()
            record = Record(
                content_hash=key,
                publisher=sender,
                timestamp=now,
                metadata=metadata,
                previous_hash=previous_key,
                signature="0x" + signature_bytes.hex(),
            )
            await self._index.extend(txn, previous_key, key)
            await self._records.insert(txn, record)
            txn.emit(
                RecordUpdated(
                    old_hash=previous_key,
                    new_hash=key,
                    publisher=sender,
                    timestamp=now,
                )
            )
        return record

    # ------------------------------------------------------------------
    # Record queries
    # ------------------------------------------------------------------

    async def exists(self, content_hash: ContentHash | str | bytes) -> bool:
        """Return ``True`` if *content_hash* has a record."""
        return await self._records.exists(content_hash)

    async def get(self, content_hash: ContentHash | str | bytes) -> Record | None:
        """Return the record for *content_hash*, or ``None``."""
        return await self._records.get(content_hash)

    async def verify_record(
        self,
        content_hash: ContentHash | str | bytes,
    ) -> tuple[bool, Record | None]:
        """Return ``(exists, record)`` for *content_hash*."""
        record = await self._records.get(content_hash)
        return record is not None, record

    async def verify_signature(
        self,
        content_hash: ContentHash | str | bytes,
    ) -> SignatureCheck:
        """Re-check the stored signature of *content_hash* against its publisher."""
        record = await self._records.get(content_hash)
        if record is None:
            return SignatureCheck(valid=False)
        try:
            signer = self._verifier.recover(record.content_hash, record.signature)
        except SBOMRegistryError:
            return SignatureCheck(valid=False)
        valid = signer != NULL_IDENTITY and signer == record.publisher
        return SignatureCheck(valid=valid, signer=signer)

    async def verify_complete(
        self,
        content_hash: ContentHash | str | bytes,
    ) -> VerificationReport:
        """Summarise existence, signature validity and publisher trust."""
        record = await self._records.get(content_hash)
        if record is None:
            return VerificationReport()
        check = await self.verify_signature(record.content_hash)
        publisher = await self._publishers.get(record.publisher)
        return VerificationReport(
            exists=True,
            signature_valid=check.valid,
            publisher_verified=publisher.verified,
            publisher_name=publisher.name,
        )

    async def recover_signer(
        self,
        content_hash: ContentHash | str | bytes,
        signature: bytes | str,
    ) -> Identity:
        """Recover the identity that signed *content_hash* (pure function)."""
        return self._verifier.recover(content_hash, signature)

    # ------------------------------------------------------------------
    # Lineage queries
    # ------------------------------------------------------------------

    async def history(
        self,
        content_hash: ContentHash | str | bytes,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ContentHash]:
        """Return the chain containing *content_hash*, oldest first."""
        return await self._index.history(content_hash, offset=offset, limit=limit)

    async def history_records(
        self,
        content_hash: ContentHash | str | bytes,
    ) -> list[Record]:
        """Return the records of the chain containing *content_hash*."""
        result: list[Record] = []
        for version in await self._index.chain(content_hash):
            record = await self._records.get(version)
            if record is not None:
                result.append(record)
        return result

    async def version_count(self, content_hash: ContentHash | str | bytes) -> int:
        """Return the number of versions in the chain (0 if unknown)."""
        return await self._index.version_count(content_hash)

    async def root(self, content_hash: ContentHash | str | bytes) -> ContentHash | None:
        """Return the root of the chain containing *content_hash*."""
        return await self._index.root(content_hash)

    async def latest(
        self,
        content_hash: ContentHash | str | bytes,
    ) -> ContentHash | None:
        """Return the newest version of the chain containing *content_hash*."""
        return await self._index.latest(content_hash)

    async def verify_lineage(
        self,
        content_hash: ContentHash | str | bytes,
    ) -> LineageVerificationResult:
        """Re-verify every link and signature of the chain."""
        return await verify_lineage(
            content_hash,
            records=self._records,
            index=self._index,
            verifier=self._verifier,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_signer(
        self,
        content_hash: ContentHash,
        signature: bytes,
        submitter: Identity,
    ) -> None:
        signer = self._verifier.recover(content_hash, signature)
        if signer == NULL_IDENTITY or signer != submitter:
            raise SignatureMismatch(
                details={"submitter": submitter, "recovered": signer},
            )

    def _check_metadata(self, metadata: str) -> None:
        limit = self._config.max_metadata_bytes
        if limit is None:
            return
        size = len(metadata.encode("utf-8"))
        if size > limit:
            raise MetadataTooLarge(
                f"Metadata is {size} bytes; limit is {limit}",
                details={"size": size, "max_size": limit},
            )
