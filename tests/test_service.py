"""Tests for the registry service orchestrator.

Covers the full pipeline with real secp256k1 keys:

1. **Genesis** -- initialise from config, idempotency, missing admin.
2. **Registration** -- happy path, each rejection and its ordering.
3. **Updates** -- ownership, signatures, revoked publishers, chain cap.
4. **Queries** -- verification reports, history, lineage, recovery.
5. **Logging** -- INFO on success, DEBUG with the error code on rejection.
"""
from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest

from sbom_registry.core.config import RegistryConfig
from sbom_registry.core.errors import (
    ChainLengthExceeded,
    InvalidContentHash,
    InvalidEncoding,
    InvalidIdentity,
    InvalidSignatureLength,
    InvalidSignatureVersion,
    MetadataTooLarge,
    NotOriginalPublisher,
    PublisherNotVerified,
    RecordAlreadyExists,
    RecordNotFound,
    SignatureMismatch,
)
from sbom_registry.core.events import RecordRegistered, RecordUpdated
from sbom_registry.core.interfaces import RECORDS, InMemoryLedger
from sbom_registry.core.types import NULL_IDENTITY, Record, VerificationReport
from sbom_registry.crypto import LocalSigner, content_hash
from sbom_registry.service import RegistryService

# ---------------------------------------------------------------------------
# Constants used across tests
# ---------------------------------------------------------------------------

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)
H1 = content_hash(b"acme-sbom-1.0.0")
H2 = content_hash(b"acme-sbom-1.1.0")
H3 = content_hash(b"acme-sbom-1.2.0")


@pytest.fixture()
def admin() -> LocalSigner:
    return LocalSigner.generate()


@pytest.fixture()
def vendor() -> LocalSigner:
    return LocalSigner.generate()


@pytest.fixture()
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


async def make_service(
    ledger: InMemoryLedger,
    admin: LocalSigner,
    vendor: LocalSigner,
    **config: object,
) -> RegistryService:
    service = RegistryService(
        ledger,
        RegistryConfig(admin=admin.identity, **config),
        clock=lambda: NOW,
    )
    await service.initialise()
    await service.register_publisher(admin.identity, vendor.identity, "Acme Corp")
    return service


@pytest.fixture()
async def service(
    ledger: InMemoryLedger, admin: LocalSigner, vendor: LocalSigner
) -> RegistryService:
    return await make_service(ledger, admin, vendor)


# ===================================================================
# Test: Genesis
# ===================================================================


class TestInitialise:
    @pytest.mark.asyncio
    async def test_sets_admin(self, ledger: InMemoryLedger, admin: LocalSigner) -> None:
        svc = RegistryService(ledger, RegistryConfig(admin=admin.identity))
        assert await svc.admin() is None
        assert await svc.initialise() == admin.identity
        assert await svc.admin() == admin.identity

    @pytest.mark.asyncio
    async def test_existing_admin_wins(
        self, ledger: InMemoryLedger, admin: LocalSigner, vendor: LocalSigner
    ) -> None:
        await RegistryService(ledger, RegistryConfig(admin=admin.identity)).initialise()
        other = RegistryService(ledger, RegistryConfig(admin=vendor.identity))
        assert await other.initialise() == admin.identity

    @pytest.mark.asyncio
    async def test_missing_admin(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(InvalidIdentity):
            await RegistryService(ledger).initialise()

    @pytest.mark.asyncio
    async def test_transfer_admin(
        self, service: RegistryService, admin: LocalSigner, vendor: LocalSigner
    ) -> None:
        await service.transfer_admin(admin.identity, vendor.identity)
        assert await service.admin() == vendor.identity


# ===================================================================
# Test: Registration
# ===================================================================


class TestRegisterRecord:
    @pytest.mark.asyncio
    async def test_happy_path(
        self, service: RegistryService, vendor: LocalSigner, ledger: InMemoryLedger
    ) -> None:
        sig = vendor.sign_digest(H1)
        record = await service.register_record(vendor.identity, H1, "v1.0.0", sig)

        assert record == Record(
            content_hash=H1,
            publisher=vendor.identity,
            timestamp=NOW,
            metadata="v1.0.0",
            previous_hash=None,
            signature="0x" + sig.hex(),
        )
        assert await service.get(H1) == record
        assert await service.history(H1) == [H1]
        assert await service.root(H1) == H1
        events = await ledger.events()
        assert events[-1] == RecordRegistered(
            content_hash=H1, publisher=vendor.identity, timestamp=NOW, metadata="v1.0.0"
        )

    @pytest.mark.asyncio
    async def test_hex_signature_and_uppercase_inputs(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        sig = "0x" + vendor.sign_digest(H1).hex()
        record = await service.register_record(
            vendor.identity.upper().replace("0X", "0x"),
            H1.upper().replace("0X", "0x"),
            "",
            sig,
        )
        assert record.content_hash == H1
        assert record.publisher == vendor.identity

    @pytest.mark.asyncio
    async def test_duplicate(self, service: RegistryService, vendor: LocalSigner) -> None:
        sig = vendor.sign_digest(H1)
        await service.register_record(vendor.identity, H1, "first", sig)
        with pytest.raises(RecordAlreadyExists):
            await service.register_record(vendor.identity, H1, "second", sig)
        assert (await service.get(H1)).metadata == "first"

    @pytest.mark.asyncio
    async def test_duplicate_checked_before_signature(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        with pytest.raises(RecordAlreadyExists):
            await service.register_record(vendor.identity, H1, "", b"\x00" * 10)

    @pytest.mark.asyncio
    async def test_signature_length(self, service: RegistryService, vendor: LocalSigner) -> None:
        with pytest.raises(InvalidSignatureLength):
            await service.register_record(vendor.identity, H1, "", b"\x00" * 64)

    @pytest.mark.asyncio
    async def test_signature_version(self, service: RegistryService, vendor: LocalSigner) -> None:
        sig = bytearray(vendor.sign_digest(H1))
        sig[-1] = 5
        with pytest.raises(InvalidSignatureVersion):
            await service.register_record(vendor.identity, H1, "", bytes(sig))

    @pytest.mark.asyncio
    async def test_zero_one_version_accepted(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        sig = bytearray(vendor.sign_digest(H1))
        sig[-1] -= 27
        await service.register_record(vendor.identity, H1, "", bytes(sig))
        assert (await service.verify_signature(H1)).valid

    @pytest.mark.asyncio
    async def test_signature_by_someone_else(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        forger = LocalSigner.generate()
        with pytest.raises(SignatureMismatch) as exc_info:
            await service.register_record(vendor.identity, H1, "", forger.sign_digest(H1))
        assert exc_info.value.message == "Invalid signature - signer does not match sender"

    @pytest.mark.asyncio
    async def test_signature_over_other_hash(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        with pytest.raises(SignatureMismatch):
            await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H2))

    @pytest.mark.asyncio
    async def test_unrecoverable_signature(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        sig = bytes(32) + (1).to_bytes(32, "big") + b"\x1b"
        with pytest.raises(SignatureMismatch):
            await service.register_record(vendor.identity, H1, "", sig)

    @pytest.mark.asyncio
    async def test_null_submitter_cannot_register(self, service: RegistryService) -> None:
        sig = bytes(32) + (1).to_bytes(32, "big") + b"\x1b"
        with pytest.raises(SignatureMismatch):
            await service.register_record(NULL_IDENTITY, H1, "", sig)

    @pytest.mark.asyncio
    async def test_unverified_publisher(self, service: RegistryService) -> None:
        outsider = LocalSigner.generate()
        with pytest.raises(PublisherNotVerified) as exc_info:
            await service.register_record(
                outsider.identity, H1, "", outsider.sign_digest(H1)
            )
        assert exc_info.value.code == "SR-E102"

    @pytest.mark.asyncio
    async def test_revoked_publisher(
        self, service: RegistryService, admin: LocalSigner, vendor: LocalSigner
    ) -> None:
        await service.revoke_publisher(admin.identity, vendor.identity)
        with pytest.raises(PublisherNotVerified):
            await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))

    @pytest.mark.asyncio
    async def test_malformed_inputs(self, service: RegistryService, vendor: LocalSigner) -> None:
        sig = vendor.sign_digest(H1)
        with pytest.raises(InvalidContentHash):
            await service.register_record(vendor.identity, "0x1234", "", sig)
        with pytest.raises(InvalidIdentity):
            await service.register_record("vendor", H1, "", sig)
        with pytest.raises(InvalidEncoding):
            await service.register_record(vendor.identity, H1, "", "0xzz")

    @pytest.mark.asyncio
    async def test_metadata_is_opaque(self, service: RegistryService, vendor: LocalSigner) -> None:
        metadata = '{"not": "validated", "emoji": "☃"} <script>'
        await service.register_record(vendor.identity, H1, metadata, vendor.sign_digest(H1))
        assert (await service.get(H1)).metadata == metadata

    @pytest.mark.asyncio
    async def test_metadata_limit(
        self, ledger: InMemoryLedger, admin: LocalSigner, vendor: LocalSigner
    ) -> None:
        svc = await make_service(ledger, admin, vendor, max_metadata_bytes=4)
        with pytest.raises(MetadataTooLarge):
            await svc.register_record(vendor.identity, H1, "12345", vendor.sign_digest(H1))
        await svc.register_record(vendor.identity, H1, "1234", vendor.sign_digest(H1))

    @pytest.mark.asyncio
    async def test_rejection_leaves_no_trace(
        self, service: RegistryService, vendor: LocalSigner, ledger: InMemoryLedger
    ) -> None:
        before = await ledger.event_count()
        with pytest.raises(SignatureMismatch):
            await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H2))
        assert await ledger.event_count() == before
        assert ledger.table_size(RECORDS) == 0
        assert await service.history(H1) == []


# ===================================================================
# Test: Updates
# ===================================================================


class TestUpdateRecord:
    @pytest.fixture()
    async def registered(
        self, service: RegistryService, vendor: LocalSigner
    ) -> RegistryService:
        await service.register_record(vendor.identity, H1, "v1", vendor.sign_digest(H1))
        return service

    @pytest.mark.asyncio
    async def test_happy_path(
        self, registered: RegistryService, vendor: LocalSigner, ledger: InMemoryLedger
    ) -> None:
        record = await registered.update_record(
            vendor.identity, H1, H2, "v2", vendor.sign_digest(H2)
        )
        assert record.previous_hash == H1
        assert await registered.history(H2) == [H1, H2]
        assert await registered.root(H2) == H1
        assert await registered.version_count(H1) == 2
        assert await registered.latest(H1) == H2
        events = await ledger.events()
        assert events[-1] == RecordUpdated(
            old_hash=H1, new_hash=H2, publisher=vendor.identity, timestamp=NOW
        )

    @pytest.mark.asyncio
    async def test_old_record_untouched(
        self, registered: RegistryService, vendor: LocalSigner
    ) -> None:
        before = await registered.get(H1)
        await registered.update_record(vendor.identity, H1, H2, "v2", vendor.sign_digest(H2))
        assert await registered.get(H1) == before

    @pytest.mark.asyncio
    async def test_missing_original(self, service: RegistryService, vendor: LocalSigner) -> None:
        with pytest.raises(RecordNotFound):
            await service.update_record(vendor.identity, H1, H2, "", vendor.sign_digest(H2))

    @pytest.mark.asyncio
    async def test_not_original_publisher(
        self, registered: RegistryService, admin: LocalSigner
    ) -> None:
        rival = LocalSigner.generate()
        await registered.register_publisher(admin.identity, rival.identity, "Rival")
        with pytest.raises(NotOriginalPublisher) as exc_info:
            await registered.update_record(rival.identity, H1, H2, "", rival.sign_digest(H2))
        assert exc_info.value.message == "Only the original publisher can update this record"

    @pytest.mark.asyncio
    async def test_new_hash_taken(self, registered: RegistryService, vendor: LocalSigner) -> None:
        with pytest.raises(RecordAlreadyExists):
            await registered.update_record(vendor.identity, H1, H1, "", vendor.sign_digest(H1))

    @pytest.mark.asyncio
    async def test_signature_must_cover_new_hash(
        self, registered: RegistryService, vendor: LocalSigner
    ) -> None:
        with pytest.raises(SignatureMismatch):
            await registered.update_record(vendor.identity, H1, H2, "", vendor.sign_digest(H1))

    @pytest.mark.asyncio
    async def test_revoked_publisher_can_still_update(
        self, registered: RegistryService, admin: LocalSigner, vendor: LocalSigner
    ) -> None:
        await registered.revoke_publisher(admin.identity, vendor.identity)
        await registered.update_record(vendor.identity, H1, H2, "v2", vendor.sign_digest(H2))
        report = await registered.verify_complete(H2)
        assert report.as_tuple() == (True, True, False, "Acme Corp")

    @pytest.mark.asyncio
    async def test_fork_from_older_version_appends(
        self, registered: RegistryService, vendor: LocalSigner
    ) -> None:
        await registered.update_record(vendor.identity, H1, H2, "", vendor.sign_digest(H2))
        await registered.update_record(vendor.identity, H1, H3, "", vendor.sign_digest(H3))
        assert await registered.history(H3) == [H1, H2, H3]
        assert (await registered.get(H3)).previous_hash == H1

    @pytest.mark.asyncio
    async def test_chain_cap(
        self, ledger: InMemoryLedger, admin: LocalSigner, vendor: LocalSigner
    ) -> None:
        svc = await make_service(ledger, admin, vendor, max_chain_length=2)
        await svc.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        await svc.update_record(vendor.identity, H1, H2, "", vendor.sign_digest(H2))
        with pytest.raises(ChainLengthExceeded):
            await svc.update_record(vendor.identity, H2, H3, "", vendor.sign_digest(H3))
        assert not await svc.exists(H3)
        assert await svc.version_count(H1) == 2


# ===================================================================
# Test: Queries
# ===================================================================


class TestQueries:
    @pytest.mark.asyncio
    async def test_unknown_hash(self, service: RegistryService) -> None:
        assert not await service.exists(H1)
        assert await service.get(H1) is None
        assert await service.verify_record(H1) == (False, None)
        check = await service.verify_signature(H1)
        assert not check.valid
        assert check.signer == NULL_IDENTITY
        assert await service.verify_complete(H1) == VerificationReport()
        assert (await service.verify_complete(H1)).as_tuple() == (False, False, False, "")
        assert await service.history(H1) == []
        assert await service.history_records(H1) == []
        assert await service.version_count(H1) == 0
        assert await service.root(H1) is None
        assert await service.latest(H1) is None

    @pytest.mark.asyncio
    async def test_malformed_hash_queries_do_not_raise(self, service: RegistryService) -> None:
        assert not await service.exists("0xnope")
        assert await service.verify_record("0xnope") == (False, None)
        assert not (await service.verify_signature("0xnope")).valid
        assert not (await service.verify_complete("0xnope")).exists
        assert await service.history("0xnope") == []

    @pytest.mark.asyncio
    async def test_verify_complete(self, service: RegistryService, vendor: LocalSigner) -> None:
        await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        report = await service.verify_complete(H1)
        assert report.as_tuple() == (True, True, True, "Acme Corp")

    @pytest.mark.asyncio
    async def test_verify_record(self, service: RegistryService, vendor: LocalSigner) -> None:
        record = await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        assert await service.verify_record(H1) == (True, record)

    @pytest.mark.asyncio
    async def test_verify_signature(self, service: RegistryService, vendor: LocalSigner) -> None:
        await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        check = await service.verify_signature(H1)
        assert check.valid
        assert check.signer == vendor.identity

    @pytest.mark.asyncio
    async def test_history_records(self, service: RegistryService, vendor: LocalSigner) -> None:
        await service.register_record(vendor.identity, H1, "v1", vendor.sign_digest(H1))
        await service.update_record(vendor.identity, H1, H2, "v2", vendor.sign_digest(H2))
        records = await service.history_records(H2)
        assert [r.metadata for r in records] == ["v1", "v2"]

    @pytest.mark.asyncio
    async def test_history_paging(self, service: RegistryService, vendor: LocalSigner) -> None:
        await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        await service.update_record(vendor.identity, H1, H2, "", vendor.sign_digest(H2))
        await service.update_record(vendor.identity, H2, H3, "", vendor.sign_digest(H3))
        assert await service.history(H1, offset=1, limit=1) == [H2]

    @pytest.mark.asyncio
    async def test_recover_signer(self, service: RegistryService, vendor: LocalSigner) -> None:
        assert await service.recover_signer(H1, vendor.sign_digest(H1)) == vendor.identity

    @pytest.mark.asyncio
    async def test_verify_lineage(self, service: RegistryService, vendor: LocalSigner) -> None:
        await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        await service.update_record(vendor.identity, H1, H2, "", vendor.sign_digest(H2))
        result = await service.verify_lineage(H2)
        assert result.valid
        assert result.root_hash == H1
        assert result.versions_verified == 2

    @pytest.mark.asyncio
    async def test_publisher_queries(
        self, service: RegistryService, vendor: LocalSigner
    ) -> None:
        assert await service.is_verified_publisher(vendor.identity)
        assert (await service.get_publisher(vendor.identity)).name == "Acme Corp"
        assert not await service.is_verified_publisher("bogus")
        assert (await service.get_publisher("bogus")).identity == NULL_IDENTITY


# ===================================================================
# Test: Logging
# ===================================================================


class TestLogging:
    @pytest.mark.asyncio
    async def test_success_logged_at_info(
        self,
        service: RegistryService,
        vendor: LocalSigner,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO, logger="sbom_registry.service"):
            await service.register_record(vendor.identity, H1, "", vendor.sign_digest(H1))
        assert any(
            r.levelno == logging.INFO and "Record registered" in r.getMessage()
            for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_rejection_logged_at_debug_with_code(
        self,
        service: RegistryService,
        vendor: LocalSigner,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="sbom_registry.service"):
            with pytest.raises(SignatureMismatch):
                await service.register_record(
                    vendor.identity, H1, "", vendor.sign_digest(H2)
                )
        assert any(
            r.levelno == logging.DEBUG and "SR-E502" in r.getMessage()
            for r in caplog.records
        )
