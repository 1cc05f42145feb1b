"""Shared fixtures for SBOM registry conformance tests.

Provides a fresh in-memory ledger, real secp256k1 identities for the admin,
a verified publisher ("Acme") and an outsider that was never registered,
plus an initialised :class:`RegistryService` wired to them.
"""
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from sbom_registry.core.config import RegistryConfig
from sbom_registry.core.interfaces import InMemoryLedger
from sbom_registry.crypto import LocalSigner, content_hash
from sbom_registry.service import RegistryService

# ---------------------------------------------------------------------------
# Common values used across tests
# ---------------------------------------------------------------------------
PUBLISHER_NAME = "Acme"
GENESIS_TIME = datetime(2024, 1, 1, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Identity fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def admin() -> LocalSigner:
    return LocalSigner.generate()


@pytest.fixture()
def publisher() -> LocalSigner:
    """Publisher ``P``: registered and verified by the service fixture."""
    return LocalSigner.generate()


@pytest.fixture()
def outsider() -> LocalSigner:
    """Publisher ``Q``: never added to the trust table."""
    return LocalSigner.generate()


# ---------------------------------------------------------------------------
# Ledger and service fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture()
async def service(
    ledger: InMemoryLedger,
    admin: LocalSigner,
    publisher: LocalSigner,
) -> RegistryService:
    svc = RegistryService(
        ledger,
        RegistryConfig(admin=admin.identity),
        clock=lambda: GENESIS_TIME,
    )
    await svc.initialise()
    await svc.register_publisher(admin.identity, publisher.identity, PUBLISHER_NAME)
    return svc


# ---------------------------------------------------------------------------
# Content hashes
# ---------------------------------------------------------------------------
@pytest.fixture()
def hashes() -> list[str]:
    """Ten distinct content hashes, ``hashes[0]`` standing in for ``H1``."""
    return [content_hash(f"acme-sbom-{i}.json".encode()) for i in range(1, 11)]
