#!/usr/bin/env python3
"""SBOM registry quickstart.

Demonstrates the core workflow of the registry:

1. Create a registry service over an in-memory ledger.
2. Register a verified publisher.
3. Register a signed SBOM and publish a second version.
4. Verify authenticity, trust and lineage.
5. Revoke the publisher and verify again.
6. Export the change notifications as NDJSON.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import asyncio
import sys

from sbom_registry import (
    EventFeed,
    InMemoryLedger,
    LocalSigner,
    NDJSONEventWriter,
    RegistryConfig,
    RegistryService,
    SBOMRegistryError,
    content_hash,
)


async def main() -> None:
    # -- Step 1: Create the service --------------------------------------------
    admin = LocalSigner.generate()
    ledger = InMemoryLedger()
    service = RegistryService(ledger, RegistryConfig(admin=admin.identity))
    await service.initialise()
    print(f"[1] Registry initialised, admin {admin.identity}")

    # -- Step 2: Register a publisher ------------------------------------------
    acme = LocalSigner.generate()
    await service.register_publisher(
        admin.identity, acme.identity, "Acme Corp", "https://acme.example"
    )
    print(f"[2] Publisher registered: Acme Corp ({acme.identity})")

    # -- Step 3: Register and update an SBOM -----------------------------------
    v1 = content_hash(b'{"bomFormat": "CycloneDX", "version": 1}')
    v2 = content_hash(b'{"bomFormat": "CycloneDX", "version": 2}')
    await service.register_record(acme.identity, v1, "acme-app 1.0.0", acme.sign_digest(v1))
    await service.update_record(acme.identity, v1, v2, "acme-app 1.1.0", acme.sign_digest(v2))
    print(f"[3] History: {await service.history(v2)}")

    # -- Step 4: Verify ----------------------------------------------------------
    report = await service.verify_complete(v2)
    lineage = await service.verify_lineage(v2)
    print(f"[4] verify_complete: {report.as_tuple()}")
    print(f"    lineage valid: {lineage.valid} ({lineage.versions_verified} versions)")

    # -- Step 5: Revoke and verify again ----------------------------------------
    await service.revoke_publisher(admin.identity, acme.identity)
    print(f"[5] After revocation: {(await service.verify_complete(v1)).as_tuple()}")
    try:
        v3 = content_hash(b"unrelated")
        await service.register_record(acme.identity, v3, "", acme.sign_digest(v3))
    except SBOMRegistryError as exc:
        print(f"    new registration rejected: [{exc.code}] {exc.message}")

    # -- Step 6: Export events -----------------------------------------------------
    print("[6] Change notifications:", flush=True)
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, None, loop)
    await NDJSONEventWriter(writer).write_feed(EventFeed(ledger))


if __name__ == "__main__":
    asyncio.run(main())
