"""Publisher trust table and the registry admin capability.

The admin is a single identity stored in the ledger.  It is checked on
every privileged call and can only change hands through
:meth:`PublisherRegistry.transfer_admin`.

Publishers are never deleted.  Revocation stores a copy of the publisher
with ``verified=False``; re-registration of a revoked identity is allowed
because the duplicate check looks only at the current ``verified`` flag.
Revocation has no effect on records already registered.
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sbom_registry.core.errors import (
    DuplicatePublisher,
    EmptyName,
    InvalidIdentity,
    NotVerified,
    Unauthorized,
)
from sbom_registry.core.events import (
    AdminTransferred,
    PublisherRegistered,
    PublisherRevoked,
)
from sbom_registry.core.interfaces import PUBLISHERS, REGISTRY
from sbom_registry.core.types import (
    NULL_IDENTITY,
    Identity,
    Publisher,
    normalize_identity,
)

if TYPE_CHECKING:
    from sbom_registry.core.interfaces import Ledger, LedgerReader, LedgerTransaction

_ADMIN_KEY = "admin"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _require_real_identity(value: str | bytes) -> Identity:
    identity = normalize_identity(value)
    if identity == NULL_IDENTITY:
        raise InvalidIdentity(
            "The null identity cannot be used here",
            details={"identity": identity},
        )
    return identity


class PublisherRegistry:
    """Authoritative trust table for publisher identities.

    Parameters
    ----------
    ledger:
        The ledger substrate holding the ``publishers`` and ``registry``
        tables.
    clock:
        Returns the timestamp recorded for registrations and events.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ledger = ledger
        self._clock = clock

    # ------------------------------------------------------------------
    # Admin capability
    # ------------------------------------------------------------------

    async def initialise(self, admin: str | bytes) -> Identity:
        """Record *admin* as the genesis admin.

        A ledger that already has an admin keeps it; the existing admin is
        returned unchanged.

        Raises
        ------
        InvalidIdentity
            If *admin* is malformed or the null identity.
        """
        candidate = _require_real_identity(admin)
        async with self._ledger.transaction() as txn:
            current = await txn.get(REGISTRY, _ADMIN_KEY)
            if current is not None:
                return Identity(current)
            txn.put(REGISTRY, _ADMIN_KEY, candidate)
        return candidate

    async def admin(self, *, view: LedgerReader | None = None) -> Identity | None:
        """Return the current admin, or ``None`` before genesis."""
        current = await (view or self._ledger).get(REGISTRY, _ADMIN_KEY)
        return Identity(current) if current is not None else None

    async def transfer_admin(
        self,
        caller: str | bytes,
        new_admin: str | bytes,
    ) -> Identity:
        """Hand the admin capability to *new_admin*.

        Raises
        ------
        Unauthorized
            If *caller* is not the current admin.
        InvalidIdentity
            If *new_admin* is malformed or the null identity.
        """
        async with self._ledger.transaction() as txn:
            previous = await self._require_admin(txn, caller)
            target = _require_real_identity(new_admin)
            txn.put(REGISTRY, _ADMIN_KEY, target)
            txn.emit(
                AdminTransferred(
                    previous_admin=previous,
                    new_admin=target,
                    timestamp=self._clock(),
                )
            )
        return target

    # ------------------------------------------------------------------
    # Publisher management
    # ------------------------------------------------------------------

    async def register(
        self,
        caller: str | bytes,
        identity: str | bytes,
        name: str,
        website: str = "",
        contact_email: str = "",
    ) -> Publisher:
        """Register *identity* as a verified publisher.

        Checks run in this order: admin, identity, duplicate, name.

        Raises
        ------
        Unauthorized
            If *caller* is not the admin.
        InvalidIdentity
            If *identity* is malformed or the null identity.
        DuplicatePublisher
            If *identity* is currently verified.
        EmptyName
            If *name* is empty.
        """
        async with self._ledger.transaction() as txn:
            await self._require_admin(txn, caller)
            target = _require_real_identity(identity)
            existing = await self.get(target, view=txn)
            if existing.verified:
                raise DuplicatePublisher(
                    f"Publisher {target} is already registered",
                    details={"identity": target},
                )
            if not name:
                raise EmptyName(details={"identity": target})

            now = self._clock()
            publisher = Publisher(
                identity=target,
                name=name,
                website=website,
                contact_email=contact_email,
                verified=True,
                registered_at=now,
            )
            txn.put(PUBLISHERS, target, publisher)
            txn.emit(PublisherRegistered(identity=target, name=name, timestamp=now))
        return publisher

    async def revoke(self, caller: str | bytes, identity: str | bytes) -> Publisher:
        """Clear the ``verified`` flag of *identity*.

        Raises
        ------
        Unauthorized
            If *caller* is not the admin.
        InvalidIdentity
            If *identity* is malformed.
        NotVerified
            If *identity* is not currently verified.
        """
        async with self._ledger.transaction() as txn:
            await self._require_admin(txn, caller)
            target = normalize_identity(identity)
            existing = await self.get(target, view=txn)
            if not existing.verified:
                raise NotVerified(
                    f"Publisher {target} is not verified",
                    details={"identity": target},
                )
            revoked = existing.model_copy(update={"verified": False})
            txn.put(PUBLISHERS, target, revoked)
            txn.emit(PublisherRevoked(identity=target, timestamp=self._clock()))
        return revoked

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(
        self,
        identity: str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> Publisher:
        """Return the publisher for *identity* (zero-valued if unknown)."""
        target = normalize_identity(identity)
        stored = await (view or self._ledger).get(PUBLISHERS, target)
        return stored if stored is not None else Publisher.empty(target)

    async def is_verified(
        self,
        identity: str | bytes,
        *,
        view: LedgerReader | None = None,
    ) -> bool:
        """Return ``True`` if *identity* is a currently verified publisher."""
        try:
            publisher = await self.get(identity, view=view)
        except InvalidIdentity:
            return False
        return publisher.verified

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _require_admin(
        self,
        txn: LedgerTransaction,
        caller: str | bytes,
    ) -> Identity:
        admin = await self.admin(view=txn)
        try:
            identity = normalize_identity(caller)
        except InvalidIdentity:
            identity = None
        if admin is None or identity != admin:
            raise Unauthorized(details={"caller": str(caller)})
        return admin
