"""SBOM registry error-code hierarchy.

Every rejected operation surfaces as one concrete exception class.  A
rejection is always commit-or-nothing: the ledger discards whatever the
operation had staged before the error was raised.

Hierarchy
---------
::

    SBOMRegistryError
    +-- AuthorizationError   (SR-E1xx)
    +-- ValidationError      (SR-E2xx)
    +-- ConflictError        (SR-E3xx)
    +-- NotFoundError        (SR-E4xx)
    +-- SignatureError       (SR-E5xx)

Usage
-----
Raise concrete subclasses directly::

    raise RecordAlreadyExists(details={"content_hash": content_hash})

Catch by category::

    try:
        ...
    except SignatureError:
        # handles InvalidSignatureLength, InvalidSignatureVersion, ...
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class SBOMRegistryError(Exception):
    """Base exception for all registry errors.

    Attributes
    ----------
    code : str
        Registry error code, e.g. ``"SR-E300"``.
    http_status : int
        Recommended HTTP status code for transports that expose the registry.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "SR-E000"
    http_status: int = 500
    message: str = "Unknown registry error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error to a transport-neutral error object."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class AuthorizationError(SBOMRegistryError):
    """SR-E1xx -- Caller is not allowed to perform the operation."""

    code = "SR-E1XX"
    http_status = 403


class ValidationError(SBOMRegistryError):
    """SR-E2xx -- Malformed or empty input."""

    code = "SR-E2XX"
    http_status = 400


class ConflictError(SBOMRegistryError):
    """SR-E3xx -- Operation collides with existing registry state."""

    code = "SR-E3XX"
    http_status = 409


class NotFoundError(SBOMRegistryError):
    """SR-E4xx -- Operation references state that does not exist."""

    code = "SR-E4XX"
    http_status = 404


class SignatureError(SBOMRegistryError):
    """SR-E5xx -- Detached signature is malformed or was not made by the caller."""

    code = "SR-E5XX"
    http_status = 401


# ===================================================================
# SR-E1xx  Authorization
# ===================================================================

class Unauthorized(AuthorizationError):
    """SR-E100 -- Privileged call by an identity other than the admin."""

    code = "SR-E100"
    message = "Only the registry admin can perform this action"
    resolution = "Submit the call from the current admin identity."


class NotOriginalPublisher(AuthorizationError):
    """SR-E101 -- Update attempted by someone other than the chain's publisher."""

    code = "SR-E101"
    message = "Only the original publisher can update this record"
    resolution = (
        "Register the new version as a fresh record, or ask the original "
        "publisher to extend their chain."
    )


class PublisherNotVerified(AuthorizationError):
    """SR-E102 -- Registration attempted by an identity that is not verified."""

    code = "SR-E102"
    message = "Publisher is not verified"
    resolution = "Ask the registry admin to register the publisher identity first."


# ===================================================================
# SR-E2xx  Validation
# ===================================================================

class InvalidIdentity(ValidationError):
    """SR-E200 -- Null or malformed identity supplied."""

    code = "SR-E200"
    message = "Invalid identity"
    resolution = "Supply a non-zero 20-byte identity as 0x-prefixed hex."


class EmptyName(ValidationError):
    """SR-E201 -- Publisher name is empty."""

    code = "SR-E201"
    message = "Publisher name cannot be empty"


class InvalidContentHash(ValidationError):
    """SR-E202 -- Content hash is not a 32-byte digest."""

    code = "SR-E202"
    message = "Invalid content hash"
    resolution = "Supply a 32-byte digest as 0x-prefixed hex."


class InvalidEncoding(ValidationError):
    """SR-E203 -- Binary field could not be decoded from hex."""

    code = "SR-E203"
    message = "Value is not valid hex"


class MetadataTooLarge(ValidationError):
    """SR-E204 -- Metadata exceeds the configured size limit."""

    code = "SR-E204"
    http_status = 413
    message = "Metadata exceeds the configured size limit"


class InvalidPrivateKey(ValidationError):
    """SR-E205 -- Signing key material is not a valid secp256k1 key."""

    code = "SR-E205"
    message = "Invalid secp256k1 private key"


class MalformedEvent(ValidationError):
    """SR-E206 -- Change notification could not be decoded."""

    code = "SR-E206"
    message = "Malformed change notification"


# ===================================================================
# SR-E3xx  Conflict
# ===================================================================

class DuplicatePublisher(ConflictError):
    """SR-E300 -- Publisher is already registered and verified."""

    code = "SR-E300"
    message = "Publisher already registered"
    resolution = "Revoke the publisher first if its details must be replaced."


class RecordAlreadyExists(ConflictError):
    """SR-E301 -- A record for this content hash already exists."""

    code = "SR-E301"
    message = "Record already registered"
    resolution = (
        "Records are write-once.  Query the existing record, or register "
        "a different content hash."
    )


class ChainLengthExceeded(ConflictError):
    """SR-E302 -- Update would grow a version chain past the configured cap."""

    code = "SR-E302"
    message = "Version chain has reached its maximum length"
    resolution = "Start a new chain by registering the new version as a root."


# ===================================================================
# SR-E4xx  Not found
# ===================================================================

class RecordNotFound(NotFoundError):
    """SR-E400 -- Update references an unregistered prior hash."""

    code = "SR-E400"
    message = "Original record not found"
    resolution = "Register the prior version before updating from it."


class NotVerified(NotFoundError):
    """SR-E401 -- Revocation targets a publisher that is not verified."""

    code = "SR-E401"
    message = "Publisher not verified"


# ===================================================================
# SR-E5xx  Signature
# ===================================================================

class InvalidSignatureLength(SignatureError):
    """SR-E500 -- Signature is not exactly 65 bytes."""

    code = "SR-E500"
    http_status = 400
    message = "Invalid signature length"
    resolution = "Supply a 65-byte r || s || v signature."


class InvalidSignatureVersion(SignatureError):
    """SR-E501 -- Recovery discriminant cannot be normalised to 27 or 28."""

    code = "SR-E501"
    http_status = 400
    message = "Invalid signature version"
    resolution = "The final signature byte must be 0, 1, 27 or 28."


class SignatureMismatch(SignatureError):
    """SR-E502 -- Recovered signer differs from the claimed submitter."""

    code = "SR-E502"
    message = "Invalid signature - signer does not match sender"
    resolution = "Sign the content hash with the submitting identity's key."


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------

_CODE_MAP: dict[str, type[SBOMRegistryError]] = {
    cls.code: cls
    for cls in [
        # E1xx
        Unauthorized,
        NotOriginalPublisher,
        PublisherNotVerified,
        # E2xx
        InvalidIdentity,
        EmptyName,
        InvalidContentHash,
        InvalidEncoding,
        MetadataTooLarge,
        InvalidPrivateKey,
        MalformedEvent,
        # E3xx
        DuplicatePublisher,
        RecordAlreadyExists,
        ChainLengthExceeded,
        # E4xx
        RecordNotFound,
        NotVerified,
        # E5xx
        InvalidSignatureLength,
        InvalidSignatureVersion,
        SignatureMismatch,
    ]
}


def error_from_code(code: str, message: str | None = None) -> SBOMRegistryError:
    """Instantiate the correct exception class for a registry error code.

    Raises
    ------
    KeyError
        If *code* is not a recognised registry error code.
    """
    cls = _CODE_MAP[code]
    return cls(message) if message else cls()
