"""SBOM registry configuration.

Defines the validated configuration model read by the registry service and
its components.  Every limit defaults to ``None`` (unbounded), which keeps
the registry's behaviour identical to an unconfigured deployment.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RegistryConfig(BaseModel):
    """Configuration for a :class:`~sbom_registry.service.RegistryService`.

    A minimal configuration only names the genesis admin::

        RegistryConfig(admin="0x5b38da6a701c568545dcfcb03fcb875f56beddc4")
    """

    model_config = ConfigDict(strict=True)

    admin: str | None = Field(
        default=None,
        description=(
            "Identity recorded as registry admin at genesis.  Ignored when "
            "the ledger already has an admin."
        ),
    )
    max_chain_length: int | None = Field(
        default=None,
        ge=1,
        description=(
            "Maximum number of versions in one chain.  ``None`` accepts "
            "unbounded growth."
        ),
    )
    history_page_size: int | None = Field(
        default=None,
        ge=1,
        description=(
            "Default number of hashes returned by history queries that do "
            "not pass an explicit limit.  ``None`` returns the full chain."
        ),
    )
    max_metadata_bytes: int | None = Field(
        default=None,
        ge=0,
        description="Maximum UTF-8 size of record metadata.",
    )
