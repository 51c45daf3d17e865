"""
Registry Configuration

One deployment binds one identity registry on one chain. The configuration
names the addresses of the three registries and where snapshots live.
"""

import os
import time
from typing import Callable, Optional

from pydantic import BaseModel, Field, field_validator

from agentattest.constants import DEFAULT_CHAIN_ID
from agentattest.identity.addresses import normalize_address

DEFAULT_IDENTITY_REGISTRY = "0x" + "11" * 20
DEFAULT_REPUTATION_REGISTRY = "0x" + "22" * 20
DEFAULT_VALIDATION_REGISTRY = "0x" + "33" * 20

Clock = Callable[[], int]


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


class RegistryConfig(BaseModel):
    """Deployment configuration for the attestation registries."""

    chain_id: int = Field(default=DEFAULT_CHAIN_ID, ge=0, description="Network chain id")
    identity_registry: str = Field(
        default=DEFAULT_IDENTITY_REGISTRY, description="Address of the identity registry"
    )
    reputation_registry: str = Field(
        default=DEFAULT_REPUTATION_REGISTRY, description="Address of the reputation registry"
    )
    validation_registry: str = Field(
        default=DEFAULT_VALIDATION_REGISTRY, description="Address of the validation registry"
    )
    snapshot_path: Optional[str] = Field(default=None, description="JSON snapshot file")

    @field_validator("identity_registry", "reputation_registry", "validation_registry")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return normalize_address(v)

    @classmethod
    def from_env(cls) -> "RegistryConfig":
        """Build a configuration from ``AGENTATTEST_*`` environment variables."""
        return cls(
            chain_id=int(os.getenv("AGENTATTEST_CHAIN_ID", str(DEFAULT_CHAIN_ID))),
            identity_registry=os.getenv(
                "AGENTATTEST_IDENTITY_REGISTRY", DEFAULT_IDENTITY_REGISTRY
            ),
            reputation_registry=os.getenv(
                "AGENTATTEST_REPUTATION_REGISTRY", DEFAULT_REPUTATION_REGISTRY
            ),
            validation_registry=os.getenv(
                "AGENTATTEST_VALIDATION_REGISTRY", DEFAULT_VALIDATION_REGISTRY
            ),
            snapshot_path=os.getenv("AGENTATTEST_SNAPSHOT"),
        )
