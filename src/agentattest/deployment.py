"""
Deployment wiring

Builds the identity, reputation and validation registries for one chain,
sharing a single event bus and clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from agentattest.config import Clock, RegistryConfig, system_clock
from agentattest.events.bus import EventBus, InMemoryEventBus
from agentattest.identity.accounts import AccountDirectory
from agentattest.identity.source import InMemoryIdentityRegistry
from agentattest.reputation.registry import ReputationRegistry
from agentattest.validation.registry import ValidationRegistry


@dataclass
class Deployment:
    """The three registries of one deployment."""

    config: RegistryConfig
    identity: InMemoryIdentityRegistry
    reputation: ReputationRegistry
    validation: ValidationRegistry
    events: EventBus
    accounts: AccountDirectory = field(default_factory=AccountDirectory)

    @classmethod
    def create(
        cls,
        config: Optional[RegistryConfig] = None,
        identity: Optional[InMemoryIdentityRegistry] = None,
        accounts: Optional[AccountDirectory] = None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
    ) -> "Deployment":
        """Create a deployment, with a fresh in-memory identity registry by default."""
        config = config or RegistryConfig()
        identity = identity or InMemoryIdentityRegistry(
            config.identity_registry, chain_id=config.chain_id
        )
        accounts = accounts if accounts is not None else AccountDirectory()
        events = event_bus if event_bus is not None else InMemoryEventBus()
        clock = clock or system_clock
        return cls(
            config=config,
            identity=identity,
            reputation=ReputationRegistry.from_config(
                config, identity, accounts=accounts, event_bus=events, clock=clock
            ),
            validation=ValidationRegistry.from_config(
                config, identity, event_bus=events, clock=clock
            ),
            events=events,
            accounts=accounts,
        )
