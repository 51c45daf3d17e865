"""Shared fixtures for Agent-Attest tests."""

from dataclasses import dataclass

import pytest

from agentattest.config import RegistryConfig
from agentattest.deployment import Deployment
from agentattest.events import Event
from agentattest.identity.keystore import SoftwareKeyStore
from agentattest.reputation.auth import FeedbackAuth, sign_feedback_auth

NOW = 1_700_000_000
CHAIN_ID = 31337


class FakeClock:
    """Settable clock returning unix seconds."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass
class Actors:
    controller: str
    client: str
    other_client: str
    delegate: str
    validator: str
    stranger: str


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config() -> RegistryConfig:
    return RegistryConfig(chain_id=CHAIN_ID)


@pytest.fixture()
def keystore() -> SoftwareKeyStore:
    return SoftwareKeyStore()


@pytest.fixture()
def actors(keystore: SoftwareKeyStore) -> Actors:
    return Actors(
        controller=keystore.generate_keypair(),
        client=keystore.generate_keypair(),
        other_client=keystore.generate_keypair(),
        delegate=keystore.generate_keypair(),
        validator=keystore.generate_keypair(),
        stranger=keystore.generate_keypair(),
    )


@pytest.fixture()
def deployment(config: RegistryConfig, clock: FakeClock) -> Deployment:
    return Deployment.create(config, clock=clock)


@pytest.fixture()
def agent_id(deployment: Deployment, actors: Actors) -> int:
    return deployment.identity.register(actors.controller, token_uri="ipfs://agent-card")


@pytest.fixture()
def events(deployment: Deployment) -> list[Event]:
    received: list[Event] = []
    deployment.events.subscribe("*", received.append)
    return received


@pytest.fixture()
def make_auth(deployment: Deployment, keystore: SoftwareKeyStore, actors: Actors, clock: FakeClock):
    """Build a signed FeedbackAuth; every field can be overridden."""

    def _make(agent_id: int, counterparty=None, **overrides) -> FeedbackAuth:
        fields = {
            "signer": actors.controller,
            "agent_id": agent_id,
            "counterparty": counterparty or actors.client,
            "index_limit": 0,
            "expiry": clock.now + 3600,
            "chain_id": deployment.config.chain_id,
            "identity_registry": deployment.config.identity_registry,
            "reputation_registry": deployment.reputation.address,
        }
        fields.update(overrides)
        return sign_feedback_auth(keystore, **fields)

    return _make
