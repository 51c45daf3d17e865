"""
Identity Source

The identity registry is the source of truth for agent existence, control
and delegation. The attestation registries only read from it, through the
:class:`IdentitySource` contract, and always via :class:`GuardedIdentitySource`
so that a failing lookup reads as "does not exist" / "not authorized".

:class:`InMemoryIdentityRegistry` is a complete local implementation used for
development, snapshots and tests.
"""

from __future__ import annotations

import abc
import logging
from typing import Optional

from pydantic import BaseModel, Field

from agentattest.constants import DEFAULT_CHAIN_ID, ZERO_ADDRESS
from agentattest.exceptions import (
    AuthMismatchError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from agentattest.identity.addresses import is_zero_address, normalize_address

logger = logging.getLogger(__name__)


class IdentitySource(abc.ABC):
    """Read-only contract consumed by the attestation registries."""

    @abc.abstractmethod
    def exists(self, agent_id: int) -> bool:
        """Return whether *agent_id* is registered."""

    @abc.abstractmethod
    def controller_of(self, agent_id: int) -> str:
        """Return the current controller address of *agent_id*.

        Raises:
            NotFoundError: If the agent does not exist.
        """

    @abc.abstractmethod
    def is_approved_delegate(self, agent_id: int, candidate: str) -> bool:
        """Return whether *candidate* is the single approved delegate of the agent."""

    @abc.abstractmethod
    def is_approved_for_all(self, controller: str, candidate: str) -> bool:
        """Return whether *controller* has approved *candidate* as an operator."""

    @abc.abstractmethod
    def chain_id(self) -> int:
        """Return the chain id of the network the registry lives on."""

    @abc.abstractmethod
    def self_address(self) -> str:
        """Return the registry's own address."""


def bind_identity_source(identity: IdentitySource, identity_registry: str, chain_id: int) -> str:
    """Check that *identity* is the registry at *identity_registry* on *chain_id*.

    Returns:
        The normalised identity registry address.

    Raises:
        InvalidArgumentError: If the address is the zero address.
        AuthMismatchError: If the source reports another chain or address.
    """
    identity_registry = normalize_address(identity_registry)
    if is_zero_address(identity_registry):
        raise InvalidArgumentError("Identity registry address must not be zero")
    try:
        actual_chain = identity.chain_id()
        actual_address = normalize_address(identity.self_address())
    except Exception as exc:
        raise AuthMismatchError("Identity source did not report its binding") from exc
    if actual_chain != chain_id:
        raise AuthMismatchError(
            f"Declared chain {chain_id} does not match identity source chain {actual_chain}"
        )
    if actual_address != identity_registry:
        raise AuthMismatchError(
            f"Identity source reports address {actual_address}, expected {identity_registry}"
        )
    return identity_registry


class GuardedIdentitySource:
    """Wraps an :class:`IdentitySource` so that lookup faults never leak.

    Every failure of the underlying source is logged and converted into the
    negative answer: the agent does not exist, has no controller, and the
    candidate is not authorized.
    """

    def __init__(self, source: IdentitySource) -> None:
        self._source = source

    @property
    def source(self) -> IdentitySource:
        return self._source

    def exists(self, agent_id: int) -> bool:
        try:
            return bool(self._source.exists(agent_id))
        except Exception:  # noqa: BLE001 - any identity fault reads as absent
            logger.warning("Identity lookup failed for agent %s", agent_id, exc_info=True)
            return False

    def controller_of(self, agent_id: int) -> Optional[str]:
        try:
            return normalize_address(self._source.controller_of(agent_id))
        except Exception:  # noqa: BLE001
            logger.warning("Controller lookup failed for agent %s", agent_id, exc_info=True)
            return None

    def is_authorized(self, agent_id: int, candidate: str) -> bool:
        """Return whether *candidate* controls or is delegated authority over the agent.

        Authority is resolved live: controller, single approved delegate, or
        an approved-for-all operator of the current controller.
        """
        candidate = normalize_address(candidate)
        controller = self.controller_of(agent_id)
        if controller is None:
            return False
        if candidate == controller:
            return True
        try:
            if self._source.is_approved_delegate(agent_id, candidate):
                return True
            return bool(self._source.is_approved_for_all(controller, candidate))
        except Exception:  # noqa: BLE001
            logger.warning(
                "Delegation lookup failed for agent %s candidate %s",
                agent_id,
                candidate,
                exc_info=True,
            )
            return False


class IdentityRecord(BaseModel):
    """A registered agent in the in-memory identity registry."""

    agent_id: int = Field(..., ge=0)
    owner: str
    approved: str = Field(default=ZERO_ADDRESS)
    token_uri: str = Field(default="")
    metadata: dict[str, str] = Field(default_factory=dict)


class InMemoryIdentityRegistry(IdentitySource):
    """Identity registry held in process memory.

    Agent ids are allocated sequentially from 0. Ownership follows the
    usual token rules: the owner may transfer, approve a single delegate,
    and approve operators for all of its agents.

    Args:
        address: The registry's own address.
        chain_id: The network the registry reports.
    """

    def __init__(self, address: str, chain_id: int = DEFAULT_CHAIN_ID) -> None:
        self._address = normalize_address(address)
        self._chain_id = chain_id
        self._agents: dict[int, IdentityRecord] = {}
        self._operators: dict[str, set[str]] = {}
        self._next_id = 0

    # ------------------------------------------------------------------
    # IdentitySource contract
    # ------------------------------------------------------------------

    def exists(self, agent_id: int) -> bool:
        return agent_id in self._agents

    def controller_of(self, agent_id: int) -> str:
        return self._record(agent_id).owner

    def is_approved_delegate(self, agent_id: int, candidate: str) -> bool:
        approved = self._record(agent_id).approved
        return approved != ZERO_ADDRESS and approved == normalize_address(candidate)

    def is_approved_for_all(self, controller: str, candidate: str) -> bool:
        operators = self._operators.get(normalize_address(controller), set())
        return normalize_address(candidate) in operators

    def chain_id(self) -> int:
        return self._chain_id

    def self_address(self) -> str:
        return self._address

    # ------------------------------------------------------------------
    # Registry operations
    # ------------------------------------------------------------------

    def register(
        self,
        owner: str,
        token_uri: str = "",
        metadata: Optional[dict[str, str]] = None,
    ) -> int:
        """Register a new agent owned by *owner* and return its id."""
        agent_id = self._next_id
        self._agents[agent_id] = IdentityRecord(
            agent_id=agent_id,
            owner=normalize_address(owner),
            token_uri=token_uri,
            metadata=dict(metadata or {}),
        )
        self._next_id += 1
        logger.info("Registered agent %d for %s", agent_id, owner)
        return agent_id

    def transfer(self, caller: str, agent_id: int, new_owner: str) -> None:
        """Transfer control of an agent. Clears its approved delegate."""
        record = self._record(agent_id)
        self._require_owner_or_operator(caller, record)
        record.owner = normalize_address(new_owner)
        record.approved = ZERO_ADDRESS
        logger.info("Transferred agent %d to %s", agent_id, record.owner)

    def approve(self, caller: str, agent_id: int, delegate: str) -> None:
        """Set (or clear, with the zero address) the agent's approved delegate."""
        record = self._record(agent_id)
        self._require_owner_or_operator(caller, record)
        record.approved = normalize_address(delegate)
        logger.info("Agent %d approved delegate %s", agent_id, record.approved)

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        caller = normalize_address(caller)
        operators = self._operators.setdefault(caller, set())
        if approved:
            operators.add(normalize_address(operator))
        else:
            operators.discard(normalize_address(operator))
        logger.info("%s set operator %s approved=%s", caller, operator, approved)

    def token_uri(self, agent_id: int) -> str:
        return self._record(agent_id).token_uri

    def set_token_uri(self, caller: str, agent_id: int, token_uri: str) -> None:
        record = self._record(agent_id)
        self._require_owner_or_operator(caller, record)
        record.token_uri = token_uri

    def get_metadata(self, agent_id: int, key: str) -> str:
        return self._record(agent_id).metadata.get(key, "")

    def set_metadata(self, caller: str, agent_id: int, key: str, value: str) -> None:
        record = self._record(agent_id)
        self._require_owner_or_operator(caller, record)
        record.metadata[key] = value

    def agent_ids(self) -> list[int]:
        return sorted(self._agents)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self) -> dict:
        return {
            "address": self._address,
            "chain_id": self._chain_id,
            "next_id": self._next_id,
            "agents": [r.model_dump() for r in self._agents.values()],
            "operators": {k: sorted(v) for k, v in self._operators.items()},
        }

    @classmethod
    def from_state(cls, state: dict) -> "InMemoryIdentityRegistry":
        registry = cls(state["address"], chain_id=state["chain_id"])
        for item in state.get("agents", []):
            record = IdentityRecord.model_validate(item)
            registry._agents[record.agent_id] = record
        registry._operators = {
            normalize_address(k): {normalize_address(o) for o in v}
            for k, v in state.get("operators", {}).items()
        }
        registry._next_id = state.get("next_id", len(registry._agents))
        return registry

    # ------------------------------------------------------------------

    def _record(self, agent_id: int) -> IdentityRecord:
        record = self._agents.get(agent_id)
        if record is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        return record

    def _require_owner_or_operator(self, caller: str, record: IdentityRecord) -> None:
        caller = normalize_address(caller)
        if caller == record.owner:
            return
        if caller in self._operators.get(record.owner, set()):
            return
        raise UnauthorizedError(f"{caller} does not control agent {record.agent_id}")
