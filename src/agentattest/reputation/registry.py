# Copyright (c) Agent-Attest Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Reputation Registry

Delegated, replay-protected feedback about agents:

- ``give_feedback`` appends a score once the caller presents a valid
  authorization signed by the agent's controller or a delegate
- ``revoke_feedback`` lets a counterparty withdraw its own entries
- ``append_response`` lets anyone annotate an entry
- ``summarize`` / ``bulk_read`` aggregate with counterparty and tag filters

Every mutating call runs its checks and its mutation inside one exclusive
section, so no state is observed or changed between authorization and
append, and a rejected call leaves nothing behind.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence, Union

from agentattest.config import Clock, RegistryConfig, system_clock
from agentattest.events.bus import (
    EVENT_FEEDBACK_GIVEN,
    EVENT_FEEDBACK_REVOKED,
    EVENT_RESPONSE_APPENDED,
    Event,
    EventBus,
    InMemoryEventBus,
)
from agentattest.exceptions import InvalidArgumentError, NotFoundError
from agentattest.identity.accounts import AccountDirectory
from agentattest.identity.addresses import normalize_address
from agentattest.identity.source import (
    GuardedIdentitySource,
    IdentitySource,
    bind_identity_source,
)
from agentattest.reputation.aggregation import (
    FeedbackBatch,
    FeedbackSummary,
    bulk_read,
    summarize,
)
from agentattest.reputation.auth import FeedbackAuth
from agentattest.reputation.ledger import FeedbackEntry, FeedbackLedger, ResponseAnnotator
from agentattest.reputation.verifier import AuthorizationVerifier
from agentattest.tags import TagLike, check_score, normalize_tag, optional_hash

logger = logging.getLogger(__name__)


class ReputationRegistry:
    """Feedback ledger with delegated authorization and aggregation.

    Args:
        identity: The identity source this deployment trusts.
        identity_registry: Address the identity source must report.
        address: This registry's own address (part of every token digest).
        chain_id: Chain this deployment runs on.
        accounts: Programmable-account resolver for signature dispatch.
        event_bus: Where notifications are emitted.
        clock: Returns the current unix time in seconds.

    Example:
        >>> registry = ReputationRegistry(identity, identity.self_address(), REP_ADDR, chain_id=1)
        >>> index = registry.give_feedback(client, agent_id, 80, tag("quality"), auth=auth)
        >>> registry.summarize(agent_id).average_score
        80
    """

    def __init__(
        self,
        identity: IdentitySource,
        identity_registry: str,
        address: str,
        chain_id: int,
        accounts: Optional[AccountDirectory] = None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._identity_registry = bind_identity_source(identity, identity_registry, chain_id)
        self.address = normalize_address(address)
        self.chain_id = chain_id
        self._identity = GuardedIdentitySource(identity)
        self._clock = clock or system_clock
        self._verifier = AuthorizationVerifier(
            self._identity,
            identity_registry=self._identity_registry,
            reputation_registry=self.address,
            chain_id=chain_id,
            accounts=accounts,
            clock=self._clock,
        )
        self._ledger = FeedbackLedger()
        self._responses = ResponseAnnotator()
        self._events = event_bus if event_bus is not None else InMemoryEventBus()
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: RegistryConfig,
        identity: IdentitySource,
        **kwargs,
    ) -> "ReputationRegistry":
        return cls(
            identity,
            identity_registry=config.identity_registry,
            address=config.reputation_registry,
            chain_id=config.chain_id,
            **kwargs,
        )

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def ledger(self) -> FeedbackLedger:
        return self._ledger

    @property
    def responses(self) -> ResponseAnnotator:
        return self._responses

    def get_identity_registry(self) -> str:
        return self._identity_registry

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def give_feedback(
        self,
        caller: str,
        agent_id: int,
        score: int,
        tag1: TagLike = None,
        tag2: TagLike = None,
        feedback_uri: str = "",
        feedback_hash: Union[bytes, str, None] = None,
        auth: Union[FeedbackAuth, bytes, None] = None,
    ) -> int:
        """Append feedback from *caller* about *agent_id*.

        Args:
            caller: The submitting counterparty.
            agent_id: Agent the feedback is about.
            score: 0-100.
            tag1: Optional first tag (zero means unset).
            tag2: Optional second tag.
            feedback_uri: Off-chain evidence location; not validated.
            feedback_hash: Commitment to the evidence; not validated.
            auth: Authorization signed by the agent's controller or delegate,
                as a :class:`FeedbackAuth` or its packed bytes.

        Returns:
            The index of the new entry in the caller's sub-ledger.

        Raises:
            InvalidArgumentError: Score not an integer in 0-100, or malformed arguments.
            NotFoundError: Unknown agent.
            AuthorizationError: Any token check failed.
            UnauthorizedError: Signer lacks authority over the agent.
        """
        caller = normalize_address(caller)
        check_score(score)
        tag1 = normalize_tag(tag1)
        tag2 = normalize_tag(tag2)
        feedback_hash = optional_hash(feedback_hash)
        if auth is None:
            raise InvalidArgumentError("Feedback requires an authorization token")
        if isinstance(auth, (bytes, bytearray)):
            auth = FeedbackAuth.from_bytes(bytes(auth))

        with self._lock:
            if not self._identity.exists(agent_id):
                raise NotFoundError(f"Agent {agent_id} not found")
            length = self._ledger.length(agent_id, caller)
            self._verifier.verify(auth, agent_id, caller, length)
            index = self._ledger.append(agent_id, caller, score, tag1, tag2)
            logger.info(
                "Feedback %d from %s for agent %s (score=%d)", index, caller, agent_id, score
            )
            self._emit(
                EVENT_FEEDBACK_GIVEN,
                {
                    "agent_id": agent_id,
                    "counterparty": caller,
                    "index": index,
                    "score": score,
                    "tag1": tag1,
                    "tag2": tag2,
                    "feedback_uri": feedback_uri,
                    "feedback_hash": feedback_hash,
                },
            )
        return index

    def revoke_feedback(self, caller: str, agent_id: int, index: int) -> None:
        """Revoke one of the caller's own entries.

        Raises:
            NotFoundError: Index out of range for the caller's sub-ledger.
            ConflictError: Entry already revoked.
        """
        caller = normalize_address(caller)
        with self._lock:
            self._ledger.revoke(agent_id, caller, index)
            logger.info("Feedback %d from %s for agent %s revoked", index, caller, agent_id)
            self._emit(
                EVENT_FEEDBACK_REVOKED,
                {"agent_id": agent_id, "counterparty": caller, "index": index},
            )

    def append_response(
        self,
        caller: str,
        agent_id: int,
        counterparty: str,
        index: int,
        response_uri: str = "",
        response_hash: Union[bytes, str, None] = None,
    ) -> int:
        """Record a response to an entry. Open to any caller.

        Returns:
            The caller's response count for that entry after this call.

        Raises:
            NotFoundError: The targeted entry does not exist.
        """
        caller = normalize_address(caller)
        counterparty = normalize_address(counterparty)
        response_hash = optional_hash(response_hash)
        with self._lock:
            self._ledger.entry(agent_id, counterparty, index)
            count = self._responses.increment(agent_id, counterparty, index, caller)
            logger.info(
                "Response %d by %s to feedback %d from %s for agent %s",
                count,
                caller,
                index,
                counterparty,
                agent_id,
            )
            self._emit(
                EVENT_RESPONSE_APPENDED,
                {
                    "agent_id": agent_id,
                    "counterparty": counterparty,
                    "index": index,
                    "responder": caller,
                    "response_uri": response_uri,
                    "response_hash": response_hash,
                },
            )
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_last_index(self, agent_id: int, counterparty: str) -> int:
        """Length of the counterparty's sub-ledger, i.e. the next index."""
        return self._ledger.length(agent_id, normalize_address(counterparty))

    def read_feedback(self, agent_id: int, counterparty: str, index: int) -> FeedbackEntry:
        return self._ledger.entry(agent_id, normalize_address(counterparty), index).model_copy()

    def get_clients(self, agent_id: int) -> list[str]:
        return self._ledger.clients(agent_id)

    def get_response_count(
        self,
        agent_id: int,
        counterparty: str,
        index: int,
        responders: Sequence[str] = (),
    ) -> int:
        """Total responses by the listed responders; an empty list yields 0."""
        return self._responses.count(
            agent_id,
            normalize_address(counterparty),
            index,
            [normalize_address(r) for r in responders],
        )

    def summarize(
        self,
        agent_id: int,
        counterparties: Sequence[str] = (),
        tag1: TagLike = None,
        tag2: TagLike = None,
    ) -> FeedbackSummary:
        with self._lock:
            return summarize(
                self._ledger,
                agent_id,
                [normalize_address(c) for c in counterparties],
                normalize_tag(tag1),
                normalize_tag(tag2),
            )

    def bulk_read(
        self,
        agent_id: int,
        counterparties: Sequence[str] = (),
        tag1: TagLike = None,
        tag2: TagLike = None,
        include_revoked: bool = False,
    ) -> FeedbackBatch:
        with self._lock:
            return bulk_read(
                self._ledger,
                agent_id,
                [normalize_address(c) for c in counterparties],
                normalize_tag(tag1),
                normalize_tag(tag2),
                include_revoked,
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self) -> dict:
        with self._lock:
            return {
                "address": self.address,
                "chain_id": self.chain_id,
                "identity_registry": self._identity_registry,
                "ledger": self._ledger.export_state(),
                "responses": self._responses.export_state(),
            }

    def import_state(self, state: dict) -> None:
        with self._lock:
            self._ledger.import_state(state.get("ledger", []))
            self._responses.import_state(state.get("responses", []))

    # ------------------------------------------------------------------

    def _emit(self, event_type: str, payload: dict) -> None:
        """Publish a committed transition; a failing bus never fails the call."""
        event = Event(event_type=event_type, source=self.address, payload=payload)
        try:
            self._events.emit(event)
        except Exception:
            logger.exception("Failed to publish %s (%s)", event_type, event.event_id)
