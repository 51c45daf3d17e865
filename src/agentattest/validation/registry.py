# Copyright (c) Agent-Attest Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Validation Registry

Request/response attestations. An agent's controller (or delegate) names a
validator for a caller-chosen request hash; only that validator may answer,
as many times as it likes. Each answer replaces the previous one.

States:
    Requested  -- created, ``last_update == 0``
    Responded  -- at least one response recorded; latest wins
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence, Union

from agentattest.config import Clock, RegistryConfig, system_clock
from agentattest.events.bus import (
    EVENT_VALIDATION_REQUESTED,
    EVENT_VALIDATION_RESPONDED,
    Event,
    EventBus,
    InMemoryEventBus,
)
from agentattest.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from agentattest.identity.addresses import is_zero_address, normalize_address
from agentattest.identity.source import (
    GuardedIdentitySource,
    IdentitySource,
    bind_identity_source,
)
from agentattest.tags import (
    TagLike,
    check_score,
    normalize_hash,
    normalize_tag,
    optional_hash,
    tag_matches,
)
from agentattest.validation.models import ValidationRequest, ValidationStatus, ValidationSummary

logger = logging.getLogger(__name__)

HashLike = Union[bytes, str]


class ValidationRegistry:
    """Tracks validation requests and their latest responses.

    Args:
        identity: The identity source this deployment trusts.
        identity_registry: Address the identity source must report.
        address: This registry's own address.
        chain_id: Chain this deployment runs on.
        event_bus: Where notifications are emitted.
        clock: Returns the current unix time in seconds.
    """

    def __init__(
        self,
        identity: IdentitySource,
        identity_registry: str,
        address: str,
        chain_id: int,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._identity_registry = bind_identity_source(identity, identity_registry, chain_id)
        self.address = normalize_address(address)
        self.chain_id = chain_id
        self._identity = GuardedIdentitySource(identity)
        self._clock = clock or system_clock
        self._events = event_bus if event_bus is not None else InMemoryEventBus()
        self._requests: dict[bytes, ValidationRequest] = {}
        self._statuses: dict[bytes, ValidationStatus] = {}
        self._by_agent: dict[int, list[bytes]] = {}
        self._by_validator: dict[str, list[bytes]] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: RegistryConfig,
        identity: IdentitySource,
        **kwargs,
    ) -> "ValidationRegistry":
        return cls(
            identity,
            identity_registry=config.identity_registry,
            address=config.validation_registry,
            chain_id=config.chain_id,
            **kwargs,
        )

    @property
    def events(self) -> EventBus:
        return self._events

    def get_identity_registry(self) -> str:
        return self._identity_registry

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def validation_request(
        self,
        caller: str,
        validator: str,
        agent_id: int,
        request_uri: str,
        request_hash: HashLike,
    ) -> ValidationRequest:
        """Ask *validator* to validate *agent_id*.

        Raises:
            InvalidArgumentError: Zero validator address or malformed hash.
            NotFoundError: Unknown agent.
            ConflictError: Request hash already used.
            UnauthorizedError: Caller neither controls nor is delegated the agent.
        """
        caller = normalize_address(caller)
        validator = normalize_address(validator)
        request_hash = normalize_hash(request_hash)
        if is_zero_address(validator):
            raise InvalidArgumentError("Validator address must not be zero")

        with self._lock:
            if not self._identity.exists(agent_id):
                raise NotFoundError(f"Agent {agent_id} not found")
            if request_hash in self._requests:
                raise ConflictError(f"Request 0x{request_hash.hex()} already exists")
            if not self._identity.is_authorized(agent_id, caller):
                logger.warning("%s may not request validation for agent %s", caller, agent_id)
                raise UnauthorizedError(f"{caller} is not authorized for agent {agent_id}")

            request = ValidationRequest(
                request_hash=request_hash,
                validator=validator,
                agent_id=agent_id,
                request_uri=request_uri,
                created_at=self._clock(),
            )
            self._requests[request_hash] = request
            self._statuses[request_hash] = ValidationStatus(validator=validator, agent_id=agent_id)
            self._by_agent.setdefault(agent_id, []).append(request_hash)
            self._by_validator.setdefault(validator, []).append(request_hash)
            logger.info(
                "Validation 0x%s requested from %s for agent %s",
                request_hash.hex(),
                validator,
                agent_id,
            )
            self._emit(
                EVENT_VALIDATION_REQUESTED,
                {
                    "validator": validator,
                    "agent_id": agent_id,
                    "request_uri": request_uri,
                    "request_hash": request_hash,
                },
            )
        return request.model_copy()

    def validation_response(
        self,
        caller: str,
        request_hash: HashLike,
        response: int,
        response_uri: str = "",
        response_hash: Optional[HashLike] = None,
        tag: TagLike = None,
    ) -> ValidationStatus:
        """Record the validator's answer, replacing any earlier one.

        Raises:
            InvalidArgumentError: Response not an integer in 0-100.
            NotFoundError: Unknown request hash.
            UnauthorizedError: Caller is not the request's validator.
        """
        caller = normalize_address(caller)
        request_hash = normalize_hash(request_hash)
        check_score(response, "Response")
        tag = normalize_tag(tag)
        response_hash = optional_hash(response_hash)

        with self._lock:
            request = self._requests.get(request_hash)
            if request is None:
                raise NotFoundError(f"Request 0x{request_hash.hex()} not found")
            if caller != request.validator:
                raise UnauthorizedError(
                    f"Only validator {request.validator} may respond to 0x{request_hash.hex()}"
                )
            status = ValidationStatus(
                validator=request.validator,
                agent_id=request.agent_id,
                response=response,
                tag=tag,
                last_update=self._clock(),
                response_uri=response_uri,
                response_hash=response_hash,
            )
            self._statuses[request_hash] = status
            logger.info(
                "Validation 0x%s answered by %s with %d",
                request_hash.hex(),
                caller,
                response,
            )
            self._emit(
                EVENT_VALIDATION_RESPONDED,
                {
                    "validator": request.validator,
                    "agent_id": request.agent_id,
                    "request_hash": request_hash,
                    "response": response,
                    "response_uri": response_uri,
                    "tag": tag,
                },
            )
        return status.model_copy()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_request(self, request_hash: HashLike) -> ValidationRequest:
        request = self._requests.get(normalize_hash(request_hash))
        if request is None:
            raise NotFoundError("Validation request not found")
        return request.model_copy()

    def get_validation_status(self, request_hash: HashLike) -> ValidationStatus:
        status = self._statuses.get(normalize_hash(request_hash))
        if status is None:
            raise NotFoundError("Validation request not found")
        return status.model_copy()

    def get_agent_validations(self, agent_id: int) -> list[bytes]:
        return list(self._by_agent.get(agent_id, ()))

    def get_validator_requests(self, validator: str) -> list[bytes]:
        return list(self._by_validator.get(normalize_address(validator), ()))

    def summarize(
        self,
        agent_id: int,
        validators: Sequence[str] = (),
        tag: TagLike = None,
    ) -> ValidationSummary:
        """Count and floor-average the agent's responded validations.

        An empty validator list means every validator; a zero tag matches
        every tag. Requests without a response are skipped.
        """
        wanted = {normalize_address(v) for v in validators}
        tag = normalize_tag(tag)
        count = 0
        total = 0
        with self._lock:
            for request_hash in self._by_agent.get(agent_id, ()):
                status = self._statuses[request_hash]
                if not status.responded:
                    continue
                if wanted and status.validator not in wanted:
                    continue
                if not tag_matches(tag, status.tag):
                    continue
                count += 1
                total += status.response
        if count == 0:
            return ValidationSummary()
        return ValidationSummary(count=count, average_response=total // count)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self) -> dict:
        with self._lock:
            return {
                "address": self.address,
                "chain_id": self.chain_id,
                "identity_registry": self._identity_registry,
                "requests": [
                    {
                        "request": _hex_bytes(self._requests[h].model_dump()),
                        "status": _hex_bytes(self._statuses[h].model_dump()),
                    }
                    for h in self._requests
                ],
            }

    def import_state(self, state: dict) -> None:
        with self._lock:
            self._requests = {}
            self._statuses = {}
            self._by_agent = {}
            self._by_validator = {}
            for item in state.get("requests", []):
                request = ValidationRequest.model_validate(
                    _unhex_bytes(item["request"], ("request_hash",))
                )
                status = ValidationStatus.model_validate(
                    _unhex_bytes(item["status"], ("tag", "response_hash"))
                )
                self._requests[request.request_hash] = request
                self._statuses[request.request_hash] = status
                self._by_agent.setdefault(request.agent_id, []).append(request.request_hash)
                self._by_validator.setdefault(request.validator, []).append(request.request_hash)

    # ------------------------------------------------------------------

    def _emit(self, event_type: str, payload: dict) -> None:
        """Publish a committed transition; a failing bus never fails the call."""
        event = Event(event_type=event_type, source=self.address, payload=payload)
        try:
            self._events.emit(event)
        except Exception:
            logger.exception("Failed to publish %s (%s)", event_type, event.event_id)


def _hex_bytes(data: dict) -> dict:
    return {k: v.hex() if isinstance(v, bytes) else v for k, v in data.items()}


def _unhex_bytes(data: dict, fields: tuple[str, ...]) -> dict:
    return {k: bytes.fromhex(v) if k in fields else v for k, v in data.items()}
