"""
Feedback Ledger

Append-only feedback sequences keyed by ``(agent_id, counterparty)``.
Indices are 0-based positions and are never reused or compacted; the only
mutation after append is the one-way ``revoked`` flag.

The ledger performs no authorization. :class:`ReputationRegistry` verifies
the caller before touching it.
"""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from agentattest.constants import MAX_SCORE, ZERO_TAG
from agentattest.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from agentattest.tags import check_score

LedgerKey = tuple[int, str]


class FeedbackEntry(BaseModel):
    """A single feedback record."""

    score: int = Field(..., ge=0, le=MAX_SCORE)
    tag1: bytes = Field(default=ZERO_TAG)
    tag2: bytes = Field(default=ZERO_TAG)
    revoked: bool = Field(default=False)


class FeedbackLedger:
    """Growable, index-stable feedback sequences plus per-agent client sets."""

    def __init__(self) -> None:
        self._entries: dict[LedgerKey, list[FeedbackEntry]] = {}
        # dict keys keep first-insertion order
        self._clients: dict[int, dict[str, None]] = {}

    def length(self, agent_id: int, counterparty: str) -> int:
        return len(self._entries.get((agent_id, counterparty), ()))

    def append(
        self,
        agent_id: int,
        counterparty: str,
        score: int,
        tag1: bytes = ZERO_TAG,
        tag2: bytes = ZERO_TAG,
    ) -> int:
        """Append a non-revoked entry and return its index."""
        check_score(score)
        entry = FeedbackEntry(score=score, tag1=tag1, tag2=tag2)
        sequence = self._entries.setdefault((agent_id, counterparty), [])
        sequence.append(entry)
        self._clients.setdefault(agent_id, {}).setdefault(counterparty, None)
        return len(sequence) - 1

    def entry(self, agent_id: int, counterparty: str, index: int) -> FeedbackEntry:
        """Return the entry at *index*.

        Raises:
            NotFoundError: If the index is out of range.
        """
        sequence = self._entries.get((agent_id, counterparty), [])
        if index < 0 or index >= len(sequence):
            raise NotFoundError(
                f"Feedback index {index} out of range for agent {agent_id} "
                f"counterparty {counterparty} (length {len(sequence)})"
            )
        return sequence[index]

    def check_revocable(self, agent_id: int, counterparty: str, index: int) -> None:
        """Raise unless :meth:`revoke` would succeed."""
        if self.entry(agent_id, counterparty, index).revoked:
            raise ConflictError(f"Feedback index {index} is already revoked")

    def revoke(self, agent_id: int, counterparty: str, index: int) -> None:
        """Mark an entry revoked. A second revocation raises :class:`ConflictError`."""
        self.check_revocable(agent_id, counterparty, index)
        self._entries[(agent_id, counterparty)][index].revoked = True

    def entries(self, agent_id: int, counterparty: str) -> tuple[FeedbackEntry, ...]:
        return tuple(self._entries.get((agent_id, counterparty), ()))

    def clients(self, agent_id: int) -> list[str]:
        return list(self._clients.get(agent_id, {}))

    def has_client(self, agent_id: int, counterparty: str) -> bool:
        return counterparty in self._clients.get(agent_id, {})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self) -> list[dict]:
        data = []
        for agent_id, clients in self._clients.items():
            for counterparty in clients:
                data.append({
                    "agent_id": agent_id,
                    "counterparty": counterparty,
                    "entries": [
                        {
                            "score": e.score,
                            "tag1": e.tag1.hex(),
                            "tag2": e.tag2.hex(),
                            "revoked": e.revoked,
                        }
                        for e in self._entries[(agent_id, counterparty)]
                    ],
                })
        return data

    def import_state(self, data: Iterable[dict]) -> None:
        self._entries = {}
        self._clients = {}
        for item in data:
            agent_id = int(item["agent_id"])
            counterparty = item["counterparty"]
            self._entries[(agent_id, counterparty)] = [
                FeedbackEntry(
                    score=e["score"],
                    tag1=bytes.fromhex(e["tag1"]),
                    tag2=bytes.fromhex(e["tag2"]),
                    revoked=e["revoked"],
                )
                for e in item["entries"]
            ]
            self._clients.setdefault(agent_id, {})[counterparty] = None


class ResponseAnnotator:
    """Counts follow-up responses per ``(agent, counterparty, index, responder)``."""

    def __init__(self) -> None:
        self._counts: dict[tuple[int, str, int, str], int] = {}

    def increment(self, agent_id: int, counterparty: str, index: int, responder: str) -> int:
        key = (agent_id, counterparty, index, responder)
        self._counts[key] = self._counts.get(key, 0) + 1
        return self._counts[key]

    def count(
        self,
        agent_id: int,
        counterparty: str,
        index: int,
        responders: Iterable[str],
    ) -> int:
        """Sum the counters of the listed responders.

        An empty responder list yields 0 even when responses exist; callers
        must name the responders they want counted.
        """
        return sum(
            self._counts.get((agent_id, counterparty, index, r), 0)
            for r in dict.fromkeys(responders)
        )

    def export_state(self) -> list[dict]:
        return [
            {
                "agent_id": a,
                "counterparty": c,
                "index": i,
                "responder": r,
                "count": n,
            }
            for (a, c, i, r), n in self._counts.items()
        ]

    def import_state(self, data: Iterable[dict]) -> None:
        self._counts = {}
        for item in data:
            count = int(item["count"])
            if count < 0:
                raise InvalidArgumentError("Response counters cannot be negative")
            key = (int(item["agent_id"]), item["counterparty"], int(item["index"]), item["responder"])
            self._counts[key] = count
