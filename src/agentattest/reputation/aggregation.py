"""
Feedback Aggregation

Filtered counts, averages and bulk reads over a :class:`FeedbackLedger`.

Both reads share one lazy generator, so a summary and a bulk read with the
same filters always see the same entries. Ordering: when no counterparty
filter is given, counterparties come in the order they first gave
feedback; otherwise in filter order. Within a counterparty, entries come in
index order.
"""

from __future__ import annotations

from typing import Iterable, Iterator, NamedTuple, Sequence

from pydantic import BaseModel, Field, model_validator

from agentattest.constants import ZERO_TAG
from agentattest.reputation.ledger import FeedbackEntry, FeedbackLedger
from agentattest.tags import tag_matches


class MatchedEntry(NamedTuple):
    counterparty: str
    index: int
    entry: FeedbackEntry


class FeedbackSummary(BaseModel):
    """Count and floor-average of matching, non-revoked feedback."""

    count: int = Field(default=0, ge=0)
    average_score: int = Field(default=0, ge=0)


class FeedbackBatch(BaseModel):
    """Parallel arrays returned by a bulk read."""

    counterparties: tuple[str, ...] = ()
    scores: tuple[int, ...] = ()
    tag1s: tuple[bytes, ...] = ()
    tag2s: tuple[bytes, ...] = ()
    revoked: tuple[bool, ...] = ()

    @model_validator(mode="after")
    def check_parallel(self) -> "FeedbackBatch":
        lengths = {
            len(self.counterparties),
            len(self.scores),
            len(self.tag1s),
            len(self.tag2s),
            len(self.revoked),
        }
        if len(lengths) != 1:
            raise ValueError("Bulk read arrays must have equal length")
        return self

    def __len__(self) -> int:
        return len(self.counterparties)


def iter_matching(
    ledger: FeedbackLedger,
    agent_id: int,
    counterparties: Sequence[str] = (),
    tag1: bytes = ZERO_TAG,
    tag2: bytes = ZERO_TAG,
    include_revoked: bool = False,
) -> Iterator[MatchedEntry]:
    """Yield entries for *agent_id* that pass every filter, in stable order."""
    sources: Iterable[str] = (
        dict.fromkeys(counterparties) if counterparties else ledger.clients(agent_id)
    )
    for counterparty in sources:
        for index, entry in enumerate(ledger.entries(agent_id, counterparty)):
            if entry.revoked and not include_revoked:
                continue
            if not tag_matches(tag1, entry.tag1) or not tag_matches(tag2, entry.tag2):
                continue
            yield MatchedEntry(counterparty, index, entry)


def summarize(
    ledger: FeedbackLedger,
    agent_id: int,
    counterparties: Sequence[str] = (),
    tag1: bytes = ZERO_TAG,
    tag2: bytes = ZERO_TAG,
) -> FeedbackSummary:
    """Count and floor-average non-revoked feedback; no matches gives ``(0, 0)``."""
    count = 0
    total = 0
    for match in iter_matching(ledger, agent_id, counterparties, tag1, tag2):
        count += 1
        total += match.entry.score
    if count == 0:
        return FeedbackSummary()
    return FeedbackSummary(count=count, average_score=total // count)


def bulk_read(
    ledger: FeedbackLedger,
    agent_id: int,
    counterparties: Sequence[str] = (),
    tag1: bytes = ZERO_TAG,
    tag2: bytes = ZERO_TAG,
    include_revoked: bool = False,
) -> FeedbackBatch:
    """Read all matching feedback as parallel arrays."""
    matches = list(
        iter_matching(ledger, agent_id, counterparties, tag1, tag2, include_revoked)
    )
    return FeedbackBatch(
        counterparties=tuple(m.counterparty for m in matches),
        scores=tuple(m.entry.score for m in matches),
        tag1s=tuple(m.entry.tag1 for m in matches),
        tag2s=tuple(m.entry.tag2 for m in matches),
        revoked=tuple(m.entry.revoked for m in matches),
    )
