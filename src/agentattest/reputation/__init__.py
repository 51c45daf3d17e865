"""
Reputation layer

Delegated feedback submission, revocation, responses and aggregation.
"""

from .auth import FeedbackAuth, personal_message_hash, sign_feedback_auth
from .verifier import (
    AuthorizationVerifier,
    KeypairSignatureStrategy,
    ProgrammableAccountStrategy,
    SignatureStrategy,
)
from .ledger import FeedbackEntry, FeedbackLedger, ResponseAnnotator
from .aggregation import FeedbackBatch, FeedbackSummary, bulk_read, iter_matching, summarize
from .registry import ReputationRegistry

__all__ = [
    "FeedbackAuth",
    "personal_message_hash",
    "sign_feedback_auth",
    "AuthorizationVerifier",
    "KeypairSignatureStrategy",
    "ProgrammableAccountStrategy",
    "SignatureStrategy",
    "FeedbackEntry",
    "FeedbackLedger",
    "ResponseAnnotator",
    "FeedbackBatch",
    "FeedbackSummary",
    "bulk_read",
    "iter_matching",
    "summarize",
    "ReputationRegistry",
]
