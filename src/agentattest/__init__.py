"""
Agent-Attest - Reputation and Validation Registries for Agents

Identity · Reputation · Validation

Independent parties record and query attestations about agents identified
by a stable numeric id: delegated, replay-protected feedback with
revocation and tag-filtered aggregation, and a validator request/response
lifecycle.

Version: 1.0.0a1
"""

__version__ = "1.0.0a1"

# Identity
from .identity import (
    AccountDirectory,
    GuardedIdentitySource,
    IdentitySource,
    InMemoryIdentityRegistry,
    OwnerSetAccount,
    ProgrammableAccount,
    SoftwareKeyStore,
    normalize_address,
)

# Reputation
from .reputation import (
    AuthorizationVerifier,
    FeedbackAuth,
    FeedbackBatch,
    FeedbackEntry,
    FeedbackSummary,
    ReputationRegistry,
    sign_feedback_auth,
)

# Validation
from .validation import (
    ValidationRegistry,
    ValidationRequest,
    ValidationStatus,
    ValidationSummary,
)

from .config import RegistryConfig
from .deployment import Deployment
from .tags import tag

# Exceptions
from .exceptions import (
    AttestationError,
    AuthExpiredError,
    AuthMismatchError,
    AuthorizationError,
    BadSignatureError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)

__all__ = [
    # Version
    "__version__",

    # Identity
    "AccountDirectory",
    "GuardedIdentitySource",
    "IdentitySource",
    "InMemoryIdentityRegistry",
    "OwnerSetAccount",
    "ProgrammableAccount",
    "SoftwareKeyStore",
    "normalize_address",

    # Reputation
    "AuthorizationVerifier",
    "FeedbackAuth",
    "FeedbackBatch",
    "FeedbackEntry",
    "FeedbackSummary",
    "ReputationRegistry",
    "sign_feedback_auth",

    # Validation
    "ValidationRegistry",
    "ValidationRequest",
    "ValidationStatus",
    "ValidationSummary",

    "RegistryConfig",
    "Deployment",
    "tag",

    # Exceptions
    "AttestationError",
    "AuthExpiredError",
    "AuthMismatchError",
    "AuthorizationError",
    "BadSignatureError",
    "ConflictError",
    "InvalidArgumentError",
    "NotFoundError",
    "StorageError",
    "UnauthorizedError",
]
