# Copyright (c) Agent-Attest Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for Agent-Attest.

All Agent-Attest exceptions inherit from AttestationError, enabling
consistent error handling across the registries. Every class carries a
stable ``kind`` string so integrations can branch on the cause without
matching on messages.
"""


class AttestationError(Exception):
    """Base exception for all Agent-Attest errors."""

    kind = "attestation_error"


class InvalidArgumentError(AttestationError, ValueError):
    """A call argument is out of range or malformed."""

    kind = "invalid_argument"


class NotFoundError(AttestationError, LookupError):
    """Unknown agent, request hash or feedback index."""

    kind = "not_found"


class UnauthorizedError(AttestationError):
    """The caller or signer lacks authority over the target."""

    kind = "unauthorized"


class ConflictError(AttestationError):
    """The operation collides with existing state (duplicate or double revoke)."""

    kind = "conflict"


class AuthorizationError(AttestationError):
    """Errors raised while verifying a feedback authorization token."""

    kind = "authorization_error"


class AuthExpiredError(AuthorizationError):
    """Token is past its expiry, or its index limit has been consumed."""

    kind = "auth_expired"


class AuthMismatchError(AuthorizationError):
    """Token is bound to a different agent, counterparty, chain or registry."""

    kind = "auth_mismatch"


class BadSignatureError(AuthorizationError):
    """Token signature does not verify for the declared signer."""

    kind = "bad_signature"


class StorageError(AttestationError):
    """Errors related to snapshot persistence."""

    kind = "storage_error"


__all__ = [
    "AttestationError",
    "InvalidArgumentError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "AuthorizationError",
    "AuthExpiredError",
    "AuthMismatchError",
    "BadSignatureError",
    "StorageError",
]
