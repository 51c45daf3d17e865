"""
Feedback Authorization Tokens

A controller (or its delegate) authorizes a counterparty to leave feedback
by signing a :class:`FeedbackAuth`. The token says: *the signer permits
``counterparty`` to append feedback for ``agent_id`` at any index up to
``index_limit``, on chain ``chain_id``, against ``identity_registry``,
before ``expiry``*.

Tokens are capabilities, not nonces: they are verified and discarded on
every call, and are consumed implicitly as the ledger grows past
``index_limit``.
"""

from __future__ import annotations

import hashlib
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from agentattest.constants import (
    FEEDBACK_AUTH_DOMAIN,
    PERSONAL_MESSAGE_PREFIX,
    UINT64_MAX,
    UINT256_MAX,
)
from agentattest.exceptions import InvalidArgumentError
from agentattest.identity.addresses import address_to_bytes, normalize_address
from agentattest.identity.keystore import SoftwareKeyStore

_WORD = 32
_FIELD_COUNT = 7


def _uint_word(value: int) -> bytes:
    return value.to_bytes(_WORD, "big")


def _address_word(address: str) -> bytes:
    return address_to_bytes(address).rjust(_WORD, b"\x00")


def _word_address(word: bytes) -> str:
    return normalize_address("0x" + word[-20:].hex())


def personal_message_hash(digest: bytes) -> bytes:
    """Wrap a 32-byte digest in the personal-message envelope that gets signed."""
    return hashlib.sha256(PERSONAL_MESSAGE_PREFIX + digest).digest()


class FeedbackAuth(BaseModel):
    """Signed permission for one counterparty to give feedback to one agent."""

    agent_id: int = Field(..., ge=0, le=UINT256_MAX)
    counterparty: str = Field(..., description="Address allowed to submit feedback")
    index_limit: int = Field(..., ge=0, le=UINT64_MAX, description="Highest index covered")
    expiry: int = Field(..., ge=0, le=UINT256_MAX, description="Unix seconds, exclusive")
    chain_id: int = Field(..., ge=0, le=UINT256_MAX)
    identity_registry: str = Field(..., description="Identity registry the token is bound to")
    signer: str = Field(..., description="Address that signed the token")
    signature: bytes = Field(default=b"")

    @field_validator("counterparty", "identity_registry", "signer")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return normalize_address(v)

    def digest(self, reputation_registry: str) -> bytes:
        """Domain-separated digest over every field except the signature.

        Args:
            reputation_registry: Address of the registry the token will be
                presented to.
        """
        payload = b"".join(
            [
                hashlib.sha256(FEEDBACK_AUTH_DOMAIN).digest(),
                _uint_word(self.chain_id),
                _address_word(reputation_registry),
                _address_word(self.identity_registry),
                _uint_word(self.agent_id),
                _address_word(self.counterparty),
                _uint_word(self.index_limit),
                _uint_word(self.expiry),
                _address_word(self.signer),
            ]
        )
        return hashlib.sha256(payload).digest()

    def signing_hash(self, reputation_registry: str) -> bytes:
        """The envelope hash that signers actually sign."""
        return personal_message_hash(self.digest(reputation_registry))

    def to_bytes(self) -> bytes:
        """Packed encoding: seven 32-byte words followed by the signature."""
        return b"".join(
            [
                _uint_word(self.agent_id),
                _address_word(self.counterparty),
                _uint_word(self.index_limit),
                _uint_word(self.expiry),
                _uint_word(self.chain_id),
                _address_word(self.identity_registry),
                _address_word(self.signer),
                self.signature,
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "FeedbackAuth":
        """Decode a token produced by :meth:`to_bytes`.

        Raises:
            InvalidArgumentError: If the data is too short or a field is out of range.
        """
        header = _WORD * _FIELD_COUNT
        if len(data) < header:
            raise InvalidArgumentError(
                f"Feedback auth must be at least {header} bytes, got {len(data)}"
            )
        words = [data[i * _WORD:(i + 1) * _WORD] for i in range(_FIELD_COUNT)]
        try:
            return cls(
                agent_id=int.from_bytes(words[0], "big"),
                counterparty=_word_address(words[1]),
                index_limit=int.from_bytes(words[2], "big"),
                expiry=int.from_bytes(words[3], "big"),
                chain_id=int.from_bytes(words[4], "big"),
                identity_registry=_word_address(words[5]),
                signer=_word_address(words[6]),
                signature=data[header:],
            )
        except ValidationError as exc:
            raise InvalidArgumentError(f"Malformed feedback auth: {exc}") from exc


def sign_feedback_auth(
    keystore: SoftwareKeyStore,
    *,
    signer: str,
    agent_id: int,
    counterparty: str,
    index_limit: int,
    expiry: int,
    chain_id: int,
    identity_registry: str,
    reputation_registry: str,
    key_address: Optional[str] = None,
) -> FeedbackAuth:
    """Build and sign a feedback authorization.

    Args:
        keystore: Key store holding the signing key.
        signer: Address declared as the signer (a keypair address or a
            programmable account).
        key_address: Key to sign with when it differs from ``signer``, e.g.
            an owner key of a programmable account.

    Returns:
        The signed token.
    """
    auth = FeedbackAuth(
        agent_id=agent_id,
        counterparty=counterparty,
        index_limit=index_limit,
        expiry=expiry,
        chain_id=chain_id,
        identity_registry=identity_registry,
        signer=signer,
    )
    signature = keystore.sign_digest(key_address or signer, auth.signing_hash(reputation_registry))
    return auth.model_copy(update={"signature": signature})
