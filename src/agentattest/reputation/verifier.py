"""
Authorization Verifier

Checks a :class:`FeedbackAuth` against the live state of the deployment.
The verifier holds no session state: each call is a pure function of the
token, the expected binding, the current ledger length, the identity
source and the clock. Delegation is resolved at verification time, so a
delegate whose approval is withdrawn after signing can no longer authorize.

Signatures are checked by one of two interchangeable strategies, chosen by
whether the signer address hosts a programmable account.
"""

from __future__ import annotations

import abc
import logging
from typing import Optional

from agentattest.config import Clock, system_clock
from agentattest.constants import ACCOUNT_MAGIC_VALUE
from agentattest.exceptions import (
    AuthExpiredError,
    AuthMismatchError,
    BadSignatureError,
    UnauthorizedError,
)
from agentattest.identity.accounts import AccountDirectory, ProgrammableAccount
from agentattest.identity.addresses import normalize_address
from agentattest.identity.keystore import recover_signer
from agentattest.identity.source import GuardedIdentitySource
from agentattest.reputation.auth import FeedbackAuth

logger = logging.getLogger(__name__)


class SignatureStrategy(abc.ABC):
    """Decides whether *signature* over *message* was produced by *signer*."""

    @abc.abstractmethod
    def check(self, signer: str, message: bytes, signature: bytes) -> None:
        """Raise :class:`BadSignatureError` unless the signature is acceptable."""


class KeypairSignatureStrategy(SignatureStrategy):
    """Recover the signing address and compare it with the declared signer."""

    def check(self, signer: str, message: bytes, signature: bytes) -> None:
        recovered = recover_signer(message, signature)
        if recovered != signer:
            raise BadSignatureError(f"Signature recovers to {recovered}, expected {signer}")


class ProgrammableAccountStrategy(SignatureStrategy):
    """Delegate the decision to the account's own verification entrypoint."""

    def __init__(self, account: ProgrammableAccount) -> None:
        self._account = account

    def check(self, signer: str, message: bytes, signature: bytes) -> None:
        try:
            result = self._account.is_valid_signature(message, signature)
        except Exception as exc:
            raise BadSignatureError(f"Account {signer} rejected the signature") from exc
        if result != ACCOUNT_MAGIC_VALUE:
            raise BadSignatureError(f"Account {signer} rejected the signature")


class AuthorizationVerifier:
    """Validates feedback authorization tokens for one reputation registry.

    Args:
        identity: Guarded view of the bound identity source.
        identity_registry: Address of the bound identity source.
        reputation_registry: Address of the registry tokens are presented to.
        chain_id: Chain the deployment runs on.
        accounts: Resolver for programmable accounts; addresses without an
            account are treated as keypairs.
        clock: Returns the current time in unix seconds.
    """

    def __init__(
        self,
        identity: GuardedIdentitySource,
        identity_registry: str,
        reputation_registry: str,
        chain_id: int,
        accounts: Optional[AccountDirectory] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._identity = identity
        self._identity_registry = normalize_address(identity_registry)
        self._reputation_registry = normalize_address(reputation_registry)
        self._chain_id = chain_id
        self._accounts = accounts if accounts is not None else AccountDirectory()
        self._clock = clock or system_clock
        self._keypair_strategy = KeypairSignatureStrategy()

    def strategy_for(self, signer: str) -> SignatureStrategy:
        account = self._accounts.account_at(signer)
        if account is not None:
            return ProgrammableAccountStrategy(account)
        return self._keypair_strategy

    def verify(
        self,
        auth: FeedbackAuth,
        expected_agent_id: int,
        expected_counterparty: str,
        current_length: int,
    ) -> None:
        """Verify *auth* for the next append to ``(agent, counterparty)``.

        Checks run in a fixed order and stop at the first failure.

        Args:
            auth: The presented token.
            expected_agent_id: Agent the caller is giving feedback to.
            expected_counterparty: The caller's address.
            current_length: Current length of the caller's sub-ledger, i.e.
                the index the append would occupy.

        Raises:
            AuthMismatchError: Token bound to another agent, counterparty,
                chain or identity registry.
            AuthExpiredError: Token past expiry, or its index limit is below
                the next index.
            UnauthorizedError: Signer does not currently control, and is not
                delegated authority over, the agent.
            BadSignatureError: Signature does not verify for the signer.
        """
        if auth.agent_id != expected_agent_id:
            raise AuthMismatchError(
                f"Token is for agent {auth.agent_id}, not {expected_agent_id}"
            )
        if auth.counterparty != normalize_address(expected_counterparty):
            raise AuthMismatchError(
                f"Token is for counterparty {auth.counterparty}, not {expected_counterparty}"
            )
        now = self._clock()
        if now >= auth.expiry:
            raise AuthExpiredError(f"Token expired at {auth.expiry} (now {now})")
        if auth.chain_id != self._chain_id:
            raise AuthMismatchError(f"Token is for chain {auth.chain_id}, not {self._chain_id}")
        if auth.identity_registry != self._identity_registry:
            raise AuthMismatchError(
                f"Token is bound to identity registry {auth.identity_registry}"
            )
        if auth.index_limit < current_length:
            raise AuthExpiredError(
                f"Token index limit {auth.index_limit} is below next index {current_length}"
            )
        if not self._identity.is_authorized(auth.agent_id, auth.signer):
            logger.warning(
                "Signer %s is not authorized for agent %s", auth.signer, auth.agent_id
            )
            raise UnauthorizedError(
                f"Signer {auth.signer} is not authorized for agent {auth.agent_id}"
            )

        message = auth.signing_hash(self._reputation_registry)
        self.strategy_for(auth.signer).check(auth.signer, message, auth.signature)
        logger.debug(
            "Verified feedback auth for agent %s counterparty %s index %d",
            auth.agent_id,
            auth.counterparty,
            current_length,
        )
