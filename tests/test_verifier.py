"""Tests for the feedback authorization verifier."""

import pytest

from agentattest.exceptions import (
    AuthExpiredError,
    AuthMismatchError,
    BadSignatureError,
    UnauthorizedError,
)
from agentattest.identity import AccountDirectory, GuardedIdentitySource, OwnerSetAccount
from agentattest.identity.accounts import ProgrammableAccount
from agentattest.reputation.verifier import (
    AuthorizationVerifier,
    KeypairSignatureStrategy,
    ProgrammableAccountStrategy,
)

ACCOUNT = "0x" + "ac" * 20


class ExplodingAccount(ProgrammableAccount):
    def is_valid_signature(self, digest, signature):
        raise RuntimeError("account reverted")


def _verifier(deployment, clock, accounts=None) -> AuthorizationVerifier:
    return AuthorizationVerifier(
        GuardedIdentitySource(deployment.identity),
        identity_registry=deployment.config.identity_registry,
        reputation_registry=deployment.reputation.address,
        chain_id=deployment.config.chain_id,
        accounts=accounts,
        clock=clock,
    )


class TestVerifierChecks:
    def test_valid_token(self, deployment, clock, actors, agent_id, make_auth):
        _verifier(deployment, clock).verify(make_auth(agent_id), agent_id, actors.client, 0)

    def test_counterparty_is_case_insensitive(self, deployment, clock, actors, agent_id, make_auth):
        _verifier(deployment, clock).verify(
            make_auth(agent_id), agent_id, actors.client.upper().replace("0X", "0x"), 0
        )

    def test_wrong_agent(self, deployment, clock, actors, agent_id, make_auth):
        with pytest.raises(AuthMismatchError):
            _verifier(deployment, clock).verify(make_auth(agent_id), agent_id + 1, actors.client, 0)

    def test_wrong_counterparty(self, deployment, clock, actors, agent_id, make_auth):
        with pytest.raises(AuthMismatchError):
            _verifier(deployment, clock).verify(
                make_auth(agent_id), agent_id, actors.other_client, 0
            )

    def test_expiry_is_exclusive(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, expiry=clock.now + 10)
        verifier = _verifier(deployment, clock)
        clock.advance(9)
        verifier.verify(auth, agent_id, actors.client, 0)
        clock.advance(1)
        with pytest.raises(AuthExpiredError):
            verifier.verify(auth, agent_id, actors.client, 0)

    def test_wrong_chain(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, chain_id=deployment.config.chain_id + 1)
        with pytest.raises(AuthMismatchError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_wrong_identity_registry(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, identity_registry="0x" + "99" * 20)
        with pytest.raises(AuthMismatchError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_index_limit(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, index_limit=2)
        verifier = _verifier(deployment, clock)
        verifier.verify(auth, agent_id, actors.client, 2)
        with pytest.raises(AuthExpiredError):
            verifier.verify(auth, agent_id, actors.client, 3)

    def test_unauthorized_signer(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, signer=actors.stranger)
        with pytest.raises(UnauthorizedError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_tampered_signature(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id)
        broken = auth.model_copy(update={"signature": auth.signature[:-1] + b"\x00"})
        with pytest.raises(BadSignatureError):
            _verifier(deployment, clock).verify(broken, agent_id, actors.client, 0)

    def test_signature_by_other_key(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, key_address=actors.stranger)
        with pytest.raises(BadSignatureError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_token_for_other_reputation_registry(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, reputation_registry="0x" + "98" * 20)
        with pytest.raises(BadSignatureError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)


class TestVerifierOrder:
    def test_agent_checked_before_expiry(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, expiry=clock.now)
        with pytest.raises(AuthMismatchError):
            _verifier(deployment, clock).verify(auth, agent_id + 1, actors.client, 0)

    def test_expiry_checked_before_chain(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, expiry=clock.now, chain_id=999)
        with pytest.raises(AuthExpiredError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_index_limit_checked_before_authority(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, signer=actors.stranger)
        with pytest.raises(AuthExpiredError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 1)

    def test_authority_checked_before_signature(self, deployment, clock, actors, agent_id, make_auth):
        auth = make_auth(agent_id, signer=actors.stranger)
        broken = auth.model_copy(update={"signature": b"\x00" * 96})
        with pytest.raises(UnauthorizedError):
            _verifier(deployment, clock).verify(broken, agent_id, actors.client, 0)


class TestDelegation:
    def test_delegate_may_sign(self, deployment, clock, actors, agent_id, make_auth):
        deployment.identity.approve(actors.controller, agent_id, actors.delegate)
        auth = make_auth(agent_id, signer=actors.delegate)
        _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_operator_may_sign(self, deployment, clock, actors, agent_id, make_auth):
        deployment.identity.set_approval_for_all(actors.controller, actors.delegate, True)
        auth = make_auth(agent_id, signer=actors.delegate)
        _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_withdrawn_delegation_invalidates_token(
        self, deployment, clock, actors, agent_id, make_auth
    ):
        deployment.identity.approve(actors.controller, agent_id, actors.delegate)
        auth = make_auth(agent_id, signer=actors.delegate)
        deployment.identity.approve(actors.controller, agent_id, "0x" + "00" * 20)
        with pytest.raises(UnauthorizedError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)

    def test_transfer_invalidates_old_controller(
        self, deployment, clock, actors, agent_id, make_auth
    ):
        auth = make_auth(agent_id)
        deployment.identity.transfer(actors.controller, agent_id, actors.stranger)
        with pytest.raises(UnauthorizedError):
            _verifier(deployment, clock).verify(auth, agent_id, actors.client, 0)


class TestProgrammableAccounts:
    def _account_agent(self, deployment, actors):
        return deployment.identity.register(ACCOUNT)

    def test_strategy_selection(self, deployment, clock):
        accounts = AccountDirectory([OwnerSetAccount(ACCOUNT, owners=[])])
        verifier = _verifier(deployment, clock, accounts)
        assert isinstance(verifier.strategy_for(ACCOUNT), ProgrammableAccountStrategy)
        assert isinstance(verifier.strategy_for("0x" + "01" * 20), KeypairSignatureStrategy)

    def test_account_accepts_owner_signature(self, deployment, clock, actors, make_auth):
        agent = self._account_agent(deployment, actors)
        accounts = AccountDirectory([OwnerSetAccount(ACCOUNT, owners=[actors.controller])])
        auth = make_auth(agent, signer=ACCOUNT, key_address=actors.controller)
        _verifier(deployment, clock, accounts).verify(auth, agent, actors.client, 0)

    def test_account_rejects_non_owner(self, deployment, clock, actors, make_auth):
        agent = self._account_agent(deployment, actors)
        accounts = AccountDirectory([OwnerSetAccount(ACCOUNT, owners=[actors.controller])])
        auth = make_auth(agent, signer=ACCOUNT, key_address=actors.stranger)
        with pytest.raises(BadSignatureError):
            _verifier(deployment, clock, accounts).verify(auth, agent, actors.client, 0)

    def test_account_fault_is_bad_signature(self, deployment, clock, actors, make_auth):
        agent = self._account_agent(deployment, actors)
        accounts = AccountDirectory([ExplodingAccount(ACCOUNT)])
        auth = make_auth(agent, signer=ACCOUNT, key_address=actors.controller)
        with pytest.raises(BadSignatureError):
            _verifier(deployment, clock, accounts).verify(auth, agent, actors.client, 0)

    def test_account_without_directory_entry_uses_recovery(
        self, deployment, clock, actors, make_auth
    ):
        agent = self._account_agent(deployment, actors)
        auth = make_auth(agent, signer=ACCOUNT, key_address=actors.controller)
        with pytest.raises(BadSignatureError):
            _verifier(deployment, clock).verify(auth, agent, actors.client, 0)
