"""Tests for addresses, signer keys, programmable accounts and identity sources."""

import pytest

from agentattest.constants import ACCOUNT_MAGIC_VALUE, KEYPAIR_SIGNATURE_LENGTH, ZERO_ADDRESS
from agentattest.exceptions import (
    AuthMismatchError,
    BadSignatureError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from agentattest.identity import (
    AccountDirectory,
    GuardedIdentitySource,
    IdentitySource,
    InMemoryIdentityRegistry,
    OwnerSetAccount,
    SoftwareKeyStore,
    address_from_public_key,
    bind_identity_source,
    is_zero_address,
    normalize_address,
    recover_signer,
)

REGISTRY = "0x" + "11" * 20
DIGEST = b"\x42" * 32


class FailingIdentitySource(IdentitySource):
    """Identity source whose every lookup raises."""

    def exists(self, agent_id):
        raise RuntimeError("store reverted")

    def controller_of(self, agent_id):
        raise RuntimeError("store reverted")

    def is_approved_delegate(self, agent_id, candidate):
        raise RuntimeError("store reverted")

    def is_approved_for_all(self, controller, candidate):
        raise RuntimeError("store reverted")

    def chain_id(self):
        raise RuntimeError("store reverted")

    def self_address(self):
        raise RuntimeError("store reverted")


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


class TestAddresses:
    def test_normalize_lowercases(self):
        assert normalize_address("0x" + "AB" * 20) == "0x" + "ab" * 20

    @pytest.mark.parametrize(
        "value",
        ["", "ab" * 20, "0x1234", "0x" + "zz" * 20, "0x" + "ab" * 21],
    )
    def test_normalize_rejects_malformed(self, value):
        with pytest.raises(InvalidArgumentError):
            normalize_address(value)

    def test_zero_address(self):
        assert is_zero_address(ZERO_ADDRESS)
        assert not is_zero_address(REGISTRY)

    def test_address_from_public_key_is_stable(self):
        key = bytes(range(32))
        assert address_from_public_key(key) == address_from_public_key(key)
        assert len(address_from_public_key(key)) == 42

    def test_address_from_public_key_rejects_wrong_length(self):
        with pytest.raises(InvalidArgumentError):
            address_from_public_key(b"\x01" * 31)


# ---------------------------------------------------------------------------
# Key store
# ---------------------------------------------------------------------------


class TestSoftwareKeyStore:
    def test_generate_returns_address(self):
        store = SoftwareKeyStore()
        address = store.generate_keypair()
        assert address.startswith("0x")
        assert address in store
        assert len(store) == 1

    def test_address_matches_public_key(self):
        store = SoftwareKeyStore()
        address = store.generate_keypair()
        assert address_from_public_key(store.public_key(address)) == address

    def test_sign_and_recover(self):
        store = SoftwareKeyStore()
        address = store.generate_keypair()
        sig = store.sign_digest(address, DIGEST)
        assert len(sig) == KEYPAIR_SIGNATURE_LENGTH
        assert recover_signer(DIGEST, sig) == address

    def test_recover_rejects_tampered_digest(self):
        store = SoftwareKeyStore()
        address = store.generate_keypair()
        sig = store.sign_digest(address, DIGEST)
        with pytest.raises(BadSignatureError):
            recover_signer(b"\x00" * 32, sig)

    def test_recover_rejects_swapped_public_key(self):
        store = SoftwareKeyStore()
        a = store.generate_keypair()
        b = store.generate_keypair()
        sig = store.sign_digest(a, DIGEST)
        forged = store.public_key(b) + sig[32:]
        with pytest.raises(BadSignatureError):
            recover_signer(DIGEST, forged)

    def test_recover_rejects_wrong_length(self):
        with pytest.raises(BadSignatureError):
            recover_signer(DIGEST, b"\x00" * 65)

    def test_sign_unknown_address_raises(self):
        store = SoftwareKeyStore()
        with pytest.raises(KeyError):
            store.sign_digest("0x" + "01" * 20, DIGEST)


# ---------------------------------------------------------------------------
# Programmable accounts
# ---------------------------------------------------------------------------


class TestOwnerSetAccount:
    def test_accepts_owner_signature(self):
        store = SoftwareKeyStore()
        owner = store.generate_keypair()
        account = OwnerSetAccount("0x" + "ab" * 20, owners=[owner])
        sig = store.sign_digest(owner, DIGEST)
        assert account.is_valid_signature(DIGEST, sig) == ACCOUNT_MAGIC_VALUE

    def test_rejects_non_owner(self):
        store = SoftwareKeyStore()
        owner = store.generate_keypair()
        outsider = store.generate_keypair()
        account = OwnerSetAccount("0x" + "ab" * 20, owners=[owner])
        sig = store.sign_digest(outsider, DIGEST)
        assert account.is_valid_signature(DIGEST, sig) != ACCOUNT_MAGIC_VALUE

    def test_rejects_garbage(self):
        account = OwnerSetAccount("0x" + "ab" * 20, owners=[])
        assert account.is_valid_signature(DIGEST, b"junk") != ACCOUNT_MAGIC_VALUE

    def test_owner_removal(self):
        store = SoftwareKeyStore()
        owner = store.generate_keypair()
        account = OwnerSetAccount("0x" + "ab" * 20, owners=[owner])
        account.remove_owner(owner)
        sig = store.sign_digest(owner, DIGEST)
        assert account.is_valid_signature(DIGEST, sig) != ACCOUNT_MAGIC_VALUE
        assert account.owners == frozenset()


class TestAccountDirectory:
    def test_lookup(self):
        account = OwnerSetAccount("0x" + "AB" * 20, owners=[])
        directory = AccountDirectory([account])
        assert directory.account_at("0x" + "ab" * 20) is account
        assert directory.account_at("0x" + "cd" * 20) is None
        assert len(directory) == 1

    def test_duplicate_registration(self):
        directory = AccountDirectory()
        directory.register(OwnerSetAccount("0x" + "ab" * 20, owners=[]))
        with pytest.raises(ConflictError):
            directory.register(OwnerSetAccount("0x" + "ab" * 20, owners=[]))


# ---------------------------------------------------------------------------
# In-memory identity registry
# ---------------------------------------------------------------------------


class TestInMemoryIdentityRegistry:
    def setup_method(self):
        self.registry = InMemoryIdentityRegistry(REGISTRY, chain_id=5)
        self.owner = "0x" + "a1" * 20
        self.delegate = "0x" + "b2" * 20
        self.operator = "0x" + "c3" * 20

    def test_register_allocates_sequential_ids(self):
        assert self.registry.register(self.owner) == 0
        assert self.registry.register(self.owner) == 1
        assert self.registry.agent_ids() == [0, 1]

    def test_exists_and_controller(self):
        agent = self.registry.register(self.owner, token_uri="ipfs://card")
        assert self.registry.exists(agent)
        assert not self.registry.exists(agent + 1)
        assert self.registry.controller_of(agent) == self.owner
        assert self.registry.token_uri(agent) == "ipfs://card"

    def test_controller_of_unknown_agent(self):
        with pytest.raises(NotFoundError):
            self.registry.controller_of(99)

    def test_approve_delegate(self):
        agent = self.registry.register(self.owner)
        self.registry.approve(self.owner, agent, self.delegate)
        assert self.registry.is_approved_delegate(agent, self.delegate)
        self.registry.approve(self.owner, agent, ZERO_ADDRESS)
        assert not self.registry.is_approved_delegate(agent, self.delegate)

    def test_zero_address_is_never_a_delegate(self):
        agent = self.registry.register(self.owner)
        assert not self.registry.is_approved_delegate(agent, ZERO_ADDRESS)

    def test_approve_requires_owner(self):
        agent = self.registry.register(self.owner)
        with pytest.raises(UnauthorizedError):
            self.registry.approve(self.delegate, agent, self.delegate)

    def test_operator_can_approve(self):
        agent = self.registry.register(self.owner)
        self.registry.set_approval_for_all(self.owner, self.operator, True)
        self.registry.approve(self.operator, agent, self.delegate)
        assert self.registry.is_approved_for_all(self.owner, self.operator)
        assert self.registry.is_approved_delegate(agent, self.delegate)

    def test_transfer_clears_delegate(self):
        agent = self.registry.register(self.owner)
        self.registry.approve(self.owner, agent, self.delegate)
        self.registry.transfer(self.owner, agent, self.operator)
        assert self.registry.controller_of(agent) == self.operator
        assert not self.registry.is_approved_delegate(agent, self.delegate)

    def test_metadata(self):
        agent = self.registry.register(self.owner, metadata={"name": "alpha"})
        self.registry.set_metadata(self.owner, agent, "endpoint", "https://alpha.example")
        assert self.registry.get_metadata(agent, "name") == "alpha"
        assert self.registry.get_metadata(agent, "endpoint") == "https://alpha.example"
        assert self.registry.get_metadata(agent, "missing") == ""

    def test_state_round_trip(self):
        agent = self.registry.register(self.owner)
        self.registry.approve(self.owner, agent, self.delegate)
        self.registry.set_approval_for_all(self.owner, self.operator, True)
        restored = InMemoryIdentityRegistry.from_state(self.registry.export_state())
        assert restored.chain_id() == 5
        assert restored.controller_of(agent) == self.owner
        assert restored.is_approved_delegate(agent, self.delegate)
        assert restored.is_approved_for_all(self.owner, self.operator)
        assert restored.register(self.owner) == agent + 1


class TestGuardedIdentitySource:
    def test_authorization_paths(self):
        registry = InMemoryIdentityRegistry(REGISTRY)
        owner, delegate, operator, stranger = (
            "0x" + "a1" * 20, "0x" + "b2" * 20, "0x" + "c3" * 20, "0x" + "d4" * 20
        )
        agent = registry.register(owner)
        registry.approve(owner, agent, delegate)
        registry.set_approval_for_all(owner, operator, True)
        guarded = GuardedIdentitySource(registry)
        assert guarded.is_authorized(agent, owner)
        assert guarded.is_authorized(agent, delegate)
        assert guarded.is_authorized(agent, operator)
        assert not guarded.is_authorized(agent, stranger)

    def test_unknown_agent_is_not_authorized(self):
        guarded = GuardedIdentitySource(InMemoryIdentityRegistry(REGISTRY))
        assert guarded.exists(3) is False
        assert guarded.controller_of(3) is None
        assert guarded.is_authorized(3, "0x" + "a1" * 20) is False

    def test_faults_read_as_negative(self):
        guarded = GuardedIdentitySource(FailingIdentitySource())
        assert guarded.exists(0) is False
        assert guarded.controller_of(0) is None
        assert guarded.is_authorized(0, "0x" + "a1" * 20) is False


class TestBindIdentitySource:
    def test_binds_matching_source(self):
        registry = InMemoryIdentityRegistry(REGISTRY, chain_id=10)
        assert bind_identity_source(registry, REGISTRY.upper().replace("0X", "0x"), 10) == REGISTRY

    def test_zero_address_rejected(self):
        registry = InMemoryIdentityRegistry(REGISTRY)
        with pytest.raises(InvalidArgumentError):
            bind_identity_source(registry, ZERO_ADDRESS, 1)

    def test_chain_mismatch(self):
        registry = InMemoryIdentityRegistry(REGISTRY, chain_id=10)
        with pytest.raises(AuthMismatchError):
            bind_identity_source(registry, REGISTRY, 11)

    def test_address_mismatch(self):
        registry = InMemoryIdentityRegistry(REGISTRY, chain_id=10)
        with pytest.raises(AuthMismatchError):
            bind_identity_source(registry, "0x" + "99" * 20, 10)

    def test_failing_source(self):
        with pytest.raises(AuthMismatchError):
            bind_identity_source(FailingIdentitySource(), REGISTRY, 1)
