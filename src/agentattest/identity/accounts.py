"""
Programmable Accounts

Controllers may be plain keypairs or programmable accounts that decide for
themselves whether a signature is acceptable. A programmable account
accepts a signature by returning :data:`ACCOUNT_MAGIC_VALUE`; anything else
(including an exception) is a rejection.
"""

from __future__ import annotations

import abc
import logging
from typing import Iterable, Optional

from agentattest.constants import ACCOUNT_MAGIC_VALUE
from agentattest.exceptions import BadSignatureError, ConflictError
from agentattest.identity.addresses import normalize_address
from agentattest.identity.keystore import recover_signer

logger = logging.getLogger(__name__)


class ProgrammableAccount(abc.ABC):
    """An account whose signature policy is code rather than a single key."""

    def __init__(self, address: str) -> None:
        self.address = normalize_address(address)

    @abc.abstractmethod
    def is_valid_signature(self, digest: bytes, signature: bytes) -> bytes:
        """Return :data:`ACCOUNT_MAGIC_VALUE` to accept *signature* over *digest*."""


class OwnerSetAccount(ProgrammableAccount):
    """Accepts a keypair signature produced by any one of its owners.

    Example:
        >>> account = OwnerSetAccount("0x" + "ab" * 20, owners=[owner_address])
        >>> account.is_valid_signature(digest, store.sign_digest(owner_address, digest))
        b'\\x16&\\xba~'
    """

    def __init__(self, address: str, owners: Iterable[str]) -> None:
        super().__init__(address)
        self._owners = {normalize_address(o) for o in owners}

    @property
    def owners(self) -> frozenset[str]:
        return frozenset(self._owners)

    def add_owner(self, owner: str) -> None:
        self._owners.add(normalize_address(owner))

    def remove_owner(self, owner: str) -> None:
        self._owners.discard(normalize_address(owner))

    def is_valid_signature(self, digest: bytes, signature: bytes) -> bytes:
        try:
            signer = recover_signer(digest, signature)
        except BadSignatureError:
            return b"\x00\x00\x00\x00"
        if signer in self._owners:
            return ACCOUNT_MAGIC_VALUE
        return b"\x00\x00\x00\x00"


class AccountDirectory:
    """Resolves addresses to programmable accounts.

    An address with no registered account is treated as a plain keypair.
    """

    def __init__(self, accounts: Optional[Iterable[ProgrammableAccount]] = None) -> None:
        self._accounts: dict[str, ProgrammableAccount] = {}
        for account in accounts or ():
            self.register(account)

    def register(self, account: ProgrammableAccount) -> None:
        """Register a programmable account at its address.

        Raises:
            ConflictError: If an account is already deployed at the address.
        """
        if account.address in self._accounts:
            raise ConflictError(f"Account already registered at {account.address}")
        self._accounts[account.address] = account
        logger.info("Registered programmable account %s", account.address)

    def account_at(self, address: str) -> Optional[ProgrammableAccount]:
        return self._accounts.get(normalize_address(address))

    def __len__(self) -> int:
        return len(self._accounts)
