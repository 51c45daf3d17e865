"""
Identity layer

- Participant addresses and Ed25519 keypair signers
- Programmable accounts with their own signature policy
- The identity source contract and an in-memory identity registry
"""

from .addresses import address_from_public_key, is_zero_address, normalize_address
from .keystore import SoftwareKeyStore, recover_signer, sign_with_key
from .accounts import AccountDirectory, OwnerSetAccount, ProgrammableAccount
from .source import (
    GuardedIdentitySource,
    IdentityRecord,
    IdentitySource,
    InMemoryIdentityRegistry,
    bind_identity_source,
)

__all__ = [
    "address_from_public_key",
    "is_zero_address",
    "normalize_address",
    "SoftwareKeyStore",
    "recover_signer",
    "sign_with_key",
    "AccountDirectory",
    "OwnerSetAccount",
    "ProgrammableAccount",
    "GuardedIdentitySource",
    "IdentityRecord",
    "IdentitySource",
    "InMemoryIdentityRegistry",
    "bind_identity_source",
]
