"""
Participant Addresses

Controllers, counterparties, validators and registries are identified by
20-byte addresses written as lowercase ``0x``-prefixed hex. Keypair
addresses are derived from the signer's Ed25519 public key.
"""

import hashlib

from agentattest.constants import ADDRESS_LENGTH, PUBLIC_KEY_LENGTH, ZERO_ADDRESS
from agentattest.exceptions import InvalidArgumentError


def normalize_address(value: str) -> str:
    """Return the canonical lowercase form of an address.

    Args:
        value: ``0x``-prefixed hex string of 20 bytes (any case).

    Returns:
        The lowercase canonical address.

    Raises:
        InvalidArgumentError: If the value is not a 20-byte hex address.
    """
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise InvalidArgumentError(f"Invalid address: {value!r}")
    body = value[2:]
    if len(body) != ADDRESS_LENGTH * 2:
        raise InvalidArgumentError(f"Address must be {ADDRESS_LENGTH} bytes: {value!r}")
    try:
        bytes.fromhex(body)
    except ValueError as exc:
        raise InvalidArgumentError(f"Address is not hex: {value!r}") from exc
    return "0x" + body.lower()


def is_zero_address(value: str) -> bool:
    return normalize_address(value) == ZERO_ADDRESS


def address_to_bytes(value: str) -> bytes:
    return bytes.fromhex(normalize_address(value)[2:])


def address_from_public_key(public_key: bytes) -> str:
    """Derive the address controlled by a raw Ed25519 public key.

    The address is the trailing 20 bytes of ``sha256(public_key)``.
    """
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise InvalidArgumentError(
            f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
        )
    return "0x" + hashlib.sha256(public_key).digest()[-ADDRESS_LENGTH:].hex()
