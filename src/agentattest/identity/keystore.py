"""
Signer Key Store

In-memory Ed25519 key store whose keys are addressed by the participant
address they control. Signatures are "recoverable": each carries the
signer's raw public key ahead of the Ed25519 signature, so a verifier can
derive the signing address from the signature alone.
"""

from __future__ import annotations

import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from agentattest.constants import KEYPAIR_SIGNATURE_LENGTH, PUBLIC_KEY_LENGTH
from agentattest.exceptions import BadSignatureError
from agentattest.identity.addresses import address_from_public_key, normalize_address

logger = logging.getLogger(__name__)


def _raw_public_key(private_key: ed25519.Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def sign_with_key(private_key: ed25519.Ed25519PrivateKey, digest: bytes) -> bytes:
    """Produce a recoverable signature (``public_key || signature``)."""
    return _raw_public_key(private_key) + private_key.sign(digest)


def recover_signer(digest: bytes, signature: bytes) -> str:
    """Recover the address that produced *signature* over *digest*.

    Args:
        digest: The signed bytes.
        signature: A 96-byte recoverable signature.

    Returns:
        The signer's address.

    Raises:
        BadSignatureError: If the signature is malformed or does not verify.
    """
    if len(signature) != KEYPAIR_SIGNATURE_LENGTH:
        raise BadSignatureError(
            f"Keypair signature must be {KEYPAIR_SIGNATURE_LENGTH} bytes, got {len(signature)}"
        )
    public_key = signature[:PUBLIC_KEY_LENGTH]
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(public_key).verify(
            signature[PUBLIC_KEY_LENGTH:], digest
        )
    except (InvalidSignature, ValueError) as exc:
        raise BadSignatureError("Signature does not verify") from exc
    return address_from_public_key(public_key)


class SoftwareKeyStore:
    """In-memory Ed25519 key store keyed by address.

    Example:
        >>> store = SoftwareKeyStore()
        >>> address = store.generate_keypair()
        >>> sig = store.sign_digest(address, b"x" * 32)
        >>> recover_signer(b"x" * 32, sig) == address
        True
    """

    def __init__(self) -> None:
        self._keys: dict[str, ed25519.Ed25519PrivateKey] = {}

    def generate_keypair(self) -> str:
        """Generate a keypair and return the address it controls."""
        private_key = ed25519.Ed25519PrivateKey.generate()
        return self.import_key(private_key)

    def import_key(self, private_key: ed25519.Ed25519PrivateKey) -> str:
        """Store an existing private key and return its address."""
        address = address_from_public_key(_raw_public_key(private_key))
        self._keys[address] = private_key
        logger.info("Stored signing key for %s", address)
        return address

    def sign_digest(self, address: str, digest: bytes) -> bytes:
        """Sign *digest* with the key controlling *address*.

        Raises:
            KeyError: If no key is held for ``address``.
        """
        address = normalize_address(address)
        if address not in self._keys:
            raise KeyError(f"No signing key for address: {address}")
        logger.debug("Signed %d bytes for %s", len(digest), address)
        return sign_with_key(self._keys[address], digest)

    def public_key(self, address: str) -> bytes:
        address = normalize_address(address)
        if address not in self._keys:
            raise KeyError(f"No signing key for address: {address}")
        return _raw_public_key(self._keys[address])

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address.lower() in self._keys

    def __len__(self) -> int:
        return len(self._keys)
