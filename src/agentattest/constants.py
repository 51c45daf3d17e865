"""Shared constants for Agent-Attest."""

# Scores and validator responses are percentages.
MAX_SCORE = 100

ZERO_ADDRESS = "0x" + "00" * 20
ZERO_TAG = bytes(32)
TAG_LENGTH = 32
REQUEST_HASH_LENGTH = 32
ADDRESS_LENGTH = 20

UINT64_MAX = 2**64 - 1
UINT256_MAX = 2**256 - 1

# Domain separator mixed into every feedback authorization digest.
FEEDBACK_AUTH_DOMAIN = b"agentattest.feedback-auth.v1"

# Prefix applied to a 32-byte digest before it is signed.
PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"

# Value a programmable account returns to accept a signature.
ACCOUNT_MAGIC_VALUE = bytes.fromhex("1626ba7e")

# Keypair signatures carry the raw Ed25519 public key ahead of the signature.
PUBLIC_KEY_LENGTH = 32
ED25519_SIGNATURE_LENGTH = 64
KEYPAIR_SIGNATURE_LENGTH = PUBLIC_KEY_LENGTH + ED25519_SIGNATURE_LENGTH

DEFAULT_CHAIN_ID = 1
