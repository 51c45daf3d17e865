"""Fixed-width tag, hash and score helpers.

Tags are 32 opaque bytes. The all-zero tag means "unset" on an entry and
"match anything" in a filter.
"""

from typing import Union

from agentattest.constants import MAX_SCORE, REQUEST_HASH_LENGTH, TAG_LENGTH, ZERO_TAG
from agentattest.exceptions import InvalidArgumentError

TagLike = Union[bytes, str, None]


def tag(text: str) -> bytes:
    """Build a tag from UTF-8 text, right-padded with zero bytes.

    Example:
        >>> tag("quality")[:7]
        b'quality'
    """
    raw = text.encode("utf-8")
    if len(raw) > TAG_LENGTH:
        raise InvalidArgumentError(f"Tag text exceeds {TAG_LENGTH} bytes: {text!r}")
    return raw.ljust(TAG_LENGTH, b"\x00")


def normalize_tag(value: TagLike) -> bytes:
    """Coerce a tag argument to 32 bytes.

    ``None`` and ``""`` map to the zero tag. A ``0x``-prefixed string of 64
    hex digits is a raw tag; any other string is text and goes through
    :func:`tag`. Bytes shorter than 32 are right-padded.
    """
    if value is None or value == "" or value == b"":
        return ZERO_TAG
    if isinstance(value, str):
        if value[:2].lower() == "0x" and len(value) == 2 + TAG_LENGTH * 2:
            try:
                return bytes.fromhex(value[2:])
            except ValueError as exc:
                raise InvalidArgumentError(f"Tag is not hex: {value!r}") from exc
        return tag(value)
    if isinstance(value, (bytes, bytearray)):
        if len(value) > TAG_LENGTH:
            raise InvalidArgumentError(f"Tag exceeds {TAG_LENGTH} bytes")
        return bytes(value).ljust(TAG_LENGTH, b"\x00")
    raise InvalidArgumentError(f"Unsupported tag type: {type(value).__name__}")


def tag_text(value: bytes) -> str:
    """Render a tag for display: decoded text when printable, hex otherwise."""
    stripped = value.rstrip(b"\x00")
    if not stripped:
        return ""
    try:
        text = stripped.decode("utf-8")
    except UnicodeDecodeError:
        return "0x" + value.hex()
    return text if text.isprintable() else "0x" + value.hex()


def tag_matches(filter_tag: bytes, entry_tag: bytes) -> bool:
    return filter_tag == ZERO_TAG or filter_tag == entry_tag


def normalize_hash(value: Union[bytes, str]) -> bytes:
    """Coerce a 32-byte hash given as bytes or ``0x`` hex."""
    if isinstance(value, str):
        body = value[2:] if value.lower().startswith("0x") else value
        try:
            value = bytes.fromhex(body)
        except ValueError as exc:
            raise InvalidArgumentError(f"Hash is not hex: {value!r}") from exc
    if not isinstance(value, (bytes, bytearray)) or len(value) != REQUEST_HASH_LENGTH:
        raise InvalidArgumentError(f"Hash must be {REQUEST_HASH_LENGTH} bytes")
    return bytes(value)


def optional_hash(value: Union[bytes, str, None]) -> bytes:
    """Like :func:`normalize_hash`, but ``None`` means the zero hash."""
    if value is None:
        return bytes(REQUEST_HASH_LENGTH)
    return normalize_hash(value)


def check_score(value: object, label: str = "Score") -> int:
    """Return *value* if it is an integer in ``0..MAX_SCORE``.

    Raises:
        InvalidArgumentError: For booleans, non-integers and out-of-range values.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{label} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= MAX_SCORE:
        raise InvalidArgumentError(f"{label} must be between 0 and {MAX_SCORE}, got {value}")
    return value
