"""Base64 transport encoding and content hashing helpers."""

import base64
import binascii
import hashlib
import re

from skill_translator.core.exceptions import InvalidInputError

CONTENT_HASH_PATTERN = re.compile(r"^sha256:[0-9a-f]{64}$")


def compute_content_hash(data: bytes) -> str:
    """Algorithm-stamped SHA-256 of raw bytes, e.g. ``sha256:<hex>``."""
    return "sha256:" + hashlib.sha256(data).hexdigest()


def decode_content(value: str) -> bytes:
    """
    Decode base64 request content.

    Raises:
        InvalidInputError: If the value is not valid base64
    """
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Invalid base64 content: {e}") from e


def encode_content(text: str) -> str:
    """Encode a document as base64 of its UTF-8 bytes."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def validate_content_hash(content_hash: str, data: bytes) -> str:
    """
    Check a client-supplied content hash against the bytes it describes.

    Raises:
        InvalidInputError: If the hash is malformed or does not match
    """
    if not CONTENT_HASH_PATTERN.match(content_hash):
        raise InvalidInputError(
            f"Invalid content_hash format: expected 'sha256:<64 hex chars>', got {content_hash!r}"
        )
    actual = compute_content_hash(data)
    if actual != content_hash:
        raise InvalidInputError(f"content_hash mismatch: content hashes to {actual}")
    return content_hash
