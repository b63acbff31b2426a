"""
base32.py — RFC 4648 Base32 codec for secret keys.

Secrets travel as Base32 text everywhere (otpauth URIs, exports, forms)
but are handled as raw bytes inside the engine. Encoding relies on the
standard library; decoding unpacks the bits by hand so that unpadded
input and odd lengths are accepted the way authenticator apps emit them.
"""

import base64
import re

from .errors import InvalidCharacter, MalformedPadding

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_VALUES = {char: index for index, char in enumerate(ALPHABET)}
_VALID_PAD_COUNTS = (0, 1, 3, 4, 6)
_SEPARATORS = re.compile(r"[\s-]+")


def encode(data: bytes, padding: bool = True) -> str:
    """
    Encode bytes to uppercase Base32.

    Arguments:
        data: raw bytes (may be empty)
        padding: pad with '=' to a multiple of 8 characters (default True)

    Returns:
        str: Base32 text, "" for empty input
    """
    text = base64.b32encode(bytes(data)).decode("ascii")
    return text if padding else text.rstrip("=")


def decode(text: str, strict: bool = False) -> bytes:
    """
    Decode Base32 text to bytes.

    - Case-insensitive; padded and unpadded input are both accepted.
    - Trailing '=' are stripped before the bits are unpacked; leftover
      bits that do not fill a whole byte are dropped.
    - strict=True also checks that the padding matches the length.

    Raises:
        InvalidCharacter: a character outside A-Z2-7=, or '=' before data
        MalformedPadding: strict mode only, padding inconsistent
    """
    upper = text.upper()
    body = upper.rstrip("=")
    for position, char in enumerate(body):
        if char not in _VALUES:
            raise InvalidCharacter(char, position)

    if strict:
        pad_count = len(upper) - len(body)
        if len(upper) % 8 != 0 or pad_count not in _VALID_PAD_COUNTS:
            raise MalformedPadding(
                f"Base32 text of length {len(upper)} has {pad_count} padding characters"
            )

    out = bytearray()
    buffer = 0
    bits = 0
    for char in body:
        buffer = (buffer << 5) | _VALUES[char]
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
    return bytes(out)


def normalize_secret(text: str) -> str:
    """Strip spaces and dashes from a typed secret and uppercase it."""
    return _SEPARATORS.sub("", text).upper()


def is_valid(text: str) -> bool:
    try:
        return len(decode(text)) > 0
    except InvalidCharacter:
        return False
