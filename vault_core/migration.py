"""
migration.py — Authenticator migration payload codec.

Bulk exports from authenticator apps arrive as

    otpauth-migration://offline?data=<percent-encoded base64>

where the base64 decodes to a small protobuf-style message:

    top level          field 1 (bytes)  : one credential sub-message, repeated
                       field 2 (varint) : version
                       field 3 (varint) : batch size
                       field 4 (varint) : batch index
                       field 5 (varint) : batch id
    credential         1 secret (bytes)   2 name (str)    3 issuer (str)
                       4 algorithm        5 digits        6 type
                       7 counter

Tags and lengths are varints (7 bits per byte, little-endian groups,
high bit = more bytes follow). Unknown fields are skipped. A buffer whose
framing runs past its end fails the whole decode with TruncatedPayload;
a credential without a secret is dropped on its own.
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple
from urllib.parse import quote, unquote, urlparse

from .credential import (
    DEFAULT_COUNTER,
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    UNKNOWN_NAME,
    Algorithm,
    Credential,
    OTPKind,
)
from .errors import CredentialError, MalformedPayload, MalformedURL, TruncatedPayload

SCHEME = "otpauth-migration"

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_BYTES = 2
WIRE_FIXED32 = 5

_MAX_VARINT_BYTES = 10
_FIXED_WIDTHS = {WIRE_FIXED64: 8, WIRE_FIXED32: 4}

# Top-level field numbers
FIELD_OTP_PARAMETERS = 1
FIELD_VERSION = 2
FIELD_BATCH_SIZE = 3
FIELD_BATCH_INDEX = 4
FIELD_BATCH_ID = 5

# Credential sub-message field numbers
FIELD_SECRET = 1
FIELD_NAME = 2
FIELD_ISSUER = 3
FIELD_ALGORITHM = 4
FIELD_DIGITS = 5
FIELD_TYPE = 6
FIELD_COUNTER = 7

# Code 4 is MD5 upstream; it is read as SHA1 like any unsupported hash.
ALGORITHM_CODES = {
    0: Algorithm.SHA1,
    1: Algorithm.SHA1,
    2: Algorithm.SHA256,
    3: Algorithm.SHA512,
    4: Algorithm.SHA1,
}
ALGORITHM_TO_CODE = {
    Algorithm.SHA1: 1,
    Algorithm.SHA256: 2,
    Algorithm.SHA512: 3,
}
DIGITS_EIGHT_CODE = 2
DIGITS_TO_CODE = {6: 1, 8: DIGITS_EIGHT_CODE}
TYPE_HOTP_CODE = 1
KIND_TO_CODE = {OTPKind.HOTP: TYPE_HOTP_CODE, OTPKind.TOTP: 2}


@dataclass(frozen=True)
class MigrationBatch:
    """Decoded payload: credentials plus the batch bookkeeping fields."""

    credentials: List[Credential] = field(default_factory=list)
    version: int = 0
    batch_size: int = 0
    batch_index: int = 0
    batch_id: int = 0


# --- Wire primitives -------------------------------------------------------
def read_varint(buf: bytes, pos: int) -> Tuple[int, int]:
    """
    Read one varint starting at pos.

    Returns:
        (value, new_pos)

    Raises:
        TruncatedPayload: the buffer ends before the last varint byte
        MalformedPayload: more than 10 bytes of continuation
    """
    value = 0
    shift = 0
    start = pos
    while True:
        if pos >= len(buf):
            raise TruncatedPayload("varint runs past end of payload", start)
        if pos - start >= _MAX_VARINT_BYTES:
            raise MalformedPayload(f"varint longer than {_MAX_VARINT_BYTES} bytes at offset {start}")
        byte = buf[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7


def read_length_delimited(buf: bytes, pos: int) -> Tuple[bytes, int]:
    length, pos = read_varint(buf, pos)
    end = pos + length
    if end > len(buf):
        raise TruncatedPayload(
            f"field declares {length} bytes but only {len(buf) - pos} remain", pos
        )
    return bytes(buf[pos:end]), end


def skip_field(buf: bytes, pos: int, wire_type: int) -> int:
    """Consume a field of the given wire type without interpreting it."""
    if wire_type == WIRE_VARINT:
        _, pos = read_varint(buf, pos)
        return pos
    if wire_type == WIRE_BYTES:
        _, pos = read_length_delimited(buf, pos)
        return pos
    width = _FIXED_WIDTHS.get(wire_type)
    if width is None:
        raise MalformedPayload(f"unsupported wire type {wire_type} at offset {pos}")
    if pos + width > len(buf):
        raise TruncatedPayload(f"fixed-width field needs {width} bytes", pos)
    return pos + width


def iter_fields(buf: bytes):
    """
    Yield (field_number, wire_type, value) for every field in buf.

    value is an int for varints, bytes for length-delimited fields and
    None for skipped fixed-width fields.
    """
    pos = 0
    while pos < len(buf):
        tag, pos = read_varint(buf, pos)
        field_number, wire_type = tag >> 3, tag & 0x07
        if wire_type == WIRE_VARINT:
            value, pos = read_varint(buf, pos)
        elif wire_type == WIRE_BYTES:
            value, pos = read_length_delimited(buf, pos)
        else:
            pos = skip_field(buf, pos, wire_type)
            value = None
        yield field_number, wire_type, value


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise CredentialError(f"cannot encode negative varint {value}")
    out = bytearray()
    while True:
        chunk = value & 0x7F
        value >>= 7
        if value:
            out.append(chunk | 0x80)
        else:
            out.append(chunk)
            return bytes(out)


def _tag(field_number: int, wire_type: int) -> bytes:
    return encode_varint((field_number << 3) | wire_type)


def _bytes_field(field_number: int, payload: bytes) -> bytes:
    return _tag(field_number, WIRE_BYTES) + encode_varint(len(payload)) + payload


def _varint_field(field_number: int, value: int) -> bytes:
    return _tag(field_number, WIRE_VARINT) + encode_varint(value)


# --- Decoding --------------------------------------------------------------
def _read_otp_parameters(data: bytes) -> Dict[int, object]:
    """First pass: collect the known fields of one sub-message, last one wins."""
    scratch: Dict[int, object] = {}
    for field_number, wire_type, value in iter_fields(data):
        if field_number in (FIELD_SECRET, FIELD_NAME, FIELD_ISSUER) and wire_type == WIRE_BYTES:
            scratch[field_number] = value
        elif field_number in (FIELD_ALGORITHM, FIELD_DIGITS, FIELD_TYPE, FIELD_COUNTER) and wire_type == WIRE_VARINT:
            scratch[field_number] = value
    return scratch


def _build_credential(scratch: Dict[int, object]) -> Credential | None:
    """Second pass: apply defaults and the issuer-over-name rule once."""
    secret = scratch.get(FIELD_SECRET, b"")
    if not secret:
        return None

    name = scratch.get(FIELD_NAME, b"").decode("utf-8", errors="replace")
    issuer = scratch.get(FIELD_ISSUER, b"").decode("utf-8", errors="replace")
    account = ""
    if issuer:
        name, account = issuer, name

    kind = OTPKind.HOTP if scratch.get(FIELD_TYPE) == TYPE_HOTP_CODE else OTPKind.TOTP
    return Credential(
        name=name or UNKNOWN_NAME,
        account=account,
        secret=secret,
        kind=kind,
        digits=8 if scratch.get(FIELD_DIGITS) == DIGITS_EIGHT_CODE else DEFAULT_DIGITS,
        period=DEFAULT_PERIOD,
        counter=scratch.get(FIELD_COUNTER, DEFAULT_COUNTER),
        algorithm=ALGORITHM_CODES.get(scratch.get(FIELD_ALGORITHM), Algorithm.SHA1),
    )


def decode_otp_parameters(data: bytes) -> Credential | None:
    """Decode one credential sub-message; None when it carries no secret."""
    return _build_credential(_read_otp_parameters(data))


def decode_batch(data: bytes) -> MigrationBatch:
    """
    Decode a raw migration payload, keeping the batch metadata.

    Raises:
        TruncatedPayload: a tag, varint or length runs past the buffer
        MalformedPayload: unsupported wire type or overlong varint
    """
    credentials: List[Credential] = []
    meta = {FIELD_VERSION: 0, FIELD_BATCH_SIZE: 0, FIELD_BATCH_INDEX: 0, FIELD_BATCH_ID: 0}
    for field_number, wire_type, value in iter_fields(data):
        if field_number == FIELD_OTP_PARAMETERS and wire_type == WIRE_BYTES:
            credential = decode_otp_parameters(value)
            if credential is not None:
                credentials.append(credential)
        elif field_number in meta and wire_type == WIRE_VARINT:
            meta[field_number] = value
    return MigrationBatch(
        credentials=credentials,
        version=meta[FIELD_VERSION],
        batch_size=meta[FIELD_BATCH_SIZE],
        batch_index=meta[FIELD_BATCH_INDEX],
        batch_id=meta[FIELD_BATCH_ID],
    )


def decode_payload(data: bytes) -> List[Credential]:
    """Decode a raw migration payload into credentials."""
    return decode_batch(data).credentials


# --- Encoding --------------------------------------------------------------
def encode_otp_parameters(credential: Credential) -> bytes:
    digits_code = DIGITS_TO_CODE.get(credential.digits)
    if digits_code is None:
        raise CredentialError(
            f"{credential.digits}-digit codes cannot be represented in a migration payload"
        )
    if credential.account:
        name, issuer = credential.account, credential.name
    else:
        name, issuer = credential.name, ""

    parts = [
        _bytes_field(FIELD_SECRET, credential.secret),
        _bytes_field(FIELD_NAME, name.encode("utf-8")),
    ]
    if issuer:
        parts.append(_bytes_field(FIELD_ISSUER, issuer.encode("utf-8")))
    parts.append(_varint_field(FIELD_ALGORITHM, ALGORITHM_TO_CODE[credential.algorithm]))
    parts.append(_varint_field(FIELD_DIGITS, digits_code))
    parts.append(_varint_field(FIELD_TYPE, KIND_TO_CODE[credential.kind]))
    if credential.kind is OTPKind.HOTP:
        parts.append(_varint_field(FIELD_COUNTER, credential.counter))
    return b"".join(parts)


def encode_payload(credentials: Iterable[Credential], batch_id: int = 0) -> bytes:
    """Encode credentials as a single-batch migration payload."""
    parts = [_bytes_field(FIELD_OTP_PARAMETERS, encode_otp_parameters(c)) for c in credentials]
    parts.append(_varint_field(FIELD_VERSION, 1))
    parts.append(_varint_field(FIELD_BATCH_SIZE, 1))
    parts.append(_varint_field(FIELD_BATCH_INDEX, 0))
    parts.append(_varint_field(FIELD_BATCH_ID, batch_id))
    return b"".join(parts)


# --- URI framing -----------------------------------------------------------
def extract_payload(uri: str) -> bytes:
    """
    Pull the raw payload bytes out of an otpauth-migration:// URI.

    Raises:
        MalformedURL: wrong scheme, no data parameter, or invalid base64
    """
    text = uri.strip()
    if not text.startswith(SCHEME + "://"):
        raise MalformedURL(f"Not a migration URI: {text[:24]!r}")
    parsed = urlparse(text)

    data = None
    for pair in parsed.query.split("&"):
        key, sep, value = pair.partition("=")
        if sep and key == "data":
            data = value
            break
    if not data:
        raise MalformedURL("migration URI has no data parameter")

    # '+' belongs to the base64 alphabet; only %XX escapes are decoded.
    encoded = unquote(data).replace(" ", "+")
    encoded += "=" * (-len(encoded) % 4)
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedURL(f"migration data is not valid base64: {e}") from e


def parse_migration_uri(uri: str) -> List[Credential]:
    """Decode every credential carried by an otpauth-migration:// URI."""
    return decode_payload(extract_payload(uri))


def build_migration_uri(credentials: Iterable[Credential], batch_id: int = 0) -> str:
    payload = encode_payload(credentials, batch_id=batch_id)
    data = base64.b64encode(payload).decode("ascii")
    return f"{SCHEME}://offline?data={quote(data, safe='')}"


def is_migration_uri(text: str) -> bool:
    return text.strip().startswith(f"{SCHEME}://")
