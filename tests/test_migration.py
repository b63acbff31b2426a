from __future__ import annotations

import pytest

from vault_core import migration
from vault_core.credential import Algorithm, Credential, OTPKind
from vault_core.errors import CredentialError, MalformedPayload, MalformedURL, TruncatedPayload
from vault_core.migration import encode_varint

pytestmark = pytest.mark.unit

SECRET = b"Hello!\xde\xad\xbe\xef"


def ld(field_number: int, payload: bytes) -> bytes:
    return encode_varint((field_number << 3) | 2) + encode_varint(len(payload)) + payload


def vi(field_number: int, value: int) -> bytes:
    return encode_varint(field_number << 3) + encode_varint(value)


def test_varint_multi_byte() -> None:
    assert encode_varint(300) == b"\xac\x02"
    assert migration.read_varint(b"\xac\x02", 0) == (300, 2)
    assert migration.read_varint(b"\x00\x01", 1) == (1, 2)


def test_overlong_varint_is_malformed() -> None:
    with pytest.raises(MalformedPayload):
        migration.read_varint(bytes([0x80] * 11), 0)


def test_decode_single_totp_entry() -> None:
    entry = ld(1, SECRET) + ld(2, b"alice@example.com") + ld(3, b"GitHub") + vi(4, 1) + vi(5, 1) + vi(6, 2)
    credentials = migration.decode_payload(ld(1, entry) + vi(2, 1))

    assert credentials == [
        Credential(
            name="GitHub",
            account="alice@example.com",
            secret=SECRET,
            kind=OTPKind.TOTP,
            digits=6,
            period=30,
            algorithm=Algorithm.SHA1,
        )
    ]


def test_issuer_precedence_does_not_depend_on_field_order() -> None:
    issuer_first = ld(3, b"GitHub") + ld(1, SECRET) + ld(2, b"alice")
    name_first = ld(2, b"alice") + ld(1, SECRET) + ld(3, b"GitHub")

    for entry in (issuer_first, name_first):
        credential = migration.decode_otp_parameters(entry)
        assert credential.name == "GitHub"
        assert credential.account == "alice"


def test_name_without_issuer_stays_name() -> None:
    credential = migration.decode_otp_parameters(ld(1, SECRET) + ld(2, b"alice"))
    assert credential.name == "alice"
    assert credential.account == ""


def test_nameless_entry_is_unknown() -> None:
    assert migration.decode_otp_parameters(ld(1, SECRET)).name == "Unknown"


def test_entry_without_secret_is_dropped_alone() -> None:
    good = ld(1, SECRET) + ld(2, b"keep")
    bad = ld(2, b"no secret here") + vi(6, 2)
    credentials = migration.decode_payload(ld(1, bad) + ld(1, good))

    assert [c.name for c in credentials] == ["keep"]


def test_unknown_fields_are_skipped() -> None:
    fixed32 = encode_varint((11 << 3) | 5) + b"\x01\x02\x03\x04"
    fixed64 = encode_varint((12 << 3) | 1) + bytes(8)
    entry = ld(9, b"xyz") + ld(1, SECRET) + vi(10, 7) + fixed32 + ld(2, b"alice") + fixed64
    credentials = migration.decode_payload(ld(1, entry) + ld(15, b"trailer") + vi(16, 3))

    assert len(credentials) == 1
    assert credentials[0].secret == SECRET
    assert credentials[0].name == "alice"


def test_unknown_fields_between_entries_are_skipped() -> None:
    first = ld(1, SECRET) + ld(2, b"first")
    second = ld(1, b"\x01\x02\x03\x04\x05") + ld(2, b"second")
    payload = ld(1, first) + vi(16, 3) + ld(15, b"x") + ld(1, second)

    credentials = migration.decode_payload(payload)
    assert [c.name for c in credentials] == ["first", "second"]
    assert credentials[1].secret == b"\x01\x02\x03\x04\x05"


def test_hotp_entry_with_counter() -> None:
    entry = ld(1, SECRET) + ld(2, b"bank") + vi(4, 3) + vi(5, 2) + vi(6, 1) + vi(7, 9)
    credential = migration.decode_otp_parameters(entry)

    assert credential.kind is OTPKind.HOTP
    assert credential.counter == 9
    assert credential.digits == 8
    assert credential.algorithm is Algorithm.SHA512


def test_unsupported_codes_fall_back() -> None:
    entry = ld(1, SECRET) + ld(2, b"legacy") + vi(4, 4) + vi(5, 3) + vi(6, 0)
    credential = migration.decode_otp_parameters(entry)

    assert credential.algorithm is Algorithm.SHA1
    assert credential.digits == 6
    assert credential.kind is OTPKind.TOTP


@pytest.mark.parametrize(
    "payload",
    [
        bytes([0x0A, 0x50]) + b"abc",
        bytes([0x08, 0x80]),
        bytes([0x0A]),
    ],
)
def test_truncated_payload(payload: bytes) -> None:
    with pytest.raises(TruncatedPayload):
        migration.decode_payload(payload)


def test_sliced_payload_is_truncated() -> None:
    entry = ld(1, SECRET) + ld(2, b"alice")
    payload = ld(1, entry)
    with pytest.raises(TruncatedPayload):
        migration.decode_payload(payload[:-3])


def test_unsupported_wire_type_is_malformed() -> None:
    with pytest.raises(MalformedPayload):
        migration.decode_payload(bytes([0x0B]))


def test_truncated_payload_reports_offset() -> None:
    with pytest.raises(TruncatedPayload) as exc_info:
        migration.decode_payload(bytes([0x0A, 0x50]) + b"abc")
    assert exc_info.value.offset == 2


def test_encode_decode_round_trip() -> None:
    credentials = [
        Credential(name="GitHub", account="alice", secret=SECRET),
        Credential(
            name="Bank",
            secret=bytes(range(20)),
            kind=OTPKind.HOTP,
            counter=5,
            digits=8,
            algorithm=Algorithm.SHA256,
        ),
    ]
    assert migration.decode_payload(migration.encode_payload(credentials)) == credentials


def test_decode_batch_metadata() -> None:
    payload = migration.encode_payload([Credential(name="x", secret=SECRET)], batch_id=42)
    batch = migration.decode_batch(payload)

    assert batch.version == 1
    assert batch.batch_size == 1
    assert batch.batch_index == 0
    assert batch.batch_id == 42
    assert len(batch.credentials) == 1


def test_encoding_rejects_unrepresentable_digits() -> None:
    with pytest.raises(CredentialError):
        migration.encode_payload([Credential(name="x", secret=SECRET, digits=7)])


def test_uri_round_trip() -> None:
    credentials = [Credential(name="GitHub", account="alice", secret=SECRET)]
    uri = migration.build_migration_uri(credentials)

    assert uri.startswith("otpauth-migration://offline?data=")
    assert migration.is_migration_uri(uri)
    assert migration.parse_migration_uri(uri) == credentials


@pytest.mark.parametrize(
    "uri",
    [
        "otpauth-migration://offline?data=+/8=",
        "otpauth-migration://offline?data=%2B%2F8%3D",
        "otpauth-migration://offline?data=+/8",
    ],
)
def test_extract_payload_keeps_plus(uri: str) -> None:
    assert migration.extract_payload(uri) == b"\xfb\xff"


@pytest.mark.parametrize(
    "uri",
    [
        "otpauth-migration://offline",
        "otpauth-migration://offline?data=",
        "otpauth://offline?data=AAAA",
        "OTPAUTH-MIGRATION://offline?data=AAAA",
        "otpauth-migration://offline?data=!!!!",
    ],
)
def test_extract_payload_rejects_bad_uris(uri: str) -> None:
    with pytest.raises(MalformedURL):
        migration.extract_payload(uri)
