from __future__ import annotations

import pytest

from vault_core import otp_core
from vault_core.credential import Algorithm, Credential, OTPKind, OTPOptions
from vault_core.errors import DerivationError
from vault_core.otp_core import FixedClock, generate, generate_for, hotp, progress, remaining_seconds, totp

pytestmark = pytest.mark.unit

RFC_KEY = b"12345678901234567890"
RFC_KEY_SHA256 = b"12345678901234567890123456789012"
RFC_KEY_SHA512 = b"1234567890123456789012345678901234567890123456789012345678901234"


def _never_called() -> float:
    raise AssertionError("clock must not be read for HOTP")


@pytest.mark.parametrize(
    ("counter", "expected"),
    [
        (0, "755224"),
        (1, "287082"),
        (2, "359152"),
        (3, "969429"),
        (4, "338314"),
        (5, "254676"),
        (6, "287922"),
        (7, "162583"),
        (8, "399871"),
        (9, "520489"),
    ],
)
def test_hotp_rfc4226_vectors(counter: int, expected: str) -> None:
    assert hotp(RFC_KEY, counter) == expected


def test_generate_hotp_uses_counter_not_clock() -> None:
    options = OTPOptions(kind=OTPKind.HOTP, counter=9)
    assert generate(RFC_KEY, options, _never_called) == "520489"


def test_totp_with_fixed_clock() -> None:
    options = OTPOptions(kind=OTPKind.TOTP, digits=8, period=30, algorithm=Algorithm.SHA1)
    assert generate(RFC_KEY, options, FixedClock(59)) == "94287082"


@pytest.mark.parametrize(
    ("timestamp", "key", "algorithm", "expected"),
    [
        (59, RFC_KEY_SHA256, Algorithm.SHA256, "46119246"),
        (59, RFC_KEY_SHA512, Algorithm.SHA512, "90693936"),
        (1111111109, RFC_KEY, Algorithm.SHA1, "07081804"),
        (1111111109, RFC_KEY_SHA256, Algorithm.SHA256, "68084774"),
        (1234567890, RFC_KEY, Algorithm.SHA1, "89005924"),
        (1234567890, RFC_KEY_SHA512, Algorithm.SHA512, "93441116"),
        (2000000000, RFC_KEY, Algorithm.SHA1, "69279037"),
        (20000000000, RFC_KEY, Algorithm.SHA1, "65353130"),
    ],
)
def test_totp_rfc6238_vectors(timestamp: int, key: bytes, algorithm: Algorithm, expected: str) -> None:
    code, remaining = totp(key, timestamp, period=30, digits=8, algorithm=algorithm)
    assert code == expected
    assert 1 <= remaining <= 30


def test_short_codes_keep_leading_zeros() -> None:
    code, _ = totp(RFC_KEY, 1111111109, digits=6)
    assert code == "081804"
    assert len(code) == 6


def test_small_truncated_value_is_zero_padded(monkeypatch) -> None:
    digest = bytes([0, 0, 0, 42]) + bytes(15) + bytes([0])

    class FakeMac:
        def digest(self) -> bytes:
            return digest

    monkeypatch.setattr(otp_core.hmac, "new", lambda key, msg, alg: FakeMac())
    assert hotp(b"any key", 0, digits=6) == "000042"


def test_dynamic_truncate_masks_top_bit() -> None:
    digest = bytes([0xFF, 0xFF, 0xFF, 0xFF]) + bytes(16)
    assert otp_core.dynamic_truncate(digest) == 0x7FFFFFFF


def test_int_to_bytes_is_big_endian() -> None:
    assert otp_core.int_to_bytes(1) == b"\x00\x00\x00\x00\x00\x00\x00\x01"
    assert otp_core.int_to_bytes(2**64 - 1) == b"\xff" * 8


def test_generate_for_credential() -> None:
    credential = Credential(name="RFC", secret=RFC_KEY, digits=8)
    assert generate_for(credential, FixedClock(59)) == "94287082"


@pytest.mark.parametrize(
    ("secret", "options"),
    [
        (b"", OTPOptions()),
        (RFC_KEY, OTPOptions(algorithm="SHA1")),
        (RFC_KEY, OTPOptions(digits=0)),
        (RFC_KEY, OTPOptions(digits=11)),
        (RFC_KEY, OTPOptions(period=0)),
        (RFC_KEY, OTPOptions(kind=OTPKind.HOTP, counter=-1)),
        (RFC_KEY, OTPOptions(kind=OTPKind.HOTP, counter=2**64)),
    ],
)
def test_generate_signals_failures(secret: bytes, options: OTPOptions) -> None:
    with pytest.raises(DerivationError):
        generate(secret, options, FixedClock(59))


def test_ten_digits_is_not_clamped() -> None:
    code = hotp(RFC_KEY, 0, digits=10)
    assert len(code) == 10
    assert code[0] in "012"


def test_remaining_seconds() -> None:
    assert remaining_seconds(30, 59) == 1
    assert remaining_seconds(30, 60) == 30
    assert remaining_seconds(30, 0) == 30
    assert remaining_seconds(60, 61.9) == 59


def test_progress() -> None:
    assert progress(30, 45) == 0.5
    assert progress(30, 30) == 1.0


def test_remaining_seconds_rejects_bad_period() -> None:
    with pytest.raises(DerivationError):
        remaining_seconds(0, 10)
