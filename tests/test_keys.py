from __future__ import annotations

import pytest

from vault_core import base32, keys

pytestmark = pytest.mark.unit


def test_generate_secret_is_base32() -> None:
    secret = keys.generate_secret()
    assert len(secret) == keys.MIN_SECRET_LENGTH
    assert len(base32.decode(secret)) == 20


def test_generate_secret_is_random() -> None:
    assert keys.generate_secret() != keys.generate_secret()


def test_generate_secret_rejects_short_keys() -> None:
    with pytest.raises(ValueError):
        keys.generate_secret(16)


def test_check_secret_normalizes_and_warns_on_short_keys() -> None:
    report = keys.check_secret("jbsw y3dp-ehpk 3pxp")

    assert report.valid is True
    assert report.normalized == "JBSWY3DPEHPK3PXP"
    assert report.byte_length == 10
    assert report.bit_length == 80
    assert "recommended" in report.message


def test_check_secret_accepts_long_keys() -> None:
    report = keys.check_secret("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ======")

    assert report.valid is True
    assert report.normalized == "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
    assert report.bit_length == 160
    assert report.message == "ok"


@pytest.mark.parametrize("text", ["", "   ", "abc!", "===="])
def test_check_secret_invalid(text: str) -> None:
    report = keys.check_secret(text)
    assert report.valid is False
    assert report.message


def test_step_info() -> None:
    info = keys.step_info(59)

    assert info.timestamp == 59
    assert info.period == 30
    assert info.counter == 1
    assert info.remaining == 1
    assert info.counter_hex == "0000000000000001"


def test_step_info_large_timestamp() -> None:
    info = keys.step_info(1111111109.5, period=30)

    assert info.timestamp == 1111111109
    assert info.counter == 0x23523EC
    assert info.counter_hex == "00000000023523EC"
