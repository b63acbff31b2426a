from __future__ import annotations

import os

import pytest

from vault_core import base32
from vault_core.errors import InvalidCharacter, MalformedPadding

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("raw", "encoded"),
    [
        (b"", ""),
        (b"f", "MY======"),
        (b"fo", "MZXQ===="),
        (b"foo", "MZXW6==="),
        (b"foob", "MZXW6YQ="),
        (b"fooba", "MZXW6YTB"),
        (b"foobar", "MZXW6YTBOI======"),
    ],
)
def test_encode_matches_rfc4648_vectors(raw: bytes, encoded: str) -> None:
    assert base32.encode(raw) == encoded
    assert base32.decode(encoded) == raw


def test_round_trip_for_lengths_up_to_64() -> None:
    for length in range(65):
        data = os.urandom(length)
        assert base32.decode(base32.encode(data)) == data


def test_decode_accepts_unpadded_and_lowercase() -> None:
    assert base32.decode("JBSWY3DPEHPK3PXP") == b"Hello!\xde\xad\xbe\xef"
    assert base32.decode("jbswy3dpehpk3pxp") == b"Hello!\xde\xad\xbe\xef"
    assert base32.decode("MZXW6") == b"foo"


def test_encode_without_padding() -> None:
    assert base32.encode(b"foo", padding=False) == "MZXW6"


def test_decode_rejects_garbage() -> None:
    with pytest.raises(InvalidCharacter) as exc_info:
        base32.decode("1238!!")
    assert exc_info.value.char == "1"
    assert exc_info.value.position == 0


def test_decode_rejects_interior_padding() -> None:
    with pytest.raises(InvalidCharacter):
        base32.decode("MY=A")


def test_strict_mode_checks_padding() -> None:
    assert base32.decode("MY======", strict=True) == b"f"
    with pytest.raises(MalformedPadding):
        base32.decode("MY", strict=True)
    with pytest.raises(MalformedPadding):
        base32.decode("MY==", strict=True)


def test_normalize_secret_strips_spaces_and_dashes() -> None:
    assert base32.normalize_secret("jbsw y3dp-ehpk\t3pxp") == "JBSWY3DPEHPK3PXP"


def test_is_valid() -> None:
    assert base32.is_valid("JBSWY3DPEHPK3PXP") is True
    assert base32.is_valid("not base32!") is False
    assert base32.is_valid("") is False
