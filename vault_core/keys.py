"""
keys.py — Helper tools around secret keys and time steps.

- generate_secret: random Base32 secret for a new credential
- check_secret: validate a typed/pasted secret and describe it
- step_info: where a timestamp falls inside its TOTP step
"""

from dataclasses import dataclass

import pyotp

from . import base32
from .credential import DEFAULT_PERIOD
from .errors import InvalidCharacter
from .otp_core import progress, remaining_seconds, time_counter

MIN_SECRET_LENGTH = 32  # 160 bits
RECOMMENDED_BITS = 128


@dataclass(frozen=True)
class SecretCheck:
    valid: bool
    normalized: str
    byte_length: int = 0
    message: str = ""

    @property
    def bit_length(self) -> int:
        return self.byte_length * 8


@dataclass(frozen=True)
class StepInfo:
    timestamp: int
    period: int
    counter: int
    remaining: int
    progress: float

    @property
    def counter_hex(self) -> str:
        return f"{self.counter:016X}"


def generate_secret(length: int = MIN_SECRET_LENGTH) -> str:
    """Random Base32 secret; raises ValueError below 160 bits."""
    return pyotp.random_base32(length=length)


def check_secret(text: str) -> SecretCheck:
    """
    Normalise a secret (spaces, dashes, case) and report whether it is usable.

    A secret is valid when every character is Base32 and it decodes to at
    least one byte. Keys shorter than 128 bits are flagged in the message
    but still reported valid.
    """
    normalized = base32.normalize_secret(text)
    if not normalized:
        return SecretCheck(valid=False, normalized="", message="secret is empty")
    try:
        key = base32.decode(normalized)
    except InvalidCharacter as e:
        return SecretCheck(valid=False, normalized=normalized, message=str(e))
    if not key:
        return SecretCheck(valid=False, normalized=normalized, message="secret decodes to no key bytes")

    message = "ok"
    if len(key) * 8 < RECOMMENDED_BITS:
        message = f"key is only {len(key) * 8} bits, {RECOMMENDED_BITS} or more is recommended"
    return SecretCheck(valid=True, normalized=normalized.rstrip("="), byte_length=len(key), message=message)


def step_info(now: float, period: int = DEFAULT_PERIOD) -> StepInfo:
    return StepInfo(
        timestamp=int(now),
        period=period,
        counter=time_counter(now, period),
        remaining=remaining_seconds(period, now),
        progress=progress(period, now),
    )
