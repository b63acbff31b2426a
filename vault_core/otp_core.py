#!/usr/bin/env python3
"""
otp_core.py — HOTP / TOTP derivation (RFC 4226 / RFC 6238).

Goals:
- Pure functions only: no file I/O, no logging, no global clock reads.
- The current time always comes from a clock callable passed by the
  caller, so codes are deterministic under test and concurrent callers
  share no state.
- Failures raise DerivationError instead of returning a placeholder code;
  rendering "------" is the caller's decision.

Digits note:
    The truncated value is a 31-bit integer (at most 2147483647), so for
    digits=10 the leading digit is always 0, 1 or 2. The value is never
    clamped; digits above 10 are rejected.
"""

import hmac
import math
import struct
import time
from typing import Callable, Tuple

from .credential import (
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    Algorithm,
    Credential,
    OTPKind,
    OTPOptions,
)
from .errors import DerivationError

Clock = Callable[[], float]

# --- Config / constants ----------------------------------------------------
MIN_DIGITS = 1
MAX_DIGITS = 10
MAX_COUNTER = 2**64 - 1


class FixedClock:
    """Clock frozen at a given Unix timestamp (tests, CLI --at)."""

    def __init__(self, timestamp: float) -> None:
        self.timestamp = timestamp

    def __call__(self) -> float:
        return self.timestamp


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Convert a counter to the 8-byte big-endian message RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    if not 0 <= i <= MAX_COUNTER:
        raise DerivationError(f"counter {i} does not fit in 64 unsigned bits")
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Apply RFC 4226 dynamic truncation.

    - offset = low nibble of the last digest byte
    - 4 bytes from offset, top bit of the first one cleared
    - returned as a 31-bit unsigned integer
    """
    offset = hmac_digest[-1] & 0x0F
    return (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )


def time_counter(timestamp: float, period: int = DEFAULT_PERIOD) -> int:
    """TOTP counter: floor(timestamp / period)."""
    if period <= 0:
        raise DerivationError(f"period must be positive, got {period}")
    return math.floor(timestamp) // period


def _check_options(secret: bytes, options: OTPOptions) -> None:
    if not secret:
        raise DerivationError("secret key is empty")
    if not isinstance(options.algorithm, Algorithm):
        raise DerivationError(f"unsupported algorithm: {options.algorithm!r}")
    if not MIN_DIGITS <= options.digits <= MAX_DIGITS:
        raise DerivationError(
            f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}, got {options.digits}"
        )


def _derive(secret: bytes, counter: int, digits: int, algorithm: Algorithm) -> str:
    msg = int_to_bytes(counter)
    try:
        digest = hmac.new(bytes(secret), msg, algorithm.digest_factory()).digest()
    except (TypeError, ValueError) as e:
        raise DerivationError(f"HMAC-{algorithm.value} failed: {e}") from e
    dbc = dynamic_truncate(digest)
    return str(dbc % (10**digits)).zfill(digits)


# --- Public API ------------------------------------------------------------
def generate(secret: bytes, options: OTPOptions, clock: Clock = time.time) -> str:
    """
    Derive the current OTP for a raw key.

    Arguments:
        secret: raw key bytes (already Base32-decoded)
        options: kind, digits, period, algorithm, counter
        clock: zero-argument callable returning Unix seconds; only read
            for TOTP

    Returns:
        str: decimal code, left-zero-padded to options.digits

    Raises:
        DerivationError: empty key, unsupported algorithm, digits out of
            range, period <= 0, counter out of 64-bit range, HMAC failure
    """
    _check_options(secret, options)
    if options.kind is OTPKind.HOTP:
        counter = options.counter
    elif options.kind is OTPKind.TOTP:
        counter = time_counter(clock(), options.period)
    else:
        raise DerivationError(f"unsupported OTP kind: {options.kind!r}")
    return _derive(secret, counter, options.digits, options.algorithm)


def generate_for(credential: Credential, clock: Clock = time.time) -> str:
    """Derive the current OTP for a stored credential."""
    return generate(credential.secret, credential.options(), clock)


def hotp(
    secret: bytes,
    counter: int,
    digits: int = DEFAULT_DIGITS,
    algorithm: Algorithm = Algorithm.SHA1,
) -> str:
    """
    HOTP code for an explicit counter.

    Example (RFC 4226 appendix D key b"12345678901234567890"):
        hotp(key, 0) -> "755224"
    """
    options = OTPOptions(kind=OTPKind.HOTP, digits=digits, algorithm=algorithm, counter=counter)
    return generate(secret, options)


def totp(
    secret: bytes,
    timestamp: float,
    period: int = DEFAULT_PERIOD,
    digits: int = DEFAULT_DIGITS,
    algorithm: Algorithm = Algorithm.SHA1,
) -> Tuple[str, int]:
    """
    TOTP code at a given timestamp.

    Returns:
        (code, remaining_seconds)
    """
    options = OTPOptions(kind=OTPKind.TOTP, digits=digits, period=period, algorithm=algorithm)
    code = generate(secret, options, FixedClock(timestamp))
    return code, remaining_seconds(period, timestamp)


def remaining_seconds(period: int, now: float) -> int:
    """
    Seconds left before the current TOTP step ends: period - (now mod period).

    Always in 1..period; used by callers to schedule a refresh.
    """
    if period <= 0:
        raise DerivationError(f"period must be positive, got {period}")
    return period - (math.floor(now) % period)


def progress(period: int, now: float) -> float:
    """Fraction of the current step still remaining (1.0 right after a rollover)."""
    return remaining_seconds(period, now) / period
