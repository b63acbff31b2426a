"""
vault_core package
==================

Credential interchange engine of the otp-vault two-factor manager:
HOTP/TOTP derivation (RFC 4226 & RFC 6238), the Base32 codec, the
otpauth:// URI format and the otpauth-migration:// batch payload.

──────────────────────────────────────────────
Core algorithms
──────────────────────────────────────────────
- HOTP: code = Truncate(HMAC-<alg>(key=secret, msg=counter)) mod 10^digits
- TOTP: HOTP with counter = floor(now / period), now from an injected clock
- Dynamic truncation: 4 bytes at offset (last byte & 0x0F), top bit cleared

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from vault_core import otpauth, hotp
>>> cred = otpauth.parse("otpauth://hotp/RFC4226?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ")
>>> hotp(cred.secret, 0)
'755224'
"""

from . import base32, interchange, keys, migration, otpauth
from .credential import Algorithm, Credential, OTPKind, OTPOptions
from .errors import (
    CredentialError,
    DerivationError,
    InvalidCharacter,
    MalformedPadding,
    MalformedPayload,
    MalformedURL,
    TruncatedPayload,
)
from .otp_core import (
    FixedClock,
    generate,
    generate_for,
    hotp,
    progress,
    remaining_seconds,
    totp,
)

__all__ = [
    "Algorithm",
    "Credential",
    "CredentialError",
    "DerivationError",
    "FixedClock",
    "InvalidCharacter",
    "MalformedPadding",
    "MalformedPayload",
    "MalformedURL",
    "OTPKind",
    "OTPOptions",
    "TruncatedPayload",
    "base32",
    "generate",
    "generate_for",
    "hotp",
    "interchange",
    "keys",
    "migration",
    "otpauth",
    "progress",
    "remaining_seconds",
    "totp",
]
