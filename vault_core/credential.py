"""
credential.py — The in-memory credential record shared by every codec.

A Credential is what the otpauth:// parser, the migration decoder, the
importers and the store all convert to and from. It holds the secret as
raw bytes; Base32 only appears at the edges.
"""

import dataclasses
import hashlib
from dataclasses import dataclass, field
from enum import Enum

from . import base32

DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30
DEFAULT_COUNTER = 0
UNKNOWN_NAME = "Unknown"


class OTPKind(str, Enum):
    TOTP = "TOTP"
    HOTP = "HOTP"

    @property
    def uri_host(self) -> str:
        return self.value.lower()

    @classmethod
    def from_label(cls, label: object) -> "OTPKind":
        """'hotp' (any case) means HOTP, anything else (non-strings too) means TOTP."""
        if isinstance(label, str) and label.strip().upper() == cls.HOTP.value:
            return cls.HOTP
        return cls.TOTP


class Algorithm(str, Enum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def hash_name(self) -> str:
        return self.value.lower()

    def digest_factory(self):
        return getattr(hashlib, self.hash_name)

    @classmethod
    def from_label(cls, label: object, default: "Algorithm | None" = None) -> "Algorithm":
        """
        Map an external algorithm label to the enum.

        Accepts "SHA1", "sha-256", "SHA512", ... Unknown or missing labels
        fall back to `default` (SHA1 when not given), as do non-string
        values found in loosely typed JSON imports.
        """
        fallback = default if default is not None else cls.SHA1
        if not isinstance(label, str) or not label:
            return fallback
        key = label.strip().upper().replace("-", "")
        try:
            return cls(key)
        except ValueError:
            return fallback


@dataclass(frozen=True)
class OTPOptions:
    """Derivation options handed to the engine."""

    kind: OTPKind = OTPKind.TOTP
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    algorithm: Algorithm = Algorithm.SHA1
    counter: int = DEFAULT_COUNTER


@dataclass(frozen=True)
class Credential:
    """
    One OTP credential.

    Attributes:
        name: display label (the issuer, e.g. "GitHub")
        account: secondary label (e.g. "alice@example.com"), may be empty
        secret: raw key bytes
        kind: TOTP or HOTP
        digits: code length
        period: TOTP step in seconds
        counter: HOTP counter, incremented by the owner
        algorithm: HMAC hash
    """

    name: str
    secret: bytes = field(repr=False)
    account: str = ""
    kind: OTPKind = OTPKind.TOTP
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    counter: int = DEFAULT_COUNTER
    algorithm: Algorithm = Algorithm.SHA1

    @classmethod
    def from_base32(cls, name: str, secret_b32: str, **kwargs) -> "Credential":
        return cls(name=name, secret=base32.decode(secret_b32), **kwargs)

    @property
    def secret_b32(self) -> str:
        """Unpadded uppercase Base32 form of the secret."""
        return base32.encode(self.secret, padding=False)

    @property
    def label(self) -> str:
        return f"{self.name}:{self.account}" if self.account else self.name

    def options(self) -> OTPOptions:
        return OTPOptions(
            kind=self.kind,
            digits=self.digits,
            period=self.period,
            algorithm=self.algorithm,
            counter=self.counter,
        )

    def replace(self, **changes) -> "Credential":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        """JSON-friendly representation (secret as Base32)."""
        return {
            "name": self.name,
            "account": self.account,
            "secret": self.secret_b32,
            "type": self.kind.value,
            "digits": self.digits,
            "period": self.period,
            "algorithm": self.algorithm.value,
            "counter": self.counter,
        }
