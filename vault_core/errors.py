"""
errors.py — Error types raised by the credential codecs and the OTP engine.

Every error derives from CredentialError, itself a ValueError, so callers
that only care about "bad input" can catch ValueError the same way the
older helpers did.
"""


class CredentialError(ValueError):
    """Base class for all credential interchange failures."""


class InvalidCharacter(CredentialError):
    """Base32 input contained a character outside A-Z, 2-7 and '='."""

    def __init__(self, char: str, position: int) -> None:
        self.char = char
        self.position = position
        super().__init__(f"Invalid Base32 character {char!r} at position {position}")


class MalformedPadding(CredentialError):
    """Base32 padding is inconsistent with the input length (strict mode)."""


class DerivationError(CredentialError):
    """An OTP could not be derived from the given key and options."""


class MalformedURL(CredentialError):
    """An otpauth:// or otpauth-migration:// URI could not be used."""


class MalformedPayload(CredentialError):
    """A migration payload is structurally invalid."""


class TruncatedPayload(MalformedPayload):
    """A migration payload ended in the middle of a field."""

    def __init__(self, message: str, offset: int) -> None:
        self.offset = offset
        super().__init__(f"{message} (offset {offset})")
