"""
otpauth.py — otpauth:// URI codec for single credentials.

URI shape (Key Uri Format):

    otpauth://totp/GitHub:alice%40example.com?secret=JBSWY3DPEHPK3PXP
        &issuer=GitHub&algorithm=SHA1&digits=6&period=30

- host: totp or hotp
- label: issuer-ish name, optionally followed by ':' and the account
- query: secret (Base32), issuer, algorithm, digits, then period (TOTP)
  or counter (HOTP)
"""

from typing import Dict, List, Optional
from urllib.parse import parse_qs, quote, unquote, urlencode, urlparse

from . import base32
from .credential import (
    DEFAULT_COUNTER,
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    UNKNOWN_NAME,
    Algorithm,
    Credential,
    OTPKind,
)
from .errors import MalformedURL

SCHEME = "otpauth"
_HOSTS = {kind.uri_host: kind for kind in OTPKind}


def serialize(credential: Credential) -> str:
    """
    Build the otpauth:// URI for a credential.

    Query parameters are always emitted in the same order: secret, issuer,
    algorithm, digits, then period (TOTP) or counter (HOTP).
    """
    label = quote(credential.name, safe="")
    if credential.account:
        label += ":" + quote(credential.account, safe="")

    params = [
        ("secret", credential.secret_b32),
        ("issuer", credential.name),
        ("algorithm", credential.algorithm.value),
        ("digits", str(credential.digits)),
    ]
    if credential.kind is OTPKind.HOTP:
        params.append(("counter", str(credential.counter)))
    else:
        params.append(("period", str(credential.period)))

    query = urlencode(params, quote_via=quote)
    return f"{SCHEME}://{credential.kind.uri_host}/{label}?{query}"


def parse(uri: str) -> Credential:
    """
    Parse an otpauth:// URI into a Credential.

    Raises:
        MalformedURL: scheme is not otpauth, host is not totp/hotp, or
            the secret parameter is missing/empty
        InvalidCharacter: the secret is not Base32
    """
    text = uri.strip()
    # urlparse lowercases the scheme; the prefix must match exactly
    if not text.startswith(SCHEME + "://"):
        raise MalformedURL(f"Not an otpauth URI: {text[:16]!r}")
    parsed = urlparse(text)
    kind = _HOSTS.get(parsed.netloc)
    if kind is None:
        raise MalformedURL(f"Unsupported OTP type {parsed.netloc!r}, expected totp or hotp")

    query = parse_qs(parsed.query, keep_blank_values=True)
    secret = _first(query, "secret")
    if not secret:
        raise MalformedURL("otpauth URI has no secret parameter")

    label = unquote(parsed.path[1:] if parsed.path.startswith("/") else parsed.path)
    if ":" in label:
        label_name, account = label.split(":", 1)
    else:
        label_name, account = label, ""

    name = _first(query, "issuer") or label_name or UNKNOWN_NAME
    kind_fields = {
        "period": _int_param(query, "period", DEFAULT_PERIOD, minimum=1),
        "counter": _int_param(query, "counter", DEFAULT_COUNTER, minimum=0),
    }

    return Credential(
        name=name,
        account=account,
        secret=base32.decode(secret),
        kind=kind,
        digits=_int_param(query, "digits", DEFAULT_DIGITS, minimum=1),
        algorithm=Algorithm.from_label(_first(query, "algorithm")),
        **kind_fields,
    )


def is_otpauth_uri(text: str) -> bool:
    stripped = text.strip()
    return any(stripped.startswith(f"{SCHEME}://{host}/") for host in _HOSTS)


def _first(query: Dict[str, List[str]], key: str) -> Optional[str]:
    values = query.get(key)
    if not values:
        return None
    return values[0]


def _int_param(query: Dict[str, List[str]], key: str, default: int, minimum: int) -> int:
    raw = _first(query, key)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value >= minimum else default
