"""
interchange.py — Bulk import / export of credentials as text.

Import accepts what users paste or upload:
- one otpauth:// URI per line,
- otpauth-migration:// URIs (each may carry many credentials),
- or, when no line is a URI, a JSON document (a list of objects, or an
  object holding "secrets", "services" or "db.entries").

Lines that fail to parse are reported in ImportResult.errors and skipped;
one bad line never blocks the rest of the batch.

Export writes otpauth:// lines, JSON or CSV.
"""

import csv
import io
import json
from dataclasses import dataclass, field
from typing import Iterable, List

from . import base32, migration, otpauth
from .credential import (
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    UNKNOWN_NAME,
    Algorithm,
    Credential,
    OTPKind,
)
from .errors import CredentialError

CSV_HEADER = ["name", "account", "secret", "type", "digits", "period", "algorithm"]


@dataclass
class ImportResult:
    credentials: List[Credential] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.credentials)


def parse_text(text: str) -> ImportResult:
    """Parse pasted text into credentials, collecting per-line errors."""
    result = ImportResult()
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            if migration.is_migration_uri(stripped):
                result.credentials.extend(migration.parse_migration_uri(stripped))
            elif stripped.startswith(otpauth.SCHEME + "://"):
                result.credentials.append(otpauth.parse(stripped))
        except CredentialError as e:
            result.errors.append(f"line {lineno}: {e}")

    if not result.credentials and not result.errors:
        _parse_json_into(text, result)
    return result


def _parse_json_into(text: str, result: ImportResult) -> None:
    try:
        document = json.loads(text)
    except ValueError:
        return

    if isinstance(document, list):
        items = document
    elif isinstance(document, dict):
        items = (
            document.get("secrets")
            or document.get("services")
            or (document.get("db") or {}).get("entries")
            or []
        )
    else:
        items = []

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        try:
            credential = credential_from_dict(item)
        except CredentialError as e:
            result.errors.append(f"item {index}: {e}")
            continue
        if credential is not None:
            result.credentials.append(credential)


def credential_from_dict(item: dict) -> Credential | None:
    """
    Build a Credential from a loosely shaped JSON object.

    Understands the field names of this tool's own JSON export as well as
    a few common third-party backups ("issuer", "label", "info.secret"...).
    Returns None when the object carries no secret.
    """
    info = item.get("info") if isinstance(item.get("info"), dict) else {}
    secret_text = item.get("secret") or info.get("secret") or ""
    if not secret_text:
        return None

    secret = base32.decode(base32.normalize_secret(str(secret_text)))
    if not secret:
        raise CredentialError("secret decodes to an empty key")
    return Credential(
        name=str(item.get("name") or item.get("issuer") or item.get("issuerExt") or UNKNOWN_NAME),
        account=str(item.get("account") or item.get("label") or item.get("userName") or ""),
        secret=secret,
        kind=OTPKind.from_label(item.get("type")),
        digits=_as_int(item.get("digits") or info.get("digits"), DEFAULT_DIGITS),
        period=_as_int(item.get("period") or info.get("period"), DEFAULT_PERIOD),
        counter=_as_int(item.get("counter") or info.get("counter"), 0),
        algorithm=Algorithm.from_label(item.get("algorithm") or info.get("algo")),
    )


def _as_int(value, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


# --- Export ----------------------------------------------------------------
def export_txt(credentials: Iterable[Credential]) -> str:
    return "\n".join(otpauth.serialize(c) for c in credentials)


def export_json(credentials: Iterable[Credential]) -> str:
    return json.dumps([c.to_dict() for c in credentials], indent=2, ensure_ascii=False)


def export_csv(credentials: Iterable[Credential]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for c in credentials:
        writer.writerow(
            [c.name, c.account, c.secret_b32, c.kind.value, c.digits, c.period, c.algorithm.value]
        )
    return buffer.getvalue()


def export_migration(credentials: Iterable[Credential]) -> str:
    return migration.build_migration_uri(credentials)


EXPORTERS = {
    "txt": export_txt,
    "json": export_json,
    "csv": export_csv,
    "migration": export_migration,
}
