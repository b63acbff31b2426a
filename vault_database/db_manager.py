import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from vault_core import base32, interchange
from vault_core.credential import Algorithm, Credential, OTPKind

from .setup_database import DEFAULT_DATABASE_FILE

logger = logging.getLogger(__name__)

_COLUMNS = "name, account, secret, type, digits, period, algorithm, counter"


@dataclass(frozen=True)
class StoredCredential:
    """A credential row: the value object plus its storage bookkeeping."""

    id: int
    credential: Credential
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id}
        data.update(self.credential.to_dict())
        data["createdAt"] = self.created_at
        data["updatedAt"] = self.updated_at
        return data


def get_db_connection(db_path: str = DEFAULT_DATABASE_FILE) -> sqlite3.Connection:
    """Open a connection whose rows behave like dictionaries."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def _row_to_stored(row: sqlite3.Row) -> StoredCredential:
    credential = Credential(
        name=row["name"],
        account=row["account"],
        secret=base32.decode(row["secret"]),
        kind=OTPKind(row["type"]),
        digits=row["digits"],
        period=row["period"],
        counter=row["counter"],
        algorithm=Algorithm(row["algorithm"]),
    )
    return StoredCredential(
        id=row["id"],
        credential=credential,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _values(credential: Credential) -> tuple:
    return (
        credential.name,
        credential.account,
        credential.secret_b32,
        credential.kind.value,
        credential.digits,
        credential.period,
        credential.algorithm.value,
        credential.counter,
    )


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def list_credentials(db_path: str = DEFAULT_DATABASE_FILE) -> List[StoredCredential]:
    """All stored credentials, oldest first."""
    conn = get_db_connection(db_path)
    try:
        rows = conn.execute("SELECT * FROM credentials ORDER BY id").fetchall()
    finally:
        conn.close()
    return [_row_to_stored(row) for row in rows]


def get_credential(credential_id: int, db_path: str = DEFAULT_DATABASE_FILE) -> Optional[StoredCredential]:
    conn = get_db_connection(db_path)
    try:
        row = conn.execute("SELECT * FROM credentials WHERE id = ?", (credential_id,)).fetchone()
    finally:
        conn.close()
    return _row_to_stored(row) if row else None


def add_credential(credential: Credential, db_path: str = DEFAULT_DATABASE_FILE) -> int:
    """Insert one credential and return its id."""
    conn = get_db_connection(db_path)
    try:
        cursor = conn.execute(
            f"INSERT INTO credentials ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            _values(credential),
        )
        conn.commit()
        new_id = cursor.lastrowid
    finally:
        conn.close()
    logger.info("Added credential %d (%s)", new_id, credential.name)
    return new_id


def batch_add(credentials: Iterable[Credential], db_path: str = DEFAULT_DATABASE_FILE) -> int:
    """
    Insert many credentials in one transaction.

    No deduplication is done; the return value is the number of rows
    actually inserted.
    """
    rows = [_values(c) for c in credentials]
    if not rows:
        return 0
    conn = get_db_connection(db_path)
    try:
        with conn:
            conn.executemany(
                f"INSERT INTO credentials ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
    finally:
        conn.close()
    logger.info("Batch added %d credentials", len(rows))
    return len(rows)


def update_credential(
    credential_id: int, credential: Credential, db_path: str = DEFAULT_DATABASE_FILE
) -> bool:
    conn = get_db_connection(db_path)
    try:
        cursor = conn.execute(
            """UPDATE credentials
               SET name = ?, account = ?, secret = ?, type = ?, digits = ?,
                   period = ?, algorithm = ?, counter = ?, updated_at = ?
               WHERE id = ?""",
            _values(credential) + (_now(), credential_id),
        )
        conn.commit()
        updated = cursor.rowcount > 0
    finally:
        conn.close()
    return updated


def delete_credential(credential_id: int, db_path: str = DEFAULT_DATABASE_FILE) -> bool:
    conn = get_db_connection(db_path)
    try:
        cursor = conn.execute("DELETE FROM credentials WHERE id = ?", (credential_id,))
        conn.commit()
        deleted = cursor.rowcount > 0
    finally:
        conn.close()
    if deleted:
        logger.info("Deleted credential %d", credential_id)
    return deleted


def increment_counter(credential_id: int, db_path: str = DEFAULT_DATABASE_FILE) -> Optional[StoredCredential]:
    """Advance a HOTP counter by one and return the updated row."""
    conn = get_db_connection(db_path)
    try:
        cursor = conn.execute(
            "UPDATE credentials SET counter = counter + 1, updated_at = ? WHERE id = ?",
            (_now(), credential_id),
        )
        conn.commit()
        found = cursor.rowcount > 0
    finally:
        conn.close()
    return get_credential(credential_id, db_path) if found else None


# --- Backups ---------------------------------------------------------------
def create_backup(db_path: str = DEFAULT_DATABASE_FILE) -> dict:
    """Snapshot every credential as JSON under a timestamped key."""
    credentials = [stored.credential for stored in list_credentials(db_path)]
    key = "backup_" + datetime.now().strftime("%Y%m%dT%H%M%S%f")
    conn = get_db_connection(db_path)
    try:
        conn.execute(
            "INSERT INTO backups (backup_key, count, payload) VALUES (?, ?, ?)",
            (key, len(credentials), interchange.export_json(credentials)),
        )
        conn.commit()
    finally:
        conn.close()
    logger.info("Created backup %s with %d credentials", key, len(credentials))
    return {"key": key, "count": len(credentials)}


def list_backups(db_path: str = DEFAULT_DATABASE_FILE) -> List[dict]:
    conn = get_db_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT backup_key, count, created_at FROM backups ORDER BY id DESC"
        ).fetchall()
    finally:
        conn.close()
    return [{"key": r["backup_key"], "count": r["count"], "timestamp": r["created_at"]} for r in rows]


def restore_backup(backup_key: str, db_path: str = DEFAULT_DATABASE_FILE) -> Optional[int]:
    """
    Replace all credentials with the content of a backup.

    Returns the number of restored credentials, or None for an unknown key.
    """
    conn = get_db_connection(db_path)
    try:
        row = conn.execute(
            "SELECT payload FROM backups WHERE backup_key = ?", (backup_key,)
        ).fetchone()
        if row is None:
            return None
        items = json.loads(row["payload"])
        credentials = [interchange.credential_from_dict(item) for item in items]
        rows = [_values(c) for c in credentials if c is not None]
        with conn:
            conn.execute("DELETE FROM credentials")
            conn.executemany(
                f"INSERT INTO credentials ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
    finally:
        conn.close()
    logger.info("Restored backup %s (%d credentials)", backup_key, len(rows))
    return len(rows)
