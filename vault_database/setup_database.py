import logging
import os
import sqlite3

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_FILE = os.path.join("database", "otp_vault.db")


def setup_database(db_path: str = DEFAULT_DATABASE_FILE) -> None:
    """Create the credential and backup tables if they do not exist yet."""

    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    # One row per credential; the secret is kept as unpadded Base32 text
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS credentials (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        account TEXT NOT NULL DEFAULT '',
        secret TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'TOTP',
        digits INTEGER NOT NULL DEFAULT 6,
        period INTEGER NOT NULL DEFAULT 30,
        algorithm TEXT NOT NULL DEFAULT 'SHA1',
        counter INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''')

    # Snapshots of the whole credential list (JSON export)
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS backups (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        backup_key TEXT NOT NULL UNIQUE,
        count INTEGER NOT NULL,
        payload TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''')

    conn.commit()
    conn.close()
    logger.info("Database ready at %s", db_path)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    setup_database()
