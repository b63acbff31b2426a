"""
sqlite3 credential store for the otp-vault backend.

Implements the storage side of the API: CRUD on credentials, the batch-add
boundary used by imports, and JSON snapshots (backups).
"""

from .setup_database import DEFAULT_DATABASE_FILE, setup_database

__all__ = ["DEFAULT_DATABASE_FILE", "setup_database"]
