from __future__ import annotations

import pytest

from vault_backend import create_app
from vault_core import FixedClock
from vault_database import setup_database


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "vault.db")
    setup_database(path)
    return path


@pytest.fixture()
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "DATABASE": str(tmp_path / "api.db"),
            "CLOCK": FixedClock(59),
        }
    )
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
