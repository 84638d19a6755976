import os

import pytest


@pytest.fixture(autouse=True)
def _clean_mariadb_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep MARIADB_* settings from the shell out of DatabaseConfig defaults."""
    for key in list(os.environ):
        if key.startswith("MARIADB_") and not key.startswith("MARIADB_TEST_"):
            monkeypatch.delenv(key, raising=False)
