import pytest

from fetchtray.config import DEBUG_LEVEL_ENV_VAR, TIMEOUT_ENV_VAR


@pytest.fixture(autouse=True)
def test_unset_env(monkeypatch):
    monkeypatch.delenv(DEBUG_LEVEL_ENV_VAR, raising=False)
    monkeypatch.delenv(TIMEOUT_ENV_VAR, raising=False)
