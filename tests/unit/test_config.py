"""Tests for configuration loading and backend selection."""

import pytest

import flowstate.backends as backends
from flowstate.backends import InMemoryBackend, SQLiteBackend, get_backend
from flowstate.config import load_config


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in (
        "FLOWSTATE_CONFIG",
        "FLOWSTATE_BACKEND",
        "FLOWSTATE_DATABASE_URL",
        "WORKFLOW_TABLE_NAME",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(backends, "_backend_instance", None)


def test_defaults_without_config_file():
    config = load_config()
    assert config.storage.backend == "inmemory"
    assert config.log_calls is True
    assert isinstance(get_backend(), InMemoryBackend)


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
storage:
  backend: sqlite
  sqlite_path: state.db
log_calls: false
log_level: DEBUG
"""
    )
    monkeypatch.setenv("FLOWSTATE_CONFIG", str(config_path))

    config = load_config()
    assert config.storage.backend == "sqlite"
    assert config.storage.sqlite_path == "state.db"
    assert config.log_calls is False
    assert config.log_level == "DEBUG"


def test_table_name_env_selects_dynamodb(monkeypatch):
    monkeypatch.setenv("WORKFLOW_TABLE_NAME", "workflows")
    config = load_config()
    assert config.storage.backend == "dynamodb"
    assert config.storage.dynamodb.table_name == "workflows"


def test_backend_env_overrides_file(tmp_path, monkeypatch):
    (tmp_path / "flowstate.yaml").write_text("storage:\n  backend: sqlite\n")
    monkeypatch.setenv("FLOWSTATE_BACKEND", "INMEMORY")
    assert load_config().storage.backend == "inmemory"


def test_get_backend_uses_config(tmp_path, monkeypatch):
    db_path = tmp_path / "configured.db"
    (tmp_path / "flowstate.yaml").write_text(
        f"storage:\n  backend: sqlite\n  sqlite_path: {db_path}\n"
    )

    backend = get_backend()
    assert isinstance(backend, SQLiteBackend)
    assert db_path.exists()
    assert get_backend() is backend


def test_get_backend_from_url(tmp_path):
    assert isinstance(get_backend("memory://"), InMemoryBackend)
    assert isinstance(get_backend(f"sqlite://{tmp_path / 'url.db'}"), SQLiteBackend)
    with pytest.raises(ValueError, match="Unsupported storage backend"):
        get_backend("redis://localhost")


def test_database_url_env_selects_backend(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOWSTATE_DATABASE_URL", f"sqlite://{tmp_path / 'env.db'}")
    assert isinstance(get_backend(), SQLiteBackend)


def test_dynamodb_without_table_name_is_rejected(monkeypatch):
    monkeypatch.setenv("FLOWSTATE_BACKEND", "dynamodb")
    with pytest.raises(ValueError, match="table name"):
        get_backend()
