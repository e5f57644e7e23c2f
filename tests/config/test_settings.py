"""Tests for settings loading and backend construction."""

import pytest
from pydantic import ValidationError

from worldline import LocalStorage, SQLiteStorage, UUIDAllocator
from worldline.config import StorageSettings, build_ids, build_storage


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("BACKEND", "SQLITE_PATH", "SQLITE_TIMEOUT", "ID_PREFIX"):
        monkeypatch.delenv(f"WORLDLINE_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    settings = StorageSettings()
    assert settings.backend == "memory"
    assert settings.sqlite_path == "worldline.db"
    assert settings.sqlite_timeout == 5.0
    assert settings.id_prefix == ""


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WORLDLINE_BACKEND", "sqlite")
    monkeypatch.setenv("WORLDLINE_SQLITE_PATH", ":memory:")
    monkeypatch.setenv("WORLDLINE_SQLITE_TIMEOUT", "1.5")
    monkeypatch.setenv("WORLDLINE_ID_PREFIX", "todo-")

    settings = StorageSettings()
    assert settings.backend == "sqlite"
    assert settings.sqlite_path == ":memory:"
    assert settings.sqlite_timeout == 1.5
    assert settings.id_prefix == "todo-"


def test_dotenv_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("WORLDLINE_BACKEND=sqlite\nUNRELATED=1\n")
    assert StorageSettings().backend == "sqlite"


@pytest.mark.parametrize(
    "kwargs", [{"backend": "postgres"}, {"sqlite_timeout": 0}, {"sqlite_timeout": -1}]
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValidationError):
        StorageSettings(**kwargs)


def test_build_storage_memory():
    assert isinstance(build_storage(StorageSettings()), LocalStorage)


def test_build_storage_sqlite(tmp_path):
    storage = build_storage(StorageSettings(backend="sqlite", sqlite_path=str(tmp_path / "x.db")))
    try:
        assert isinstance(storage, SQLiteStorage)
        assert (tmp_path / "x.db").exists()
    finally:
        storage.close()


def test_build_ids_uses_prefix():
    ids = build_ids(StorageSettings(id_prefix="w-"))
    assert isinstance(ids, UUIDAllocator)
    assert ids.allocate().startswith("w-")
