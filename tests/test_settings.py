from pathlib import Path

import pytest
from pydantic import ValidationError

from nesstate.persistence import InMemoryBackend, SQLiteBackend, build_backend, open_store
from nesstate.settings import Settings

from conftest import FINGERPRINT, make_record


def test_packaged_defaults():
    s = Settings.load(environ={})
    assert s.retention.max_auto == 3
    assert s.retention.max_manual == 13
    assert s.storage.backend == "sqlite"
    assert s.storage.directory is None
    assert s.storage.filename == "snapshots.sqlite3"


def test_user_yaml_overlays_defaults(tmp_path: Path):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text("retention:\n  max_auto: 5\nstorage:\n  backend: memory\n", encoding="utf-8")
    s = Settings.load(cfg, environ={})
    assert s.retention.max_auto == 5
    assert s.retention.max_manual == 13
    assert s.storage.backend == "memory"


def test_missing_user_file_falls_back(tmp_path: Path):
    s = Settings.load(tmp_path / "absent.yaml", environ={})
    assert s.retention.max_auto == 3


def test_environment_wins(tmp_path: Path):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text("retention:\n  max_auto: 5\n", encoding="utf-8")
    env = {
        "NESSTATE_MAX_AUTO": "7",
        "NESSTATE_MAX_MANUAL": "2",
        "NESSTATE_BACKEND": "memory",
        "NESSTATE_DATA_DIR": str(tmp_path / "db"),
    }
    s = Settings.load(cfg, environ=env)
    assert s.retention.max_auto == 7
    assert s.retention.max_manual == 2
    assert s.storage.backend == "memory"
    assert s.storage.directory == tmp_path / "db"


@pytest.mark.parametrize(
    "text",
    [
        "retention:\n  max_manual: -1\n",
        "storage:\n  backend: postgres\n",
        "storage:\n  filename: nested/file.db\n",
    ],
)
def test_invalid_values_rejected(tmp_path: Path, text: str):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text(text, encoding="utf-8")
    with pytest.raises(ValidationError):
        Settings.load(cfg, environ={})


def test_build_backend_follows_storage_settings(tmp_path: Path):
    memory = Settings.load(environ={"NESSTATE_BACKEND": "memory"})
    assert isinstance(build_backend(memory), InMemoryBackend)

    sqlite = Settings.load(environ={"NESSTATE_DATA_DIR": str(tmp_path)})
    backend = build_backend(sqlite)
    assert isinstance(backend, SQLiteBackend)
    assert backend.path == tmp_path / "snapshots.sqlite3"


def test_open_store_applies_retention(tmp_path: Path, clock):
    settings = Settings.load(environ={"NESSTATE_MAX_AUTO": "1", "NESSTATE_DATA_DIR": str(tmp_path)})
    with open_store(settings, clock=clock) as store:
        store.save(make_record(is_auto_save=True, marker=1))
        store.save(make_record(is_auto_save=True, marker=2))
        assert store.count(FINGERPRINT) == 1
    assert (tmp_path / "snapshots.sqlite3").exists()


def test_logging_defaults_and_env_level():
    s = Settings.load(environ={})
    assert s.logging.level == "WARNING"
    assert "%(name)s" in s.logging.format
    assert Settings.load(environ={"NESSTATE_LOG_LEVEL": "debug"}).logging.level == "DEBUG"


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings.load(environ={"NESSTATE_LOG_LEVEL": "chatty"})


def test_storage_timeout_reaches_backend(tmp_path: Path):
    s = Settings.load(environ={"NESSTATE_DATA_DIR": str(tmp_path)})
    s = s.model_copy(update={"storage": s.storage.model_copy(update={"timeout": 0.5})})
    assert build_backend(s).timeout == 0.5
