"""
Configuration Tests

Settings are read from LOT_* / FIRESTORE_* / LOG_* environment variables.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import (
    DEFAULT_STORE_DB_PATH,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)


ENV_VARS = [
    "LOT_RESOLVE_TIMEOUT_SECONDS",
    "LOT_PRIMARY_COLLECTION",
    "LOT_LEGACY_COLLECTION",
    "LOT_STORE_BACKEND",
    "LOT_STORE_DB_PATH",
    "FIRESTORE_PROJECT_ID",
    "LOG_LEVEL",
    "LOG_JSON",
]


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so values written by load_dotenv are undone on teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    reset_settings()
    yield monkeypatch
    reset_settings()


class TestSettings:

    def test_defaults(self, clean_env):
        settings = load_settings(env_path=None)

        assert settings.resolve_timeout_seconds == 10.0
        assert settings.primary_collection == "lots"
        assert settings.legacy_collection == "avocado-tracking"
        assert settings.store_backend == "sqlite"
        assert settings.store_db_path == DEFAULT_STORE_DB_PATH
        assert settings.firestore_project_id is None
        assert settings.log_level == "INFO"
        assert settings.log_json is False

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("LOT_RESOLVE_TIMEOUT_SECONDS", "2.5")
        clean_env.setenv("LOT_PRIMARY_COLLECTION", "lots-v2")
        clean_env.setenv("LOT_STORE_BACKEND", "Firestore")
        clean_env.setenv("LOT_STORE_DB_PATH", "/tmp/lots.db")
        clean_env.setenv("FIRESTORE_PROJECT_ID", "agri-export")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("LOG_JSON", "true")

        settings = load_settings(env_path=None)

        assert settings.resolve_timeout_seconds == 2.5
        assert settings.primary_collection == "lots-v2"
        assert settings.store_backend == "firestore"
        assert settings.store_db_path == Path("/tmp/lots.db")
        assert settings.firestore_project_id == "agri-export"
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True

    def test_dotenv_file_loaded(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LOT_LEGACY_COLLECTION=tracking-2019\n")

        settings = load_settings(env_path=env_file)
        assert settings.legacy_collection == "tracking-2019"

    def test_process_env_wins_over_dotenv(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LOT_LEGACY_COLLECTION=from-file\n")
        clean_env.setenv("LOT_LEGACY_COLLECTION", "from-env")

        assert load_settings(env_path=env_file).legacy_collection == "from-env"

    @pytest.mark.parametrize("name,value", [
        ("LOT_STORE_BACKEND", "postgres"),
        ("LOT_RESOLVE_TIMEOUT_SECONDS", "0"),
        ("LOT_RESOLVE_TIMEOUT_SECONDS", "soon"),
    ])
    def test_invalid_values_rejected(self, clean_env, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ValidationError):
            load_settings(env_path=None)

    def test_get_settings_is_cached(self, clean_env):
        first = get_settings()
        clean_env.setenv("LOT_PRIMARY_COLLECTION", "changed")
        assert get_settings() is first

        reset_settings()
        assert get_settings().primary_collection == "changed"

    def test_direct_construction(self):
        settings = Settings(resolve_timeout_seconds=0.5, store_backend="sqlite")
        assert settings.resolve_timeout_seconds == 0.5
