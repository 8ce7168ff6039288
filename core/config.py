"""Runtime configuration for the lot traceability service.

Settings come from environment variables. A `.env` file at the repository
root is loaded first when present, so local development needs no exports.

Usage:
    from core.config import get_settings

    settings = get_settings()
    timeout = settings.resolve_timeout_seconds
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


REPO_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = REPO_ROOT / ".env"

DEFAULT_PRIMARY_COLLECTION = "lots"
DEFAULT_LEGACY_COLLECTION = "avocado-tracking"
DEFAULT_RESOLVE_TIMEOUT_SECONDS = 10.0
DEFAULT_STORE_DB_PATH = REPO_ROOT / "lot_store.db"

STORE_BACKENDS = ("firestore", "sqlite")


class Settings(BaseModel):
    """Service settings.

    Attributes:
        resolve_timeout_seconds: Wall-clock deadline for one lot resolution
        primary_collection: Collection holding current lot records
        legacy_collection: Collection holding historical tracking records
        store_backend: Document store used by the API ("firestore" or "sqlite")
        store_db_path: SQLite file for the local document store
        firestore_project_id: GCP project for Firestore (None = ambient default)
        log_level: Root logging level name
        log_json: Emit JSON log lines instead of human-readable ones
    """
    resolve_timeout_seconds: float = Field(default=DEFAULT_RESOLVE_TIMEOUT_SECONDS, gt=0)
    primary_collection: str = Field(default=DEFAULT_PRIMARY_COLLECTION, min_length=1)
    legacy_collection: str = Field(default=DEFAULT_LEGACY_COLLECTION, min_length=1)
    store_backend: str = Field(default="sqlite")
    store_db_path: Path = Field(default=DEFAULT_STORE_DB_PATH)
    firestore_project_id: Optional[str] = None
    log_level: str = Field(default="INFO")
    log_json: bool = False

    @field_validator("store_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in STORE_BACKENDS:
            raise ValueError(
                f"Unknown store backend '{value}' (expected one of {', '.join(STORE_BACKENDS)})"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(env_path: Optional[Path] = ENV_PATH) -> Settings:
    """Build settings from the environment, loading `.env` first if it exists.

    Variables already set in the process environment win over `.env`.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    if env_path is not None and Path(env_path).exists():
        load_dotenv(env_path, override=False)

    values = {}
    timeout = os.getenv("LOT_RESOLVE_TIMEOUT_SECONDS")
    if timeout:
        values["resolve_timeout_seconds"] = timeout
    primary = os.getenv("LOT_PRIMARY_COLLECTION")
    if primary:
        values["primary_collection"] = primary
    legacy = os.getenv("LOT_LEGACY_COLLECTION")
    if legacy:
        values["legacy_collection"] = legacy
    backend = os.getenv("LOT_STORE_BACKEND")
    if backend:
        values["store_backend"] = backend
    db_path = os.getenv("LOT_STORE_DB_PATH")
    if db_path:
        values["store_db_path"] = Path(db_path)
    project = os.getenv("FIRESTORE_PROJECT_ID")
    if project:
        values["firestore_project_id"] = project
    level = os.getenv("LOG_LEVEL")
    if level:
        values["log_level"] = level
    values["log_json"] = _env_bool(os.getenv("LOG_JSON"))

    return Settings(**values)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests change the environment between cases)."""
    global _settings
    _settings = None
