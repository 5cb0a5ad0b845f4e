from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

_ENV_OVERRIDES = {
    "NESSTATE_MAX_AUTO": ("retention", "max_auto"),
    "NESSTATE_MAX_MANUAL": ("retention", "max_manual"),
    "NESSTATE_BACKEND": ("storage", "backend"),
    "NESSTATE_DATA_DIR": ("storage", "directory"),
    "NESSTATE_LOG_LEVEL": ("logging", "level"),
}


class RetentionSettings(BaseModel):
    """Per-fingerprint caps for each snapshot category."""

    max_auto: int = Field(3, ge=0, description="Auto-saves kept per program image")
    max_manual: int = Field(13, ge=0, description="Manual saves kept per program image")


class StorageSettings(BaseModel):
    backend: Literal["sqlite", "memory"] = Field("sqlite", description="Snapshot backend")
    directory: Optional[Path] = Field(default=None, description="Database directory; platform default when unset")
    filename: str = Field("snapshots.sqlite3", description="Database file name inside directory")
    timeout: float = Field(5.0, ge=0, description="Seconds to wait for another writer's lock")

    @field_validator("filename")
    @classmethod
    def plain_filename(cls, v: str) -> str:
        if not v or Path(v).name != v:
            raise ValueError("filename must be a bare file name")
        return v


class LoggingSettings(BaseModel):
    level: str = Field("WARNING", description="Root log level name")
    format: str = Field("[%(asctime)s] [%(levelname)s] %(name)s: %(message)s")

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        name = v.strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level {v!r}")
        return name


class Settings(BaseModel):
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @staticmethod
    def _env_overlay(environ: Dict[str, str]) -> Dict[str, Any]:
        overlay: Dict[str, Any] = {}
        for var, (section, key) in _ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                overlay.setdefault(section, {})[key] = value
                logger.debug("Settings override from %s", var)
        return overlay

    @classmethod
    def load(cls, user_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Load settings from built-in defaults, an optional user file and the environment.

        Later sources win: packaged defaults < user YAML < NESSTATE_* variables.
        """
        try:
            with resources.files("nesstate.config").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to model defaults.")
            data = cls().model_dump(mode="json")

        if user_path is not None:
            if user_path.exists():
                data = cls._deep_merge(data, cls._load_yaml(user_path))
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file %s not found; using defaults", user_path)

        data = cls._deep_merge(data, cls._env_overlay(os.environ if environ is None else environ))
        return cls.model_validate(data)
