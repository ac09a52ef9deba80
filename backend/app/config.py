"""Plant identifier application configuration.

Loads settings from two YAML files:
  * plantid.settings.yaml: non-secret configuration
  * plantid.secrets.yaml : secrets (never committed)

Environment variables win over both files:
  * GEMINI_API_KEY: Gemini API key
  * PORT         : HTTP port (set by most hosting platforms)
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("plantid.settings.yaml")
SECRETS_FILE  = Path("plantid.secrets.yaml")

# Below this the sweeper could race a request that is still writing its file.
MIN_MAX_AGE_SECONDS = 60


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class GeminiSecrets(BaseModel):
    api_key: Optional[str] = None


class Secrets(BaseModel):
    gemini: GeminiSecrets = Field(default_factory=GeminiSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000


class LoggingSettings(BaseModel):
    level: str = "info"


class StorageSettings(BaseModel):
    """Where uploads are staged and how long they are kept."""
    public_dir:             str       = "public"
    uploads_subdir:         str       = "uploads"
    css_subdir:             str       = "css"
    placeholder_name:       str       = ".gitkeep"
    max_age_seconds:        int       = 3600
    sweep_interval_seconds: int       = 3600
    max_upload_bytes:       int       = 20 * 1024 * 1024
    allowed_mime_types:     List[str] = Field(default_factory=lambda: [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/heic",
        "image/heif",
    ])

    @field_validator("max_age_seconds")
    @classmethod
    def _max_age_not_too_small(cls, value: int) -> int:
        if value < MIN_MAX_AGE_SECONDS:
            raise ValueError(
                f"max_age_seconds must be at least {MIN_MAX_AGE_SECONDS} "
                f"(got {value})"
            )
        return value

    @field_validator("sweep_interval_seconds", "max_upload_bytes")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @property
    def public_path(self) -> Path:
        return Path(self.public_dir)

    @property
    def uploads_path(self) -> Path:
        return self.public_path / self.uploads_subdir

    @property
    def css_path(self) -> Path:
        return self.public_path / self.css_subdir


class AnalysisSettings(BaseModel):
    """Gemini model and generation parameters."""
    model:             str             = "gemini-1.5-flash"
    temperature:       float           = 0.4
    top_k:             int             = 32
    top_p:             float           = 1.0
    max_output_tokens: int             = 4096
    timeout_seconds:   float           = 60.0
    prompt:            Optional[str]   = None


class AppSettings(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)
    storage:  StorageSettings  = Field(default_factory=StorageSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    secrets:  Secrets          = Field(default_factory=Secrets)

    @model_validator(mode="after")
    def _interval_within_retention(self) -> "AppSettings":
        if self.storage.sweep_interval_seconds > self.storage.max_age_seconds * 24:
            logger.warning(
                "Sweep interval (%ss) is far longer than retention (%ss); "
                "uploads will outlive their retention window",
                self.storage.sweep_interval_seconds,
                self.storage.max_age_seconds,
            )
        return self

    @property
    def gemini_api_key(self) -> Optional[str]:
        return self.secrets.gemini.api_key


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> None:
    """Let GEMINI_API_KEY and PORT override the YAML values in place."""
    api_key = os.environ.get("GEMINI_API_KEY")
    if api_key:
        data.setdefault("secrets", {}).setdefault("gemini", {})["api_key"] = api_key

    port = os.environ.get("PORT")
    if port:
        data.setdefault("server", {})["port"] = port


def _resolve_public_dir(settings: AppSettings, base_dir: Path) -> None:
    public_dir = Path(settings.storage.public_dir)
    if not public_dir.is_absolute():
        settings.storage.public_dir = str((base_dir / public_dir).resolve())


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppSettings:
    """Load and merge settings + secrets into a single *AppSettings* object.

    A relative ``storage.public_dir`` is resolved against the directory of
    the settings file.
    """
    settings_path = Path(settings_path) if settings_path else SETTINGS_FILE
    secrets_path = Path(secrets_path) if secrets_path else settings_path.with_name(SECRETS_FILE.name)

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(secrets_path)

    # Merge: secrets live under the "secrets" key in AppSettings
    settings_data["secrets"] = secrets_data
    _apply_env_overrides(settings_data)

    app_settings = AppSettings(**settings_data)
    _resolve_public_dir(app_settings, settings_path.parent)

    logger.info(
        "Settings loaded (server=%s:%s, uploads=%s, model=%s)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.storage.uploads_path,
        app_settings.analysis.model,
    )
    return app_settings


_config: Optional[AppSettings] = None


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached settings (for testing)."""
    global _config
    _config = None
