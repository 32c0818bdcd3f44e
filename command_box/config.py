"""Configuration management for cbox."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from . import get_cbox_home
from .errors import ConfigError, ParseError
from .models import check_namespace

LISTING_SORTS = ("name", "date")

# field name -> environment variable
_ENV_OVERRIDES = {
    "home": "CBOX_HOME",
    "cloud_path": "CBOX_CLOUD_PATH",
    "cloud_login": "CBOX_CLOUD_LOGIN",
    "skip_questions": "CBOX_SKIP_QUESTIONS",
    "listing_sort": "CBOX_LISTING_SORT",
    "log_level": "CBOX_LOG_LEVEL",
}


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass
class CBoxConfig:
    """cbox configuration."""

    # Local store (spaces/ lives under this directory)
    home: str = "~/.cbox"

    # Cloud
    cloud_path: str = "~/.cbox/cloud"  # Shared directory acting as the remote
    cloud_login: str = ""  # User namespace for publishing; empty = logged out

    # CLI behaviour
    skip_questions: bool = False  # Answer "yes" to every confirmation
    listing_sort: str = "name"
    log_level: str = "WARNING"

    @classmethod
    def keys(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def load(cls, config_path: Path | None = None) -> CBoxConfig:
        """Read the YAML file, then apply ``CBOX_*`` environment overrides.

        Unknown keys are ignored; known ones go through the same coercion
        as ``cbox config set``.
        """
        path = config_path or default_config_path()
        stored: dict[str, Any] = {}
        if path.exists():
            with open(path, encoding="utf-8") as f:
                stored = yaml.safe_load(f) or {}

        for key, env_var in _ENV_OVERRIDES.items():
            if (value := os.getenv(env_var)) is not None:
                stored[key] = value

        config = cls()
        for key, value in stored.items():
            if key in _ENV_OVERRIDES:
                config.update(key, value)
        return config

    def update(self, key: str, value: Any) -> None:
        """Set one field from text or YAML input, validating it."""
        if key not in _ENV_OVERRIDES:
            raise ConfigError(
                f"Unknown config key '{key}' (available: {', '.join(self.keys())})"
            )

        if key == "skip_questions":
            value = value if isinstance(value, bool) else parse_bool(str(value))
        elif key == "listing_sort":
            value = str(value).lower()
            if value not in LISTING_SORTS:
                raise ConfigError(f"listing_sort must be one of: {', '.join(LISTING_SORTS)}")
        elif key == "log_level":
            value = str(value).upper()
            if not isinstance(logging.getLevelName(value), int):
                raise ConfigError(f"Unknown log level '{value}'")
        elif key == "cloud_login":
            value = str(value or "")
            if value:
                try:
                    value = check_namespace(value)
                except ParseError as exc:
                    raise ConfigError(str(exc)) from exc
        else:
            value = str(value)
        setattr(self, key, value)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def save(self, config_path: Path | None = None) -> None:
        path = config_path or default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.as_dict(), f, default_flow_style=False, allow_unicode=True)

    @property
    def resolved_home(self) -> Path:
        return Path(self.home).expanduser().resolve()

    @property
    def resolved_cloud_path(self) -> Path:
        return Path(self.cloud_path).expanduser().resolve()

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.WARNING)


def default_config_path() -> Path:
    return get_cbox_home() / "config.yaml"
