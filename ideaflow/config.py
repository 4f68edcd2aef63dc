from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

CONFIG_FILENAME = "ideaflow.yaml"

_ENV_KEYS = {
    "IDEAFLOW_DATABASE_URL": "database_url_override",
    "IDEAFLOW_LOG_LEVEL": "log_level",
    "IDEAFLOW_DEFAULT_ORDER": "default_order",
}

# yaml key -> Settings field, where the names differ
_YAML_ALIASES = {
    "database_url": "database_url_override",
}


def _resolve_home() -> Path:
    override = os.getenv("IDEAFLOW_HOME", "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return Path.cwd().resolve()


class Settings(BaseModel):
    home: Path = Field(default_factory=_resolve_home)
    database_path: Path = Field(default_factory=lambda: _resolve_home() / "data" / "ideaflow.db")
    database_url_override: str = ""

    log_level: str = "WARNING"
    default_order: str = "activity"
    page_size: int = Field(50, ge=1, le=500)

    @property
    def database_url(self) -> str:
        return self.database_url_override or f"sqlite:///{self.database_path}"

    @property
    def config_file(self) -> Path:
        return self.home / CONFIG_FILENAME

    @staticmethod
    def load_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Defaults, then ``ideaflow.yaml`` in the home directory, then environment variables."""
    base = Settings()
    data: dict[str, Any] = {"home": base.home}
    for key, value in base.load_yaml(base.config_file).items():
        key = _YAML_ALIASES.get(key, key)
        if key in Settings.model_fields:
            data[key] = value
    for env_key, field in _ENV_KEYS.items():
        value = os.getenv(env_key, "").strip()
        if value:
            data[field] = value
    return Settings(**data)
