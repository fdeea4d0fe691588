# src/halalmap/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/halalmap/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `HALALMAP_DATABASE_URL`, `HALALMAP_ADMIN_TOKEN`)
- an external YAML file via `HALALMAP_CONFIG_PATH`

Design rule:
- Search bounds, place types and map defaults live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from halalmap.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `halalmap.config`."""
    text = resources.files("halalmap.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "HalalMap"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class DatabaseSettings(BaseModel):
    url: str = "sqlite:///data/halalmap.db"
    query_timeout_seconds: float = Field(5, gt=0)
    echo: bool = False


class StorageSettings(BaseModel):
    backend: Literal["sql", "memory"] = "sql"


class CatalogSettings(BaseModel):
    path: str = "data/catalogs/places.json"


class SearchSettings(BaseModel):
    place_types: list[str] = Field(default_factory=lambda: ["restaurant", "mosque"])
    default_radius_m: int = 5000
    min_radius_m: int = Field(100, ge=1)
    max_radius_m: int = 50_000

    @model_validator(mode="after")
    def _validate_bounds(self) -> "SearchSettings":
        if self.max_radius_m < self.min_radius_m:
            raise ValueError("search.max_radius_m must be >= search.min_radius_m")
        if not self.min_radius_m <= self.default_radius_m <= self.max_radius_m:
            raise ValueError("search.default_radius_m must lie within [min_radius_m, max_radius_m]")
        return self


class CenterSettings(BaseModel):
    lat: float = Field(41.7151, ge=-90, le=90)
    lon: float = Field(44.8271, ge=-180, le=180)


class MapSettings(BaseModel):
    default_center: CenterSettings = Field(default_factory=CenterSettings)
    location_timeout_seconds: float = Field(10, gt=0)


class AuthSettings(BaseModel):
    admin_token: str | None = None


class ClientSettings(BaseModel):
    api_url: str = "http://localhost:5000"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    map: MapSettings = Field(default_factory=MapSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    database_url = os.getenv("HALALMAP_DATABASE_URL")
    if database_url:
        data.setdefault("database", {})["url"] = database_url

    echo = os.getenv("HALALMAP_DATABASE_ECHO")
    if echo:
        data.setdefault("database", {})["echo"] = echo.strip().lower() in {"1", "true", "yes", "y"}

    log_level = os.getenv("HALALMAP_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    backend = os.getenv("HALALMAP_STORAGE_BACKEND")
    if backend:
        data.setdefault("storage", {})["backend"] = backend

    admin_token = os.getenv("HALALMAP_ADMIN_TOKEN")
    if admin_token:
        data.setdefault("auth", {})["admin_token"] = admin_token

    api_url = os.getenv("HALALMAP_API_URL")
    if api_url:
        data.setdefault("client", {})["api_url"] = api_url

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("HALALMAP_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
