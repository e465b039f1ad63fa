"""
Configuration loading for prt-arrivals.

Loads non-secret settings from config.yaml, secrets from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class AppConfig(BaseModel):
    """Application configuration. Secrets come from env vars, rest from YAML."""

    # Secrets (from environment only)
    prt_api_key: Optional[str] = None

    # TrueTime settings
    prt_base_url: str = "http://truetime.portauthority.org/bustime/api/v3"
    stops: list[str] = Field(default_factory=lambda: ["4407", "7117"], min_length=1)
    feed_name: str = "Port Authority Bus"
    time_resolution: str = "s"
    request_timeout: float = Field(default=10.0, gt=0)

    # Cache settings
    cache_ttl: int = Field(default=20, ge=1)
    extrapolation_threshold: int = Field(default=30, ge=0)
    single_flight: bool = True

    # HTTP server
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=0, le=65535)

    @field_validator("stops", mode="before")
    @classmethod
    def coerce_stop_ids(cls, value):
        # YAML reads unquoted stop IDs such as 4407 as integers
        if isinstance(value, list):
            return [str(s) for s in value]
        return value

    @field_validator("stops")
    @classmethod
    def validate_unique_stops(cls, stops: list[str]) -> list[str]:
        duplicates = [s for s in stops if stops.count(s) > 1]
        if duplicates:
            raise ValueError(f"Duplicate stop IDs: {set(duplicates)}")
        return stops


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load configuration from YAML file + environment variables.

    Args:
        config_path: Path to config.yaml. If None, reads CONFIG_PATH env var
                     (default: config.yaml in current directory).

    Returns:
        Validated AppConfig instance.
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config.yaml")

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    # Inject secrets from environment (never from YAML)
    config_data = {**raw, "prt_api_key": os.environ.get("PRT_API_KEY")}

    # Listen address may be overridden per deployment
    if "API_HOST" in os.environ:
        config_data["host"] = os.environ["API_HOST"]
    if "API_PORT" in os.environ:
        config_data["port"] = os.environ["API_PORT"]

    return AppConfig(**config_data)
