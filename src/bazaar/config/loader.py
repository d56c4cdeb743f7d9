"""
Configuration loader for bazaar.

What it does:
- Reads static settings from `config/config.yaml`.
- Resolves the owner address from `BAZAAR_OWNER` when set, falling back to the
  YAML `owner` key. One of the two must be present.
- Lets `PROMETHEUS_PORT` override the metrics port.
- Validates the resulting configuration using Pydantic models.

Where it is used:
- Called by `bazaar.main` to build a `Settings` object for runtime.
"""

import os
import yaml
from typing import List
from pydantic import BaseModel, Field, field_validator


class MetricsConfig(BaseModel):
    """Prometheus exporter settings."""
    enabled: bool = True
    port: int = 8000


class CatalogEntry(BaseModel):
    """An item listed by the owner at startup."""
    id: int = Field(gt=0)
    name: str
    category: str = ""
    image: str = ""
    cost: int = Field(ge=0)
    rating: int = 0
    stock: int = Field(default=0, ge=0)


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    ledger_name: str = "main"
    owner: str
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    catalog: List[CatalogEntry] = Field(default_factory=list)

    @field_validator("owner")
    @classmethod
    def not_empty(cls, v, info):
        if not v:
            raise ValueError(f"Missing required setting: {info.field_name}")
        return v


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, apply env overrides, and return Settings.

    A missing file is treated as an empty config so env-only setups work.
    """
    config = {}
    if os.path.exists(path):
        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}
    owner = os.getenv("BAZAAR_OWNER", "") or config.get("owner", "")
    if not owner:
        raise ValueError("Missing ledger owner. Set BAZAAR_OWNER or `owner` in the config file")
    metrics = dict(config.get("metrics") or {})
    port = os.getenv("PROMETHEUS_PORT")
    if port:
        metrics["port"] = int(port)
    return Settings(
        ledger_name=config.get("ledger_name", "main"),
        owner=owner,
        metrics=MetricsConfig(**metrics),
        catalog=[CatalogEntry(**entry) for entry in config.get("catalog") or []],
    )
