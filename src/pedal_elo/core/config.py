"""Configuration schemas and loading for pedal-elo."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import pydantic
import yaml
from pydantic import BaseModel, Field, model_validator

from pedal_elo.core.errors import ProxyURLError, ValidationError

DEFAULT_REMOTE_URL = (
    "https://raw.githubusercontent.com/PedalPlayground/pedalplayground/"
    "master/public/data/pedals.json"
)
DEFAULT_IMAGE_BASE = "https://pedalplayground.com/public/images/pedals/"
PROXY_URL_ENV = "PEDAL_ELO_PROXY_URL"


class MatchmakingConfig(BaseModel):
    """Matchmaker tuning constants.

    The defaults come from crowd tuning and should be left alone unless the
    voting population changes substantially.

    Attributes:
        bootstrap_spread_threshold: Rating standard deviation below which the
            pool is treated as uninformative and paired at random.
        max_attempts: Randomized attempts in ranked mode before falling back.
        phase_a_attempts: Attempts that require cross-brand pairs with an anchor.
        phase_b_attempts: Attempts (cumulative) that still require cross-brand pairs.
        max_spread_offset: Largest rank distance between the two picked pedals.
        anchor_matches: Matches a pedal needs before it counts as an anchor.
        recent_capacity: How many recently shown pedal ids to keep out of matchups.
        battle_attempts: Attempts for brand battle matchups.
        battle_top_n: Size of the top slice each battle pick is drawn from.
    """

    bootstrap_spread_threshold: float = Field(default=50.0, ge=0)
    max_attempts: int = Field(default=80, ge=1)
    phase_a_attempts: int = Field(default=45, ge=0)
    phase_b_attempts: int = Field(default=70, ge=0)
    max_spread_offset: int = Field(default=12, ge=1)
    anchor_matches: int = Field(default=50, ge=0)
    recent_capacity: int = Field(default=14, ge=0)
    battle_attempts: int = Field(default=60, ge=1)
    battle_top_n: int = Field(default=8, ge=1)

    @model_validator(mode="after")
    def validate_phase_order(self) -> MatchmakingConfig:
        if not self.phase_a_attempts <= self.phase_b_attempts <= self.max_attempts:
            msg = "Expected phase_a_attempts <= phase_b_attempts <= max_attempts"
            raise ValueError(msg)
        return self


class StorageConfig(BaseModel):
    """Rating store configuration."""

    backend: Literal["duckdb", "proxy", "memory"] = "duckdb"
    proxy_url: str | None = None
    db_path: str = "./data/pedal_elo.duckdb"
    debounce_seconds: float = Field(default=0.7, ge=0)
    max_history: int = Field(default=200, ge=1)
    timeout: float = Field(default=10.0, gt=0)

    def get_proxy_url(self) -> str:
        """Get proxy URL from config or environment."""
        url = self.proxy_url or os.environ.get(PROXY_URL_ENV)
        if not url:
            raise ProxyURLError()
        return url


class CatalogueConfig(BaseModel):
    """Catalogue source configuration."""

    local_path: str | None = "./data/pedals.json"
    remote_url: str | None = DEFAULT_REMOTE_URL
    image_base: str = DEFAULT_IMAGE_BASE
    timeout: float = Field(default=15.0, gt=0)


class AppConfig(BaseModel):
    """Complete application configuration."""

    matchmaking: MatchmakingConfig = Field(default_factory=MatchmakingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    catalogue: CatalogueConfig = Field(default_factory=CatalogueConfig)
    seed: int | None = None


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file. If None, defaults are used.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ValidationError(str(config_path), "Top level must be a mapping of sections.")

    try:
        return AppConfig.model_validate(data or {})
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or str(config_path)
        raise ValidationError(field, error["msg"]) from e
