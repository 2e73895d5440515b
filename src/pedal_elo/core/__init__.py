"""Core configuration and utilities for pedal-elo."""

from pedal_elo.core.config import (
    AppConfig,
    CatalogueConfig,
    MatchmakingConfig,
    StorageConfig,
    load_config,
)
from pedal_elo.core.errors import (
    CatalogueError,
    ConfigurationError,
    PedalEloError,
    ProxyURLError,
    StorageError,
    UnknownPedalError,
    ValidationError,
)
from pedal_elo.core.progress import VoteProgress
from pedal_elo.core.random_source import RandomSource, SequenceRandom, create_random_source
from pedal_elo.core.slug import SlugGenerator, battle_storage_key

__all__ = [
    "AppConfig",
    "CatalogueConfig",
    "MatchmakingConfig",
    "StorageConfig",
    "load_config",
    "SlugGenerator",
    "VoteProgress",
    "RandomSource",
    "SequenceRandom",
    "battle_storage_key",
    "create_random_source",
    "CatalogueError",
    "ConfigurationError",
    "PedalEloError",
    "ProxyURLError",
    "StorageError",
    "UnknownPedalError",
    "ValidationError",
]
