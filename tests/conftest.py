"""Shared fixtures for pedal-elo tests."""

import json

import pytest

from pedal_elo.core.config import AppConfig, CatalogueConfig, StorageConfig
from pedal_elo.services.catalogue import CatalogueProvider
from pedal_elo.services.match import MatchService
from pedal_elo.services.storage import MemoryBackend, RatingStore, WriteCoalescer

CATALOGUE_ENTRIES = [
    {"name": "DS-1 Distortion", "brand": "Boss", "filename": "boss-ds-1"},
    {"name": "Blues Driver", "brand": "Boss", "filename": "boss-bd-2"},
    {"name": "Phase 90", "brand": "MXR", "filename": "mxr-phase-90"},
    {"name": "Carbon Copy", "brand": "MXR", "filename": "mxr-carbon-copy"},
]


@pytest.fixture
def catalogue_path(tmp_path):
    """Write a small four-pedal catalogue to disk."""
    path = tmp_path / "pedals.json"
    path.write_text(json.dumps(CATALOGUE_ENTRIES), encoding="utf-8")
    return path


@pytest.fixture
def app_config(catalogue_path):
    """Configuration reading the local test catalogue with no remote fallback."""
    return AppConfig(
        storage=StorageConfig(backend="memory", debounce_seconds=0.01),
        catalogue=CatalogueConfig(local_path=str(catalogue_path), remote_url=None),
        seed=7,
    )


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
async def writer(backend):
    """Started write coalescer, flushed and stopped after the test."""
    coalescer = WriteCoalescer(backend, delay=0.01)
    await coalescer.start()
    yield coalescer
    await coalescer.stop()


@pytest.fixture
async def session(app_config, backend, writer):
    """Loaded MatchService on an in-memory backend."""
    store = RatingStore(backend, writer)
    service = MatchService(app_config, store, CatalogueProvider(app_config.catalogue))
    await service.load()
    return service


@pytest.fixture
def ids(session):
    """Pedal ids of the loaded session keyed by display name."""
    return {p.name: p.id for p in session.pedals}
