"""Session wiring for pedal-elo."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from pedal_elo.core.config import AppConfig
from pedal_elo.services.catalogue import CatalogueProvider
from pedal_elo.services.match import MatchService
from pedal_elo.services.storage import RatingStore, WriteCoalescer, create_backend

logger = structlog.get_logger()


@asynccontextmanager
async def open_session(config: AppConfig, dry_run: bool = False) -> AsyncIterator[MatchService]:
    """Build a loaded MatchService and tear it down afterwards.

    Pending writes are flushed before the backend is closed, so every vote
    cast inside the block is persisted when the block exits.

    Args:
        config: Application configuration.
        dry_run: Use an in-memory store instead of the configured backend.

    Yields:
        Loaded MatchService.
    """
    backend = create_backend(config.storage, dry_run=dry_run)
    writer = WriteCoalescer(backend, delay=config.storage.debounce_seconds)
    await writer.start()
    try:
        store = RatingStore(backend, writer, max_history=config.storage.max_history)
        session = MatchService(config, store, CatalogueProvider(config.catalogue))
        await session.load()
        yield session
    finally:
        await writer.stop()
        await backend.close()
        logger.debug("session_closed", dry_run=dry_run)
