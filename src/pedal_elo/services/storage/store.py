"""Rating and history persistence on top of a key-value backend.

Key schema:
    pedal-elo:global          -> {"rankings": {...}, "totalVotes": n}
    pedal-elo:battle:{key}    -> {"rankings": {...}, "totalVotes": n}  (per brand pair)
    pedal-elo:history         -> [MatchRecord, ...]                     (newest first)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pydantic
import structlog

from pedal_elo.core.errors import StorageError
from pedal_elo.models import (
    MAX_HISTORY,
    MatchRecord,
    RatingRecord,
    cap_history,
    rating_record_or_default,
)

from .backends import KeyValueBackend
from .write_queue import WriteCoalescer

logger = structlog.get_logger()

GLOBAL_KEY = "pedal-elo:global"
HISTORY_KEY = "pedal-elo:history"
BATTLE_PREFIX = "pedal-elo:battle:"


@dataclass
class RankingsSnapshot:
    """All rating records of one pool plus its vote counter."""

    rankings: dict[str, RatingRecord] = field(default_factory=dict)
    total_votes: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "rankings": {
                pedal_id: record.model_dump(by_alias=True)
                for pedal_id, record in self.rankings.items()
            },
            "totalVotes": self.total_votes,
        }


def _parse_rankings(raw: Any) -> dict[str, RatingRecord]:
    """Parse stored rankings, replacing invalid records with the default."""
    if not isinstance(raw, dict):
        return {}
    rankings = {}
    for pedal_id, data in raw.items():
        try:
            rankings[pedal_id] = rating_record_or_default(data if isinstance(data, dict) else None)
        except pydantic.ValidationError as e:
            logger.warning("invalid_rating_record", pedal_id=pedal_id, errors=e.error_count())
            rankings[pedal_id] = RatingRecord()
    return rankings


def parse_snapshot(raw: Any) -> RankingsSnapshot:
    """Parse a stored snapshot; missing or malformed data yields an empty one."""
    if not isinstance(raw, dict):
        return RankingsSnapshot()
    total_votes = raw.get("totalVotes")
    return RankingsSnapshot(
        rankings=_parse_rankings(raw.get("rankings")),
        total_votes=total_votes if isinstance(total_votes, int) and total_votes >= 0 else 0,
    )


def parse_history(raw: Any) -> list[MatchRecord]:
    """Parse stored history, skipping entries that fail validation."""
    if not isinstance(raw, list):
        return []
    history = []
    for entry in raw:
        try:
            history.append(MatchRecord.model_validate(entry))
        except pydantic.ValidationError:
            logger.warning("invalid_history_entry")
    return history


class RatingStore:
    """Load and save rating snapshots and match history.

    Loads go straight to the backend; saves are queued on the write
    coalescer so bursts of votes produce one write per key.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        writer: WriteCoalescer,
        max_history: int = MAX_HISTORY,
    ) -> None:
        """Initialize rating store.

        Args:
            backend: Key-value backend for reads.
            writer: Started write coalescer for saves.
            max_history: Maximum number of history entries kept.
        """
        self.backend = backend
        self.writer = writer
        self.max_history = max_history

    async def load_all(self) -> tuple[RankingsSnapshot, list[MatchRecord]]:
        """Load the global snapshot and history concurrently."""
        global_raw, history_raw = await asyncio.gather(
            self._get(GLOBAL_KEY),
            self._get(HISTORY_KEY),
        )
        snapshot = parse_snapshot(global_raw)
        history = parse_history(history_raw)[: self.max_history]
        logger.info(
            "store_loaded",
            rated=len(snapshot.rankings),
            total_votes=snapshot.total_votes,
            history=len(history),
        )
        return snapshot, history

    async def load_battle(self, battle_key: str) -> RankingsSnapshot:
        """Load the snapshot of one brand battle."""
        return parse_snapshot(await self._get(f"{BATTLE_PREFIX}{battle_key}"))

    def save_global(self, snapshot: RankingsSnapshot) -> None:
        """Queue the global snapshot for saving."""
        self.writer.enqueue(GLOBAL_KEY, snapshot.to_payload())

    def save_battle(self, battle_key: str, snapshot: RankingsSnapshot) -> None:
        """Queue a brand battle snapshot for saving."""
        self.writer.enqueue(f"{BATTLE_PREFIX}{battle_key}", snapshot.to_payload())

    def append_history(
        self, record: MatchRecord, current: list[MatchRecord]
    ) -> list[MatchRecord]:
        """Prepend a record, cap the history and queue it for saving.

        Returns:
            The new history list, newest first.
        """
        history = cap_history(record, current, self.max_history)
        self._save_history(history)
        return history

    def clear_history(self) -> None:
        """Queue an empty history for saving."""
        self._save_history([])

    def _save_history(self, history: list[MatchRecord]) -> None:
        self.writer.enqueue(
            HISTORY_KEY, [r.model_dump(by_alias=True, mode="json") for r in history]
        )

    async def _get(self, key: str) -> Any | None:
        """Read a key, degrading to None when the backend is unavailable."""
        try:
            return await self.backend.get(key)
        except StorageError as e:
            logger.warning("storage_get_failed", key=key, error=e.message)
            return None
