"""Voting session service for pedal-elo."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from pedal_elo.core.config import AppConfig
from pedal_elo.core.errors import UnknownPedalError
from pedal_elo.core.random_source import create_random_source
from pedal_elo.core.slug import battle_storage_key
from pedal_elo.models import MatchRecord, MatchSide, Pedal, RatingRecord
from pedal_elo.ranking import resolve_match
from pedal_elo.services.analysis import LeaderboardEntry, build_leaderboard
from pedal_elo.services.catalogue import CatalogueProvider
from pedal_elo.services.match.pairing import (
    Candidate,
    Matchmaker,
    Matchup,
    RecentlyShown,
    build_candidates,
)
from pedal_elo.services.storage import RankingsSnapshot, RatingStore

logger = structlog.get_logger()


@dataclass
class BattlePool:
    """Rating pool of a head-to-head between two brands."""

    brand_a: str
    brand_b: str
    key: str
    snapshot: RankingsSnapshot


class MatchService:
    """Orchestrates matchmaking, vote resolution and persistence.

    Owns the caller-side state the matchmaker reads: the merged rating
    records, the brand filter and the recently shown ids. Every vote is
    resolved from the current records and applied before the next matchup
    is picked.
    """

    def __init__(
        self,
        config: AppConfig,
        store: RatingStore,
        catalogue: CatalogueProvider,
        matchmaker: Matchmaker | None = None,
    ) -> None:
        """Initialize match service.

        Args:
            config: Application configuration.
            store: Rating and history store.
            catalogue: Catalogue provider.
            matchmaker: Matchmaker to use. Defaults to one seeded from config.
        """
        self.config = config
        self.store = store
        self.catalogue = catalogue
        self.matchmaker = matchmaker or Matchmaker(
            config.matchmaking, create_random_source(config.seed)
        )

        self.pedals: list[Pedal] = []
        self.snapshot = RankingsSnapshot()
        self.history: list[MatchRecord] = []
        self.recent = RecentlyShown(config.matchmaking.recent_capacity)
        self.brand_filter: frozenset[str] = frozenset()
        self.current: Matchup | None = None
        self._pedal_index: dict[str, Pedal] = {}

    async def load(self) -> None:
        """Load the catalogue and stored ratings, merging defaults for new pedals."""
        pedals, (snapshot, history) = await asyncio.gather(
            self.catalogue.fetch_pedals(),
            self.store.load_all(),
        )
        self.pedals = pedals
        self._pedal_index = {p.id: p for p in pedals}
        self.snapshot = RankingsSnapshot(
            rankings=self._with_defaults(snapshot.rankings),
            total_votes=snapshot.total_votes,
        )
        self.history = history
        logger.info("session_loaded", pedals=len(pedals), total_votes=self.total_votes)

    @property
    def rankings(self) -> dict[str, RatingRecord]:
        return self.snapshot.rankings

    @property
    def total_votes(self) -> int:
        return self.snapshot.total_votes

    def get_pedal(self, pedal_id: str) -> Pedal:
        """Look up a pedal by id.

        Raises:
            UnknownPedalError: If the id is not in the catalogue.
        """
        try:
            return self._pedal_index[pedal_id]
        except KeyError as e:
            raise UnknownPedalError(pedal_id) from e

    def get_record(self, pedal_id: str) -> RatingRecord:
        return self.rankings.get(pedal_id) or RatingRecord()

    def brands(self) -> list[tuple[str, int]]:
        """List (brand, pedal count) pairs sorted by brand name."""
        return sorted(Counter(p.brand for p in self.pedals).items())

    def set_brand_filter(self, brands: Iterable[str]) -> None:
        """Restrict matchmaking to the given brands (empty means all)."""
        self.brand_filter = frozenset(brands)
        self.recent.clear()
        self.current = None
        logger.debug("brand_filter_changed", brands=sorted(self.brand_filter))

    def active_pool(self) -> list[Pedal]:
        if not self.brand_filter:
            return list(self.pedals)
        return [p for p in self.pedals if p.brand in self.brand_filter]

    def candidates(self) -> list[Candidate]:
        return build_candidates(self.active_pool(), self.rankings)

    def leaderboard(self) -> list[LeaderboardEntry]:
        """Active pool merged with ratings, best first."""
        return build_leaderboard(self.active_pool(), self.rankings)

    def next_matchup(self) -> Matchup | None:
        """Pick the next matchup from the active pool.

        Returns:
            The new current matchup, or None when fewer than two pedals are active.
        """
        self.current = self.matchmaker.pick_matchup(self.candidates(), self.recent)
        if self.current is not None:
            logger.debug("matchup_selected", ids=self.current.ids, mode=self.current.mode)
        return self.current

    def skip(self, battle: BattlePool | None = None) -> Matchup | None:
        """Discard the current matchup and forget recently shown pedals.

        Args:
            battle: Pick the replacement from this brand battle instead of
                the global pool.
        """
        self.recent.clear()
        if battle is not None:
            return self.next_battle_matchup(battle)
        return self.next_matchup()

    def vote(self, winner_id: str, loser_id: str) -> MatchRecord:
        """Resolve a vote in the global pool and persist the result.

        Args:
            winner_id: Id of the pedal the voter picked.
            loser_id: Id of the other pedal.

        Returns:
            The MatchRecord appended to history.
        """
        record = self._resolve(self.rankings, winner_id, loser_id, mode="global")
        self.snapshot.total_votes += 1
        self.store.save_global(self.snapshot)
        self.history = self.store.append_history(record, self.history)
        self.recent.extend((winner_id, loser_id))
        self.current = None

        logger.info(
            "vote_recorded",
            winner=winner_id,
            loser=loser_id,
            delta=record.delta,
            upset=record.is_upset,
            total_votes=self.total_votes,
        )
        return record

    def reset(self) -> None:
        """Reset every rating to the initial value and clear history."""
        self.snapshot = RankingsSnapshot(rankings={p.id: RatingRecord() for p in self.pedals})
        self.history = []
        self.recent.clear()
        self.current = None
        self.store.save_global(self.snapshot)
        self.store.clear_history()
        logger.warning("rankings_reset", pedals=len(self.pedals))

    async def open_battle(self, brand_a: str, brand_b: str) -> BattlePool:
        """Load the rating pool of a brand battle."""
        key = battle_storage_key(brand_a, brand_b)
        stored = await self.store.load_battle(key)
        battle_pedals = [p for p in self.pedals if p.brand in (brand_a, brand_b)]
        snapshot = RankingsSnapshot(
            rankings=self._with_defaults(stored.rankings, battle_pedals),
            total_votes=stored.total_votes,
        )
        logger.info("battle_opened", key=key, total_votes=snapshot.total_votes)
        return BattlePool(brand_a=brand_a, brand_b=brand_b, key=key, snapshot=snapshot)

    def next_battle_matchup(self, battle: BattlePool) -> Matchup | None:
        """Pick one pedal of each brand using the battle's own ratings."""
        pool_a = build_candidates(
            (p for p in self.pedals if p.brand == battle.brand_a), battle.snapshot.rankings
        )
        pool_b = build_candidates(
            (p for p in self.pedals if p.brand == battle.brand_b), battle.snapshot.rankings
        )
        self.current = self.matchmaker.pick_battle_matchup(pool_a, pool_b, self.recent)
        if self.current is not None:
            logger.debug("battle_matchup_selected", key=battle.key, ids=self.current.ids)
        return self.current

    def battle_vote(self, battle: BattlePool, winner_id: str, loser_id: str) -> MatchRecord:
        """Resolve a vote inside a brand battle and persist the battle pool."""
        record = self._resolve(battle.snapshot.rankings, winner_id, loser_id, mode="battle")
        battle.snapshot.total_votes += 1
        self.store.save_battle(battle.key, battle.snapshot)
        self.history = self.store.append_history(record, self.history)
        self.recent.extend((winner_id, loser_id))
        self.current = None
        logger.info("battle_vote_recorded", key=battle.key, winner=winner_id, delta=record.delta)
        return record

    def _resolve(
        self,
        rankings: dict[str, RatingRecord],
        winner_id: str,
        loser_id: str,
        mode: str,
    ) -> MatchRecord:
        """Apply one match outcome to ``rankings`` and build its history record."""
        if winner_id == loser_id:
            msg = f"A pedal cannot be matched against itself: {winner_id}"
            raise ValueError(msg)
        winner = self.get_pedal(winner_id)
        loser = self.get_pedal(loser_id)
        winner_before = rankings.get(winner_id) or RatingRecord()
        loser_before = rankings.get(loser_id) or RatingRecord()

        result = resolve_match(winner_before, loser_before)
        rankings[winner_id] = winner_before.record_match(result.new_winner_rating, won=True)
        rankings[loser_id] = loser_before.record_match(result.new_loser_rating, won=False)

        return MatchRecord(
            mode=mode,
            winner=MatchSide(
                id=winner.id,
                name=winner.name,
                brand=winner.brand,
                elo_before=winner_before.rating,
                elo_after=result.new_winner_rating,
            ),
            loser=MatchSide(
                id=loser.id,
                name=loser.name,
                brand=loser.brand,
                elo_before=loser_before.rating,
                elo_after=result.new_loser_rating,
            ),
            delta=result.delta,
            elo_gap=result.elo_gap,
        )

    def _with_defaults(
        self,
        rankings: dict[str, RatingRecord],
        pedals: Iterable[Pedal] | None = None,
    ) -> dict[str, RatingRecord]:
        merged = dict(rankings)
        for pedal in self.pedals if pedals is None else pedals:
            merged.setdefault(pedal.id, RatingRecord())
        return merged

