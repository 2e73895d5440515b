"""Adaptive matchmaking for pedal-elo.

The matchmaker picks the next two pedals to show. Its behaviour depends on
how informative the current ratings are:

1. **Bootstrap mode** (rating spread below the threshold):
   - Ratings carry no signal yet, so pairing is pure exploration
   - The pool is shuffled and the first cross-brand, non-recent pair wins

2. **Ranked mode** (rating spread at or above the threshold):
   - The pool is sorted by rating and nearby-ranked pairs are drawn
   - Early attempts insist on cross-brand pairs with a well-known anchor,
     later attempts relax the constraints step by step
"""

from __future__ import annotations

from collections.abc import Container, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from pedal_elo.core.config import MatchmakingConfig
from pedal_elo.core.random_source import (
    RandomSource,
    create_random_source,
    shuffled,
    uniform_int,
)
from pedal_elo.models import Pedal, RatingRecord, rating_record_or_default
from pedal_elo.ranking import INITIAL_RATING, population_spread


class MatchmakingMode(StrEnum):
    """How a matchup was chosen."""

    BOOTSTRAP = "bootstrap"
    RANKED = "ranked"
    BATTLE = "battle"


@dataclass
class Candidate:
    """A pedal as seen by the matchmaker.

    Attributes:
        id: Stable pedal id.
        brand: Brand used for diversity constraints.
        rating: Current rating.
        matches: Number of matches played.
        name: Display name.
    """

    id: str
    brand: str
    rating: float = INITIAL_RATING
    matches: int = 0
    name: str = ""


@dataclass(frozen=True)
class Matchup:
    """Two distinct candidates to present to the voter."""

    a: Candidate
    b: Candidate
    mode: MatchmakingMode

    @property
    def ids(self) -> tuple[str, str]:
        return self.a.id, self.b.id

    def __iter__(self) -> Iterator[Candidate]:
        return iter((self.a, self.b))


class RecentlyShown:
    """Rolling set of recently shown pedal ids.

    Keeps insertion order; once over capacity the oldest ids are evicted.
    Adding an id that is already present keeps its original position.
    """

    def __init__(self, capacity: int = 14) -> None:
        self.capacity = capacity
        self._ids: dict[str, None] = {}

    def add(self, pedal_id: str) -> None:
        self._ids.setdefault(pedal_id, None)
        while len(self._ids) > self.capacity:
            del self._ids[next(iter(self._ids))]

    def extend(self, pedal_ids: Iterable[str]) -> None:
        for pedal_id in pedal_ids:
            self.add(pedal_id)

    def clear(self) -> None:
        self._ids.clear()

    def __contains__(self, pedal_id: object) -> bool:
        return pedal_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)


def build_candidates(
    pedals: Iterable[Pedal],
    rankings: Mapping[str, RatingRecord],
) -> list[Candidate]:
    """Merge pedals with their rating records.

    Pedals missing from ``rankings`` get the default record, so newly
    discovered pedals are part of the pool from the start.
    """
    candidates = []
    for pedal in pedals:
        record = rating_record_or_default(rankings.get(pedal.id))
        candidates.append(
            Candidate(
                id=pedal.id,
                brand=pedal.brand,
                rating=record.rating,
                matches=record.matches,
                name=pedal.name,
            )
        )
    return candidates


class Matchmaker:
    """Select pairs of pedals to compare.

    Stateless between calls: every decision is computed from the pool and the
    exclusion set passed in. Randomness comes from the injected source.
    """

    def __init__(
        self,
        config: MatchmakingConfig | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        """Initialize matchmaker.

        Args:
            config: Matchmaking constants. Defaults to the tuned values.
            rng: Random source. Defaults to an unseeded ``random.Random``.
        """
        self.config = config or MatchmakingConfig()
        self.rng = rng or create_random_source()

    def select_mode(self, pool: Sequence[Candidate]) -> MatchmakingMode:
        """Classify the pool as bootstrap or ranked by its rating spread."""
        if population_spread(pool) < self.config.bootstrap_spread_threshold:
            return MatchmakingMode.BOOTSTRAP
        return MatchmakingMode.RANKED

    def pick_matchup(
        self,
        pool: Sequence[Candidate],
        recent: Container[str] = frozenset(),
    ) -> Matchup | None:
        """Pick two distinct candidates from the pool.

        Args:
            pool: Active candidates with current ratings.
            recent: Recently shown ids to avoid. Never mutated.

        Returns:
            A Matchup, or None when fewer than two candidates are available.
        """
        min_pool_size = 2
        if len(pool) < min_pool_size:
            return None

        if self.select_mode(pool) is MatchmakingMode.BOOTSTRAP:
            return self._pick_bootstrap(pool, recent)
        return self._pick_ranked(pool, recent)

    def _pick_bootstrap(
        self, pool: Sequence[Candidate], recent: Container[str]
    ) -> Matchup:
        order = shuffled(self.rng, pool)
        for i, a in enumerate(order):
            if a.id in recent:
                continue
            for b in order[i + 1 :]:
                if b.brand != a.brand and b.id not in recent:
                    return Matchup(a, b, MatchmakingMode.BOOTSTRAP)
        return Matchup(order[0], order[1], MatchmakingMode.BOOTSTRAP)

    def _pick_ranked(self, pool: Sequence[Candidate], recent: Container[str]) -> Matchup:
        ranked = sorted(pool, key=lambda c: c.rating)
        n = len(ranked)

        for attempt in range(self.config.max_attempts):
            i = uniform_int(self.rng, 0, n - 2)
            spread = uniform_int(self.rng, 1, min(self.config.max_spread_offset, n - 1 - i))
            a, b = ranked[i], ranked[i + spread]
            if a.id == b.id or not self._passes_phase(attempt, a, b):
                continue
            if a.id in recent or b.id in recent:
                continue
            return Matchup(a, b, MatchmakingMode.RANKED)

        fallback = shuffled(self.rng, pool)
        return Matchup(fallback[0], fallback[1], MatchmakingMode.RANKED)

    def _passes_phase(self, attempt: int, a: Candidate, b: Candidate) -> bool:
        """Apply the constraint for the phase the attempt falls in.

        Phase A requires cross-brand pairs with at least one anchor, phase B
        only cross-brand pairs, phase C anything distinct.
        """
        if attempt < self.config.phase_a_attempts:
            has_anchor = max(a.matches, b.matches) >= self.config.anchor_matches
            return a.brand != b.brand and has_anchor
        if attempt < self.config.phase_b_attempts:
            return a.brand != b.brand
        return True

    def pick_battle_matchup(
        self,
        pool_a: Sequence[Candidate],
        pool_b: Sequence[Candidate],
        recent: Container[str] = frozenset(),
    ) -> Matchup | None:
        """Pick one pedal from each brand pool.

        Picks are drawn from the top-rated slice of each pool so battles stay
        meaningful.

        Returns:
            A Matchup, or None when either pool is empty.
        """
        if not pool_a or not pool_b:
            return None

        top_a = sorted(pool_a, key=lambda c: c.rating, reverse=True)
        top_b = sorted(pool_b, key=lambda c: c.rating, reverse=True)
        max_idx = min(self.config.battle_top_n, len(top_a), len(top_b))

        for _ in range(self.config.battle_attempts):
            a = top_a[uniform_int(self.rng, 0, max_idx - 1)]
            b = top_b[uniform_int(self.rng, 0, max_idx - 1)]
            if a.id not in recent and b.id not in recent:
                return Matchup(a, b, MatchmakingMode.BATTLE)
        return Matchup(top_a[0], top_b[0], MatchmakingMode.BATTLE)
