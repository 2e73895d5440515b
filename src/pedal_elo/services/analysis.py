"""Leaderboard and history analysis for pedal-elo."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pedal_elo.models import MatchRecord, Pedal, RatingRecord, rating_record_or_default
from pedal_elo.ranking import round_half_away_from_zero


@dataclass(frozen=True)
class LeaderboardEntry:
    """A pedal merged with its rating record.

    Attributes:
        pedal: Catalogue pedal.
        record: Current rating record.
        rank: 1-based rank among ranked pedals, or None if never matched.
    """

    pedal: Pedal
    record: RatingRecord
    rank: int | None = None

    @property
    def win_rate(self) -> float:
        if self.record.matches == 0:
            return 0.0
        return self.record.wins / self.record.matches


@dataclass(frozen=True)
class BrandSummary:
    """Aggregate standing of one brand."""

    brand: str
    count: int
    avg_rating: int
    top_pedal: Pedal
    wins: int
    matches: int


def build_leaderboard(
    pedals: Iterable[Pedal], rankings: Mapping[str, RatingRecord]
) -> list[LeaderboardEntry]:
    """Merge every pedal with its record, sorted by rating descending."""
    entries = [
        LeaderboardEntry(pedal=p, record=rating_record_or_default(rankings.get(p.id)))
        for p in pedals
    ]
    return sorted(entries, key=lambda e: e.record.rating, reverse=True)


def ranked_entries(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Keep pedals with at least one match and assign 1-based ranks."""
    ranked = sorted(
        (e for e in entries if e.record.matches > 0),
        key=lambda e: e.record.rating,
        reverse=True,
    )
    return [
        LeaderboardEntry(pedal=e.pedal, record=e.record, rank=i)
        for i, e in enumerate(ranked, start=1)
    ]


def brand_report(entries: Iterable[LeaderboardEntry]) -> list[BrandSummary]:
    """Summarize ranked pedals per brand, best average rating first.

    Args:
        entries: Ranked entries, sorted by rating descending so the first
            entry of each brand is its top pedal.
    """
    by_brand: dict[str, list[LeaderboardEntry]] = defaultdict(list)
    for entry in entries:
        by_brand[entry.pedal.brand].append(entry)

    summaries = [
        BrandSummary(
            brand=brand,
            count=len(group),
            avg_rating=round_half_away_from_zero(
                sum(e.record.rating for e in group) / len(group)
            ),
            top_pedal=group[0].pedal,
            wins=sum(e.record.wins for e in group),
            matches=sum(e.record.matches for e in group),
        )
        for brand, group in by_brand.items()
    ]
    return sorted(summaries, key=lambda s: s.avg_rating, reverse=True)


def most_contested(
    entries: Iterable[LeaderboardEntry], min_matches: int = 8, limit: int = 8
) -> list[LeaderboardEntry]:
    """Pedals whose win rate is closest to 50%."""
    eligible = [e for e in entries if e.record.matches >= min_matches]
    return sorted(eligible, key=lambda e: abs(e.win_rate - 0.5))[:limit]


def biggest_upsets(
    history: Iterable[MatchRecord], min_gap: float = 50, limit: int = 6
) -> list[MatchRecord]:
    """Matches won by a pedal rated at least ``min_gap`` below its opponent."""
    upsets = [r for r in history if r.elo_gap < -min_gap]
    return sorted(upsets, key=lambda r: r.elo_gap)[:limit]


def recent_history(
    history: Iterable[MatchRecord], mode: str = "global", limit: int = 20
) -> list[MatchRecord]:
    return [r for r in history if r.mode == mode][:limit]


def search_entries(
    entries: Iterable[LeaderboardEntry], query: str, limit: int = 30
) -> list[LeaderboardEntry]:
    """Case-insensitive search over pedal name and brand."""
    q = query.lower()
    return [
        e for e in entries if q in e.pedal.name.lower() or q in e.pedal.brand.lower()
    ][:limit]
