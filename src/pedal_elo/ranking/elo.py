"""Elo rating calculations for pedal-elo.

K-factor schedule for a crowd of many independent voters:

    < 30 matches  -> K=64   A new pedal must find its level fast, so a few
                            idiosyncratic early votes cannot anchor it.
    30-99 matches -> K=32   Settling in, still responsive to genuine upsets.
    100+ matches  -> K=16   Well established, hard to move without sustained
                            pressure from many voters.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

INITIAL_RATING = 1200.0

# (matches below which the tier applies, K)
K_FACTOR_TIERS: tuple[tuple[int, int], ...] = ((30, 64), (100, 32))
ESTABLISHED_K_FACTOR = 16


class Rated(Protocol):
    """Anything carrying a rating and a match count."""

    rating: float
    matches: int


@dataclass(frozen=True)
class MatchResolution:
    """Outcome of resolving one match.

    Attributes:
        new_winner_rating: Winner rating after the match.
        new_loser_rating: Loser rating after the match.
        delta: Points gained by the winner (never negative).
        elo_gap: Pre-match winner rating minus loser rating, unrounded.
    """

    new_winner_rating: float
    new_loser_rating: float
    delta: int
    elo_gap: float


def k_factor(matches_played: int) -> int:
    """Map a match count to the K-factor tier."""
    for upper_bound, k in K_FACTOR_TIERS:
        if matches_played < upper_bound:
            return k
    return ESTABLISHED_K_FACTOR


def expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate expected win probability for A against B.

    Uses the standard Elo formula:
    E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of pedal A.
        rating_b: Rating of pedal B.

    Returns:
        Probability that A wins (0.0 to 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Works on the exact decimal value of the float, so 38.5 -> 39 and
    -38.5 -> -39 regardless of binary representation quirks.
    """
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def resolve_match(winner: Rated, loser: Rated) -> MatchResolution:
    """Calculate updated ratings after one match.

    Each side uses its own K-factor, so an established favourite losing to a
    newcomer drops by less than the newcomer gains.

    Args:
        winner: Winning pedal's current rating and match count.
        loser: Losing pedal's current rating and match count.

    Returns:
        MatchResolution with new ratings, the winner's delta and the pre-match gap.
    """
    k_winner = k_factor(winner.matches)
    k_loser = k_factor(loser.matches)
    expected_winner = expected_score(winner.rating, loser.rating)
    expected_loser = expected_score(loser.rating, winner.rating)

    delta = round_half_away_from_zero(k_winner * (1 - expected_winner))
    new_loser_rating = round_half_away_from_zero(
        loser.rating + k_loser * (0 - expected_loser)
    )

    return MatchResolution(
        new_winner_rating=winner.rating + delta,
        new_loser_rating=float(new_loser_rating),
        delta=delta,
        elo_gap=winner.rating - loser.rating,
    )
