"""Rating engine for pedal-elo.

Pure Elo maths and pool statistics; no I/O and no state between calls.
"""

from pedal_elo.ranking.elo import (
    INITIAL_RATING,
    MatchResolution,
    Rated,
    expected_score,
    k_factor,
    resolve_match,
    round_half_away_from_zero,
)
from pedal_elo.ranking.statistics import population_spread

__all__ = [
    "INITIAL_RATING",
    "MatchResolution",
    "Rated",
    "expected_score",
    "k_factor",
    "population_spread",
    "resolve_match",
    "round_half_away_from_zero",
]
