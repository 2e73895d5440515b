"""Rating population statistics."""

from __future__ import annotations

from collections.abc import Sequence
from statistics import pstdev

from pedal_elo.ranking.elo import Rated


def population_spread(pool: Sequence[Rated]) -> float:
    """Population standard deviation of ratings across the pool.

    Returns 0.0 for pools with fewer than two members.
    """
    min_pool_size = 2
    if len(pool) < min_pool_size:
        return 0.0
    return pstdev(p.rating for p in pool)
