"""Simulated voters for dry runs."""

from __future__ import annotations

from collections.abc import Callable, Mapping

import structlog

from pedal_elo.core.random_source import RandomSource
from pedal_elo.models import MatchRecord
from pedal_elo.ranking import INITIAL_RATING, expected_score
from pedal_elo.services.match import MatchService, Matchup

logger = structlog.get_logger()


class SimulatedCrowd:
    """A crowd whose preferences follow hidden "true" ratings.

    Pedal A beats pedal B with probability ``expected_score(true_a, true_b)``,
    so a long enough simulation should recover the true ordering.
    """

    def __init__(self, true_ratings: Mapping[str, float], rng: RandomSource) -> None:
        """Initialize crowd.

        Args:
            true_ratings: Hidden rating per pedal id. Missing ids use the initial rating.
            rng: Random source deciding each vote.
        """
        self.true_ratings = dict(true_ratings)
        self.rng = rng

    def decide(self, matchup: Matchup) -> tuple[str, str]:
        """Return (winner_id, loser_id) for a matchup."""
        true_a = self.true_ratings.get(matchup.a.id, INITIAL_RATING)
        true_b = self.true_ratings.get(matchup.b.id, INITIAL_RATING)
        if self.rng.random() < expected_score(true_a, true_b):
            return matchup.a.id, matchup.b.id
        return matchup.b.id, matchup.a.id


async def simulate_votes(
    session: MatchService,
    crowd: SimulatedCrowd,
    votes: int,
    on_vote: Callable[[MatchRecord], None] | None = None,
) -> list[MatchRecord]:
    """Run the matchmaking and voting loop ``votes`` times.

    Args:
        session: Loaded match service.
        crowd: Crowd deciding each matchup.
        votes: Number of votes to cast.
        on_vote: Optional callback after each vote (used for progress).

    Returns:
        The produced match records, oldest first.
    """
    records: list[MatchRecord] = []
    for _ in range(votes):
        matchup = session.next_matchup()
        if matchup is None:
            logger.warning("simulation_pool_too_small", pedals=len(session.active_pool()))
            break
        winner_id, loser_id = crowd.decide(matchup)
        record = session.vote(winner_id, loser_id)
        records.append(record)
        if on_vote is not None:
            on_vote(record)

    logger.info("simulation_complete", votes=len(records), total_votes=session.total_votes)
    return records
