"""Tests for the simulated crowd."""

from pedal_elo.core.random_source import SequenceRandom
from pedal_elo.services.match import Candidate, MatchmakingMode, Matchup
from pedal_elo.services.simulation import SimulatedCrowd, simulate_votes


def matchup():
    return Matchup(
        Candidate(id="a", brand="Boss"), Candidate(id="b", brand="MXR"), MatchmakingMode.RANKED
    )


class TestSimulatedCrowd:
    """Tests for vote decisions."""

    def test_low_draw_favours_a(self):
        crowd = SimulatedCrowd({"a": 1200, "b": 1200}, SequenceRandom([0.1]))
        assert crowd.decide(matchup()) == ("a", "b")

    def test_strong_b_wins(self):
        """Test a much stronger B wins unless the draw is tiny."""
        crowd = SimulatedCrowd({"a": 800, "b": 2000}, SequenceRandom([0.5]))
        assert crowd.decide(matchup()) == ("b", "a")

    def test_missing_ratings_default(self):
        crowd = SimulatedCrowd({}, SequenceRandom([0.49, 0.51]))
        assert crowd.decide(matchup()) == ("a", "b")
        assert crowd.decide(matchup()) == ("b", "a")


class TestSimulateVotes:
    """Tests for the simulated voting loop."""

    async def test_casts_requested_votes(self, session):
        true_ratings = {p.id: 1000 + 100 * i for i, p in enumerate(session.pedals)}
        crowd = SimulatedCrowd(true_ratings, SequenceRandom([0.3, 0.7, 0.1, 0.9]))
        seen = []

        records = await simulate_votes(session, crowd, 25, on_vote=seen.append)

        assert len(records) == 25
        assert seen == records
        assert session.total_votes == 25
        assert sum(r.matches for r in session.rankings.values()) == 50

    async def test_stops_on_tiny_pool(self, session):
        session.set_brand_filter(["Nobody"])
        crowd = SimulatedCrowd({}, SequenceRandom([0.5]))

        records = await simulate_votes(session, crowd, 5)

        assert records == []
        assert session.total_votes == 0

    async def test_recovers_strongest_pedal(self, session):
        """Test a long run puts the truly best pedal on top."""
        best = session.pedals[2].id
        true_ratings = {p.id: 1000 for p in session.pedals} | {best: 1800}
        crowd = SimulatedCrowd(true_ratings, session.matchmaker.rng)

        await simulate_votes(session, crowd, 200)

        assert session.leaderboard()[0].pedal.id == best
