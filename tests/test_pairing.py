"""Tests for adaptive matchmaking."""

import pytest

from pedal_elo.core.config import MatchmakingConfig
from pedal_elo.core.random_source import SequenceRandom, create_random_source, shuffled
from pedal_elo.models import Pedal, RatingRecord
from pedal_elo.services.match.pairing import (
    Candidate,
    Matchmaker,
    MatchmakingMode,
    RecentlyShown,
    build_candidates,
)


class CountingRandom(SequenceRandom):
    """SequenceRandom that counts draws."""

    def __init__(self, values):
        super().__init__(values)
        self.calls = 0

    def random(self):
        self.calls += 1
        return super().random()


@pytest.fixture
def spread_pool():
    """Four pedals sorted by rating; only the lowest is an anchor."""
    return [
        Candidate(id="c0", brand="Boss", rating=1000, matches=60),
        Candidate(id="c1", brand="Boss", rating=1100, matches=0),
        Candidate(id="c2", brand="MXR", rating=1200, matches=0),
        Candidate(id="c3", brand="MXR", rating=1300, matches=0),
    ]


class TestRecentlyShown:
    """Tests for the rolling exclusion set."""

    def test_default_capacity(self):
        assert RecentlyShown().capacity == 14

    def test_evicts_oldest(self):
        """Test the oldest id is dropped once over capacity."""
        recent = RecentlyShown(capacity=3)
        recent.extend(["a", "b", "c", "d"])

        assert list(recent) == ["b", "c", "d"]
        assert "a" not in recent

    def test_readd_keeps_position(self):
        """Test re-adding an id does not refresh it."""
        recent = RecentlyShown(capacity=3)
        recent.extend(["a", "b", "c", "a", "d"])

        assert list(recent) == ["b", "c", "d"]

    def test_clear(self):
        recent = RecentlyShown()
        recent.extend(["a", "b"])
        recent.clear()
        assert len(recent) == 0


class TestShuffle:
    """Tests for the Fisher-Yates shuffle."""

    def test_permutation(self):
        items = list(range(20))
        result = shuffled(create_random_source(3), items)
        assert sorted(result) == items
        assert items == list(range(20))

    def test_deterministic_with_sequence(self):
        """Test always drawing 0.0 rotates the list left by one."""
        assert shuffled(SequenceRandom([0.0]), ["p0", "p1", "p2", "p3"]) == [
            "p1",
            "p2",
            "p3",
            "p0",
        ]


class TestModeSelection:
    """Tests for bootstrap/ranked mode selection."""

    def test_fresh_pool_is_bootstrap(self):
        pool = [Candidate(id=str(i), brand="B") for i in range(10)]
        assert Matchmaker().select_mode(pool) is MatchmakingMode.BOOTSTRAP

    def test_threshold_is_exclusive(self):
        """Test a spread of exactly 50 already counts as ranked."""
        pool = [
            Candidate(id="a", brand="A", rating=1150),
            Candidate(id="b", brand="B", rating=1250),
        ]
        assert Matchmaker().select_mode(pool) is MatchmakingMode.RANKED

    def test_just_below_threshold(self):
        pool = [
            Candidate(id="a", brand="A", rating=1151),
            Candidate(id="b", brand="B", rating=1249),
        ]
        assert Matchmaker().select_mode(pool) is MatchmakingMode.BOOTSTRAP


class TestPickMatchup:
    """Tests for matchup selection."""

    @pytest.mark.parametrize("size", [0, 1])
    def test_too_small_pool(self, size):
        pool = [Candidate(id=str(i), brand="B") for i in range(size)]
        assert Matchmaker().pick_matchup(pool) is None

    def test_two_pedals_same_brand(self):
        """Test a two-pedal single-brand pool still produces a matchup."""
        pool = [Candidate(id="a", brand="Boss"), Candidate(id="b", brand="Boss")]
        matchup = Matchmaker().pick_matchup(pool)
        assert set(matchup.ids) == {"a", "b"}

    @pytest.mark.parametrize("seed", range(10))
    def test_bootstrap_prefers_cross_brand(self, seed):
        """Test bootstrap pairs cross brands when possible."""
        pool = [
            Candidate(id="a", brand="Boss"),
            Candidate(id="b", brand="Boss"),
            Candidate(id="c", brand="MXR"),
        ]
        matchup = Matchmaker(rng=create_random_source(seed)).pick_matchup(pool)

        assert matchup.mode is MatchmakingMode.BOOTSTRAP
        assert matchup.a.brand != matchup.b.brand

    @pytest.mark.parametrize("seed", range(10))
    def test_bootstrap_avoids_recent(self, seed):
        pool = [Candidate(id=x, brand=x.upper()) for x in "abcd"]
        matchup = Matchmaker(rng=create_random_source(seed)).pick_matchup(pool, {"a", "b"})
        assert set(matchup.ids) == {"c", "d"}

    def test_bootstrap_deterministic_with_sequence(self):
        """Test a fixed random sequence yields a fixed matchup."""
        pool = [Candidate(id=f"p{i}", brand=f"brand{i}") for i in range(4)]
        matchup = Matchmaker(rng=SequenceRandom([0.0])).pick_matchup(pool)
        assert matchup.ids == ("p1", "p2")

    def test_bootstrap_fallback_single_brand(self):
        """Test a single-brand pool falls back to the first two shuffled."""
        pool = [Candidate(id=str(i), brand="Boss") for i in range(5)]
        matchup = Matchmaker(rng=create_random_source(1)).pick_matchup(pool)
        assert matchup.a.id != matchup.b.id
        assert matchup.mode is MatchmakingMode.BOOTSTRAP

    def test_ranked_phase_a(self, spread_pool):
        """Test the first attempt takes a cross-brand pair with an anchor."""
        rng = CountingRandom([0.0, 0.99])
        matchup = Matchmaker(rng=rng).pick_matchup(spread_pool)

        assert matchup.ids == ("c0", "c3")
        assert matchup.mode is MatchmakingMode.RANKED
        assert rng.calls == 2

    def test_ranked_phase_b_drops_anchor(self, spread_pool):
        """Test without anchors the first cross-brand pair comes in phase B."""
        pool = [Candidate(c.id, c.brand, c.rating, matches=0) for c in spread_pool]
        rng = CountingRandom([0.0, 0.99])
        matchup = Matchmaker(rng=rng).pick_matchup(pool)

        assert matchup.ids == ("c0", "c3")
        assert rng.calls == 2 * 46

    def test_ranked_phase_c_allows_same_brand(self, spread_pool):
        """Test same-brand neighbours are only accepted in phase C."""
        rng = CountingRandom([0.0])
        matchup = Matchmaker(rng=rng).pick_matchup(spread_pool)

        assert matchup.ids == ("c0", "c1")
        assert rng.calls == 2 * 71

    def test_ranked_spread_capped(self):
        """Test paired pedals are never more than 12 ranks apart."""
        pool = [
            Candidate(id=f"p{i:02d}", brand=f"b{i % 3}", rating=1000 + 10 * i, matches=60)
            for i in range(40)
        ]
        matchmaker = Matchmaker(rng=create_random_source(5))
        for _ in range(200):
            matchup = matchmaker.pick_matchup(pool)
            gap = abs(int(matchup.a.id[1:]) - int(matchup.b.id[1:]))
            assert 1 <= gap <= 12

    def test_ranked_avoids_recent(self, spread_pool):
        recent = RecentlyShown()
        recent.extend(["c1", "c2"])
        for seed in range(3):
            matchmaker = Matchmaker(rng=create_random_source(seed))
            matchup = matchmaker.pick_matchup(spread_pool, recent)
            assert set(matchup.ids) == {"c0", "c3"}

    def test_ranked_exhaustion_falls_back(self, spread_pool):
        """Test an all-recent pool still yields a distinct pair."""
        recent = {"c0", "c1", "c2", "c3"}
        matchup = Matchmaker(rng=create_random_source(2)).pick_matchup(spread_pool, recent)

        assert matchup.a.id != matchup.b.id
        assert matchup.mode is MatchmakingMode.RANKED

    def test_recent_not_mutated(self, spread_pool):
        recent = RecentlyShown()
        recent.add("c1")
        Matchmaker(rng=create_random_source(0)).pick_matchup(spread_pool, recent)
        assert list(recent) == ["c1"]

    def test_custom_config(self, spread_pool):
        """Test a zero-length phase A skips the anchor requirement."""
        config = MatchmakingConfig(phase_a_attempts=0)
        pool = [Candidate(c.id, c.brand, c.rating, matches=0) for c in spread_pool]
        rng = CountingRandom([0.0, 0.99])

        matchup = Matchmaker(config, rng).pick_matchup(pool)

        assert matchup.ids == ("c0", "c3")
        assert rng.calls == 2


class TestBattleMatchup:
    """Tests for brand battle selection."""

    def test_empty_side(self):
        pool = [Candidate(id="a", brand="Boss")]
        assert Matchmaker().pick_battle_matchup(pool, []) is None

    def test_one_from_each_pool(self):
        pool_a = [Candidate(id=f"a{i}", brand="Boss", rating=1200 + i) for i in range(5)]
        pool_b = [Candidate(id=f"b{i}", brand="MXR", rating=1200 + i) for i in range(5)]
        matchmaker = Matchmaker(rng=create_random_source(4))
        for _ in range(20):
            matchup = matchmaker.pick_battle_matchup(pool_a, pool_b)
            assert matchup.a.brand == "Boss"
            assert matchup.b.brand == "MXR"
            assert matchup.mode is MatchmakingMode.BATTLE

    def test_picks_from_top_slice(self):
        """Test battle picks come from the top eight of each side."""
        pool_a = [Candidate(id=f"a{i}", brand="Boss", rating=1000 + i) for i in range(20)]
        pool_b = [Candidate(id=f"b{i}", brand="MXR", rating=1000 + i) for i in range(20)]
        matchmaker = Matchmaker(rng=create_random_source(9))
        for _ in range(50):
            matchup = matchmaker.pick_battle_matchup(pool_a, pool_b)
            assert int(matchup.a.id[1:]) >= 12
            assert int(matchup.b.id[1:]) >= 12

    def test_all_recent_falls_back_to_top(self):
        pool_a = [Candidate(id="a0", brand="Boss", rating=1100), Candidate(id="a1", brand="Boss")]
        pool_b = [Candidate(id="b0", brand="MXR", rating=1300)]
        matchup = Matchmaker().pick_battle_matchup(pool_a, pool_b, {"a0", "a1", "b0"})
        assert matchup.ids == ("a1", "b0")


class TestBuildCandidates:
    """Tests for merging pedals with rating records."""

    def test_missing_records_default(self):
        pedals = [
            Pedal(id="x", name="X", brand="Boss", filename="x"),
            Pedal(id="y", name="Y", brand="MXR", filename="y"),
        ]
        rankings = {"x": RatingRecord(rating=1300, wins=2, losses=1, matches=3)}

        candidates = build_candidates(pedals, rankings)

        assert [(c.id, c.rating, c.matches) for c in candidates] == [
            ("x", 1300, 3),
            ("y", 1200, 0),
        ]
