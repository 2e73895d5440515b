from .pairing import (
    Candidate,
    Matchmaker,
    MatchmakingMode,
    Matchup,
    RecentlyShown,
    build_candidates,
)
from .service import BattlePool, MatchService

__all__ = [
    "BattlePool",
    "Candidate",
    "MatchService",
    "Matchmaker",
    "MatchmakingMode",
    "Matchup",
    "RecentlyShown",
    "build_candidates",
]
