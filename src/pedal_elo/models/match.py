"""Match history records."""

from __future__ import annotations

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MAX_HISTORY = 200


class MatchSide(BaseModel):
    """One side of a resolved match."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    brand: str
    elo_before: float = Field(alias="eloBefore")
    elo_after: float = Field(alias="eloAfter")


class MatchRecord(BaseModel):
    """A single resolved vote.

    Attributes:
        ts: Epoch milliseconds when the vote was cast.
        mode: "global" for the shared pool, "battle" for brand battles.
        winner: Winner side with before/after ratings.
        loser: Loser side with before/after ratings.
        delta: Rating points gained by the winner.
        elo_gap: Pre-match winner rating minus loser rating (negative = upset).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ts: int = Field(default_factory=lambda: int(time.time() * 1000))
    mode: Literal["global", "battle"] = "global"
    winner: MatchSide
    loser: MatchSide
    delta: int = Field(ge=0)
    elo_gap: float = Field(alias="eloGap")

    @property
    def is_upset(self) -> bool:
        return self.elo_gap < 0


def cap_history(
    record: MatchRecord, history: list[MatchRecord], limit: int = MAX_HISTORY
) -> list[MatchRecord]:
    """Prepend ``record`` and drop the oldest entries beyond ``limit``."""
    return [record, *history][:limit]
