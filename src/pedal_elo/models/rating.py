"""Per-pedal rating record."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pedal_elo.ranking.elo import INITIAL_RATING


class RatingRecord(BaseModel):
    """Current rating and record for a pedal.

    Serialized with the ``elo`` key so stored snapshots stay readable by
    older clients.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    rating: float = Field(default=INITIAL_RATING, alias="elo", allow_inf_nan=False)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    matches: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_match_count(self) -> RatingRecord:
        if self.matches != self.wins + self.losses:
            msg = f"matches ({self.matches}) must equal wins + losses ({self.wins + self.losses})"
            raise ValueError(msg)
        return self

    def record_match(self, new_rating: float, won: bool) -> RatingRecord:
        """Return a copy with one more win or loss at ``new_rating``."""
        return self.model_copy(
            update={
                "rating": new_rating,
                "wins": self.wins + (1 if won else 0),
                "losses": self.losses + (0 if won else 1),
                "matches": self.matches + 1,
            }
        )


def rating_record_or_default(
    maybe_record: RatingRecord | Mapping[str, Any] | None,
) -> RatingRecord:
    """Merge a possibly missing or partial record over the default record.

    Raises:
        pydantic.ValidationError: If the record holds a non-finite rating,
            negative counts, or a match count that is not wins + losses.
    """
    if maybe_record is None:
        return RatingRecord()
    if isinstance(maybe_record, RatingRecord):
        return maybe_record
    return RatingRecord.model_validate(dict(maybe_record))
