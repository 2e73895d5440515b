from .kv import KeyValueEntry
from .match import MAX_HISTORY, MatchRecord, MatchSide, cap_history
from .pedal import Pedal
from .rating import RatingRecord, rating_record_or_default

__all__ = [
    "MAX_HISTORY",
    "KeyValueEntry",
    "MatchRecord",
    "MatchSide",
    "Pedal",
    "RatingRecord",
    "cap_history",
    "rating_record_or_default",
]
