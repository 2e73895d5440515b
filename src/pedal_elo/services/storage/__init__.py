from .backends import (
    DuckDBBackend,
    KeyValueBackend,
    MemoryBackend,
    ProxyBackend,
    create_backend,
)
from .store import (
    BATTLE_PREFIX,
    GLOBAL_KEY,
    HISTORY_KEY,
    RankingsSnapshot,
    RatingStore,
)
from .write_queue import WriteCoalescer

__all__ = [
    "BATTLE_PREFIX",
    "GLOBAL_KEY",
    "HISTORY_KEY",
    "DuckDBBackend",
    "KeyValueBackend",
    "MemoryBackend",
    "ProxyBackend",
    "RankingsSnapshot",
    "RatingStore",
    "WriteCoalescer",
    "create_backend",
]
