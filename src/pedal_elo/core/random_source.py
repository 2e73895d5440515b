"""Injectable random source for matchmaking."""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class RandomSource(Protocol):
    """Source of uniform floats in ``[0, 1)``.

    ``random.Random`` satisfies this protocol, as does any test double that
    replays a fixed sequence.
    """

    def random(self) -> float: ...


class SequenceRandom:
    """Replay a fixed sequence of floats, cycling when exhausted."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = list(values)
        if not self._values:
            raise ValueError("SequenceRandom needs at least one value")
        self._index = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value


def create_random_source(seed: int | None = None) -> RandomSource:
    """Create a random source, seeded when a seed is given."""
    return random.Random(seed)  # noqa: S311


def uniform_int(rng: RandomSource, low: int, high: int) -> int:
    """Draw an integer uniformly from ``[low, high]`` inclusive."""
    if high < low:
        msg = f"Empty range [{low}, {high}]"
        raise ValueError(msg)
    return low + min(int(rng.random() * (high - low + 1)), high - low)


def shuffled(rng: RandomSource, items: Sequence[T]) -> list[T]:
    """Return a Fisher-Yates shuffled copy of ``items``."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = uniform_int(rng, 0, i)
        result[i], result[j] = result[j], result[i]
    return result
