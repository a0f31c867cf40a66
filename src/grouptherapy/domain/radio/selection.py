"""
Selection strategies for live-fallback display metadata.

The live fallback shows a rotating demo track and a listener-count estimate.
Both are random by default; tests inject a seeded generator.
"""

import random
from typing import Optional, Protocol, Sequence, TypeVar

from .models import DemoTrack

T = TypeVar("T")

DEMO_TRACKS: tuple[DemoTrack, ...] = (
    DemoTrack("Midnight Drive", "Luna Wave", "Morning Therapy", "DJ Luna"),
    DemoTrack("Electric Dreams", "Neon Pulse", "Peak Time Sessions", "Neon Pulse"),
    DemoTrack("Deep Waters", "Aqua Dreams", "Weekend Warm-Up", "Aqua Dreams"),
)


class SelectionStrategy(Protocol):
    """Picks one entry from a non-empty sequence of candidates."""

    def pick(self, candidates: Sequence[T]) -> T: ...


class RandomSelection:
    """Uniform random selection, optionally from a seeded generator."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def pick(self, candidates: Sequence[T]) -> T:
        if not candidates:
            raise ValueError("Cannot pick from an empty candidate list")
        return candidates[self._rng.randrange(len(candidates))]


class ListenerCountEstimator:
    """Synthetic listener count for display.

    Returns minimum + randint(0, spread - 1). No accuracy contract.
    """

    def __init__(
        self,
        minimum: int = 100,
        spread: int = 50,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.minimum = minimum
        self.spread = max(1, spread)
        self._rng = rng or random.Random()

    def estimate(self) -> int:
        return self.minimum + self._rng.randrange(self.spread)
