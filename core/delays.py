"""
Think/eat duration sources.

Each philosopher owns its own source so runs are reproducible per seed.
Durations are integer milliseconds (simulated or wall-clock, depending on
the runtime driving the philosopher).
"""
import random
from itertools import cycle
from typing import Sequence, Tuple

# The original dinner sleeps a random 0..2000 ms for both phases.
DEFAULT_THINK = (1, 2000)
DEFAULT_EAT = (1, 2000)


class RandomDelays:
    """Uniform integer delays drawn from a private, seeded generator."""

    def __init__(self, seed: int = 0,
                 think: Tuple[int, int] = DEFAULT_THINK,
                 eat: Tuple[int, int] = DEFAULT_EAT):
        for name, (lo, hi) in (('think', think), ('eat', eat)):
            if lo < 0 or hi < lo:
                raise ValueError(f"Invalid {name} range: {(lo, hi)}")
        self.rng = random.Random(seed)
        self.think_range = think
        self.eat_range = eat

    def think(self) -> int:
        return self.rng.randint(*self.think_range)

    def eat(self) -> int:
        return self.rng.randint(*self.eat_range)


class FixedDelays:
    """Replays fixed duration tables, wrapping around at the end."""

    def __init__(self, think: Sequence[int], eat: Sequence[int]):
        if not think or not eat:
            raise ValueError("Duration tables must not be empty")
        self._think = cycle(think)
        self._eat = cycle(eat)

    def think(self) -> int:
        return next(self._think)

    def eat(self) -> int:
        return next(self._eat)
