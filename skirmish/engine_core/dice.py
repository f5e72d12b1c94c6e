"""
Dice - Uniform integer draws for every random decision in a match.

All randomness goes through a Dice object so a match can be replayed:
the same seed and the same ordered actions produce the same state.
"""

from __future__ import annotations
from typing import Iterable, Protocol
import random


class DiceExhausted(RuntimeError):
    """A scripted dice sequence ran out of values."""


class Dice(Protocol):
    """Anything that can roll a die."""

    draws: int

    def roll(self, sides: int) -> int:
        """Return a uniform integer in [1, sides]."""
        ...


class SeededDice:
    """
    Reproducible dice backed by random.Random.

    Each draw is seeded from (seed, draw index), so the stream position is
    just the draw count: persist (seed, draws) and resume() picks up exactly
    where the stream left off.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self.draws = 0

    def roll(self, sides: int) -> int:
        if sides < 1:
            raise ValueError(f"Die must have at least one side, got {sides}")
        rng = random.Random(f"{self.seed}:{self.draws}")
        self.draws += 1
        return rng.randint(1, sides)

    @classmethod
    def resume(cls, seed: int, draws: int) -> SeededDice:
        """Recreate a dice stream positioned after `draws` rolls."""
        dice = cls(seed)
        dice.draws = draws
        return dice


class FixedDice:
    """
    Scripted dice that return predetermined values in order.

    Values are clamped into [1, sides] so a script written for a D20 still
    behaves when a D100 percentage check consumes it.
    """

    def __init__(self, rolls: Iterable[int]):
        self._rolls = list(rolls)
        self.draws = 0

    @property
    def remaining(self) -> int:
        return len(self._rolls) - self.draws

    def roll(self, sides: int) -> int:
        if self.draws >= len(self._rolls):
            raise DiceExhausted(f"No scripted roll left (used {self.draws})")
        value = self._rolls[self.draws]
        self.draws += 1
        return max(1, min(sides, value))


def percent_check(dice: Dice, percent: int) -> tuple[bool, int]:
    """Succeed with the given probability; returns (success, roll)."""
    roll = dice.roll(100)
    return roll <= percent, roll
