"""Random rolls for combat bonuses and encounter draws.

All randomness in the engine goes through a ``Roller`` so tests can swap
in a deterministic one. The default implementation rolls with the d20
library.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar

import d20

from pixel_rpg.core.exceptions import ValidationError
from pixel_rpg.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class Roller(Protocol):
    """Source of the engine's random numbers."""

    def roll_bonus(self, bonus_range: int) -> int:
        """Uniform integer in ``[0, bonus_range)``; 0 when the range is empty."""
        ...

    def choose(self, population: Sequence[T]) -> T:
        """Uniformly pick one element of a non-empty sequence."""
        ...


class DiceRoller:
    """Roller backed by d20 dice expressions.

    Example:
        >>> roller = DiceRoller()
        >>> 0 <= roller.roll_bonus(5) < 5
        True
    """

    def _roll(self, expression: str) -> int:
        result: d20.RollResult = d20.roll(expression)
        logger.debug("Dice rolled", expression=expression, total=result.total)
        return result.total

    def roll_bonus(self, bonus_range: int) -> int:
        if bonus_range <= 0:
            return 0
        # 1dN-1 => uniform over [0, N)
        return self._roll(f"1d{bonus_range}-1")

    def choose(self, population: Sequence[T]) -> T:
        """Pick one element uniformly.

        Raises:
            ValidationError: If the population is empty.
        """
        if not population:
            raise ValidationError("Cannot choose from an empty population", field_name="population")
        if len(population) == 1:
            return population[0]
        return population[self._roll(f"1d{len(population)}") - 1]


__all__ = [
    "Roller",
    "DiceRoller",
]
