"""Tests for dice rolling mechanics."""

from __future__ import annotations

import pytest

from pixel_rpg.core.exceptions import ValidationError
from pixel_rpg.engine.dice import DiceRoller


@pytest.fixture
def dice_roller() -> DiceRoller:
    return DiceRoller()


class TestDiceRoller:
    """Tests for the DiceRoller class."""

    def test_bonus_in_range(self, dice_roller: DiceRoller) -> None:
        """Test bonus rolls stay within [0, range)."""
        results = {dice_roller.roll_bonus(5) for _ in range(200)}

        assert results <= {0, 1, 2, 3, 4}
        assert len(results) > 1

    def test_bonus_range_one(self, dice_roller: DiceRoller) -> None:
        assert dice_roller.roll_bonus(1) == 0

    @pytest.mark.parametrize("bonus_range", [0, -3])
    def test_empty_bonus_range(self, dice_roller: DiceRoller, bonus_range: int) -> None:
        assert dice_roller.roll_bonus(bonus_range) == 0

    def test_choose_covers_population(self, dice_roller: DiceRoller) -> None:
        population = ["slime", "goblin", "wolf"]

        picks = {dice_roller.choose(population) for _ in range(200)}

        assert picks == set(population)

    def test_choose_single(self, dice_roller: DiceRoller) -> None:
        assert dice_roller.choose(["only"]) == "only"

    def test_choose_empty_raises(self, dice_roller: DiceRoller) -> None:
        with pytest.raises(ValidationError):
            dice_roller.choose([])
