"""Combat math."""

from __future__ import annotations

from dataclasses import dataclass

from pixel_rpg.core.constants import MIN_DAMAGE


def compute_damage(attack: int, defense: int, bonus: int) -> int:
    """Damage of one hit: ``max(1, attack - defense + bonus)``."""
    return max(MIN_DAMAGE, attack - defense + bonus)


@dataclass(frozen=True)
class HitResult:
    """One resolved hit.

    Attributes:
        attacker: Display name of the attacker.
        damage: Damage dealt.
        bonus: Random bonus that went into the damage.
        remaining_hp: Target HP after the hit.
    """

    attacker: str
    damage: int
    bonus: int
    remaining_hp: int

    @property
    def is_lethal(self) -> bool:
        return self.remaining_hp == 0


__all__ = [
    "compute_damage",
    "HitResult",
]
