"""Entity, stat and player models for Pixel RPG.

Entities are generated character templates owned by the library. They are
frozen: a battle never mutates the library original, it works on the
player's own ``Stats`` and a separate enemy HP counter. ``Stats`` is frozen
as well, so every HP/MP change publishes a new, already clamped value.

All models serialize with camelCase aliases (``maxHp``, ``portraitRef``,
``dialoguePersona``) because that is the persisted and import/export
format.

Example:
    >>> stats = Stats(hp=120, max_hp=100)
    >>> stats.hp
    100
    >>> stats.with_resources(hp=-5).hp
    0
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pixel_rpg.core.config import GameSettings
from pixel_rpg.core.exceptions import ValidationError
from pixel_rpg.models.enums import EntityCategory


def _lookup(data: dict[str, Any], field_name: str) -> Any:
    """Read a field from raw input by field name or camelCase alias."""
    if field_name in data:
        return data[field_name]
    return data.get(to_camel(field_name))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Stats
# =============================================================================


class Stats(BaseModel):
    """Combat statistics shared by entities and the player.

    ``hp`` and ``mp`` are clamped into ``[0, max]`` on construction, so an
    instance can never expose an overshoot. A missing current value means
    "full".

    Attributes:
        hp: Current hit points.
        max_hp: Maximum hit points.
        mp: Current magic points.
        max_mp: Maximum magic points.
        atk: Attack power.
        defense: Defense (serialized as ``def``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    hp: int = Field(default=0, ge=0)
    max_hp: int = Field(ge=0)
    mp: int = Field(default=0, ge=0)
    max_mp: int = Field(default=0, ge=0)
    atk: int = Field(default=0, ge=0)
    defense: int = Field(default=0, ge=0, alias="def")

    @model_validator(mode="before")
    @classmethod
    def clamp_resources(cls, data: Any) -> Any:
        """Fill missing current values and clamp them into range."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for current, maximum in (("hp", "max_hp"), ("mp", "max_mp")):
            max_value = _lookup(data, maximum)
            cur_value = data.get(current)
            if not _is_number(max_value):
                continue
            if cur_value is None:
                data[current] = max_value
            elif _is_number(cur_value):
                data[current] = max(0, min(cur_value, max_value))
        return data

    @property
    def is_depleted(self) -> bool:
        """True when HP has reached zero."""
        return self.hp == 0

    def with_resources(self, *, hp: int | None = None, mp: int | None = None) -> Stats:
        """Return a copy with new current HP/MP, clamped into range.

        Args:
            hp: New current HP, or None to keep it.
            mp: New current MP, or None to keep it.

        Returns:
            A new validated Stats instance.
        """
        values = self.model_dump()
        if hp is not None:
            values["hp"] = hp
        if mp is not None:
            values["mp"] = mp
        return Stats.model_validate(values)

    def restored(self) -> Stats:
        """Return a copy with HP and MP fully restored."""
        return self.with_resources(hp=self.max_hp, mp=self.max_mp)


# =============================================================================
# Entity
# =============================================================================


class Entity(BaseModel):
    """A generated character template.

    Attributes:
        id: Unique, immutable identifier.
        name: Display name.
        description: Short lore blurb.
        category: NPC, ENEMY or HERO.
        portrait_ref: Portrait reference (base64 image data or URL).
        stats: Base statistics.
        dialogue_persona: Personality prompt used for NPC conversations.
        tags: Labels attached at generation time.
        original_prompt: The user prompt that produced this entity.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(default_factory=lambda: str(uuid4()), min_length=1)
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    category: EntityCategory
    portrait_ref: str = ""
    stats: Stats
    dialogue_persona: str | None = None
    tags: tuple[str, ...] = ()
    original_prompt: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, value: Any) -> Any:
        """Drop duplicate tags, keeping first-seen order."""
        if value is None:
            return ()
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(dict.fromkeys(value))
        return value

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    def copy_for_world(self) -> Entity:
        """Return an independent value copy for a world snapshot."""
        return self.model_copy(deep=True)


# =============================================================================
# Player
# =============================================================================


class Player(BaseModel):
    """The character the user controls during play.

    Stats are replaced wholesale on every change, which keeps the
    HP/MP clamp invariant at every observable instant.

    Attributes:
        name: Player name.
        stats: Current statistics.
        inventory: Ordered item ids.
        portrait_ref: Portrait copied from the chosen hero, if any.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    name: str = Field(min_length=1, max_length=100)
    stats: Stats
    inventory: list[str] = Field(default_factory=list)
    portrait_ref: str | None = None

    @classmethod
    def default(cls, settings: GameSettings) -> Player:
        """Build the stock player used when no hero is chosen."""
        return cls(
            name=settings.default_player_name,
            stats=Stats(
                max_hp=settings.default_player_hp,
                max_mp=settings.default_player_mp,
                atk=settings.default_player_atk,
                defense=settings.default_player_def,
            ),
        )

    @classmethod
    def from_hero(cls, hero: Entity, *, name: str | None = None) -> Player:
        """Create a player from a HERO entity.

        Stats and portrait are copied in; the hero itself is untouched.

        Args:
            hero: The hero template.
            name: Optional player name; defaults to the hero's name.

        Returns:
            A fresh Player at full HP and MP.

        Raises:
            ValidationError: If the entity is not a HERO.
        """
        if hero.category is not EntityCategory.HERO:
            raise ValidationError(
                "Only HERO entities can be used as a character origin",
                field_name="category",
                invalid_value=hero.category.value,
            )
        return cls(
            name=name or hero.name,
            stats=hero.stats.restored(),
            portrait_ref=hero.portrait_ref or None,
        )

    @property
    def is_defeated(self) -> bool:
        return self.stats.is_depleted

    def take_damage(self, amount: int) -> int:
        """Subtract HP, clamped at zero. Returns the HP actually lost."""
        before = self.stats.hp
        self.stats = self.stats.with_resources(hp=before - max(0, amount))
        return before - self.stats.hp

    def recover_hp(self, amount: int) -> int:
        """Add HP, clamped at max. Returns the HP actually gained."""
        before = self.stats.hp
        self.stats = self.stats.with_resources(hp=before + max(0, amount))
        return self.stats.hp - before

    def spend_mp(self, amount: int) -> None:
        """Spend MP.

        Raises:
            ValidationError: If the player cannot afford it.
        """
        if amount > self.stats.mp:
            raise ValidationError(
                "Not enough MP",
                field_name="mp",
                invalid_value=self.stats.mp,
            )
        self.stats = self.stats.with_resources(mp=self.stats.mp - amount)

    def restore(self) -> None:
        """Fully restore HP and MP."""
        self.stats = self.stats.restored()

    def revive(self) -> None:
        """Bring a defeated player back at half max HP."""
        self.stats = self.stats.with_resources(hp=max(1, self.stats.max_hp // 2))

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Dialogue
# =============================================================================


class ChatMessage(BaseModel):
    """One line of an NPC conversation."""

    model_config = ConfigDict(frozen=True)

    sender: str
    text: str


__all__ = [
    "Stats",
    "Entity",
    "Player",
    "ChatMessage",
]
