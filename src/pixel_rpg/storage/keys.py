"""Logical record names and their legacy aliases.

Each persisted record lives under one current name. Older releases stored
some records under different names; those are listed here so the
PersistenceEngine can adopt them when the current name is absent.

Names are unprefixed; the engine applies the configured namespace prefix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RecordKey:
    """A logical record and where older versions stored it.

    Attributes:
        name: Current (unprefixed) key name.
        legacy_names: Older key names, tried in order.
        combine_legacy: When set, every legacy name is read and the values
            are merged into one record by this function instead of taking
            the first hit.
    """

    name: str
    legacy_names: tuple[str, ...] = ()
    combine_legacy: Callable[[list[Any]], Any] | None = None


def ids_from_entity_lists(values: list[Any]) -> list[str]:
    """Extract entity ids from legacy per-category world lists.

    Old saves kept the active world as full entity lists (``world_npcs``,
    ``world_monsters``). Only the ids matter now.
    """
    ids: dict[str, None] = {}
    for value in values:
        if not isinstance(value, list):
            continue
        for item in value:
            if isinstance(item, dict) and isinstance(item.get("id"), str):
                ids[item["id"]] = None
            elif isinstance(item, str):
                ids[item] = None
    return list(ids)


LIBRARY_NPCS = RecordKey("library_npcs", ("npcs",))
LIBRARY_ENEMIES = RecordKey("library_enemies", ("library_monsters", "monsters"))
LIBRARY_HEROES = RecordKey("library_heroes")
LABELS = RecordKey("labels")
ACTIVE_WORLD_IDS = RecordKey(
    "active_world_ids",
    ("world_npcs", "world_monsters"),
    combine_legacy=ids_from_entity_lists,
)
AUTOSAVE = RecordKey("autosave")


def save_slot_key(slot: int) -> RecordKey:
    """Key for a numbered save slot."""
    return RecordKey(f"save_slot_{slot}", (f"save_{slot}",))


__all__ = [
    "RecordKey",
    "ids_from_entity_lists",
    "LIBRARY_NPCS",
    "LIBRARY_ENEMIES",
    "LIBRARY_HEROES",
    "LABELS",
    "ACTIVE_WORLD_IDS",
    "AUTOSAVE",
    "save_slot_key",
]
