"""Field-rename normalization for persisted records.

Historical records may carry retired field names for renamed concepts
(``monsters`` became ``enemies``, ``imageBase64`` became ``portraitRef``).
Normalization runs once, right after a record is read, and copies a legacy
field into its current name only when the current name is absent. It never
removes fields and is idempotent.

The functions accept arbitrary JSON trees and return new objects; anything
that is not the expected shape is passed through untouched so validation
can reject it later with a proper error.
"""

from __future__ import annotations

from typing import Any


ENTITY_FIELD_RENAMES: tuple[tuple[str, str], ...] = (
    ("type", "category"),
    ("imageBase64", "portraitRef"),
    ("dialoguePrompt", "dialoguePersona"),
)

CATEGORY_VALUE_RENAMES: dict[str, str] = {
    "MONSTER": "ENEMY",
}

PLAYER_FIELD_RENAMES: tuple[tuple[str, str], ...] = (
    ("imageBase64", "portraitRef"),
)

SAVE_SLOT_FIELD_RENAMES: tuple[tuple[str, str], ...] = (
    ("worldMonsters", "worldEnemies"),
)

BUNDLE_FIELD_RENAMES: tuple[tuple[str, str], ...] = (
    ("libraryMonsters", "libraryEnemies"),
    ("monsters", "libraryEnemies"),
    ("npcs", "libraryNpcs"),
    ("heroes", "libraryHeroes"),
)


def rename_fields(record: dict[str, Any], renames: tuple[tuple[str, str], ...]) -> dict[str, Any]:
    """Copy legacy fields into their current names where missing.

    Args:
        record: Source mapping (not modified).
        renames: (legacy, current) pairs, applied in order.

    Returns:
        A shallow copy with current names filled in.
    """
    result = dict(record)
    for legacy, current in renames:
        if current not in result and legacy in result:
            result[current] = result[legacy]
    return result


def normalize_entity(record: Any) -> Any:
    """Normalize one entity record."""
    if not isinstance(record, dict):
        return record
    result = rename_fields(record, ENTITY_FIELD_RENAMES)
    category = result.get("category")
    if isinstance(category, str) and category in CATEGORY_VALUE_RENAMES:
        result["category"] = CATEGORY_VALUE_RENAMES[category]
    return result


def normalize_entity_list(value: Any) -> Any:
    """Normalize every entity in a list record."""
    if not isinstance(value, list):
        return value
    return [normalize_entity(item) for item in value]


def normalize_player(record: Any) -> Any:
    if not isinstance(record, dict):
        return record
    return rename_fields(record, PLAYER_FIELD_RENAMES)


def normalize_save_slot(record: Any) -> Any:
    """Normalize a save slot, including its embedded world collections."""
    if not isinstance(record, dict):
        return record
    result = rename_fields(record, SAVE_SLOT_FIELD_RENAMES)
    if "player" in result:
        result["player"] = normalize_player(result["player"])
    for field in ("worldNpcs", "worldEnemies"):
        if field in result:
            result[field] = normalize_entity_list(result[field])
    return result


def normalize_bundle(record: Any) -> Any:
    """Normalize an import bundle and every save slot it embeds."""
    if not isinstance(record, dict):
        return record
    result = rename_fields(record, BUNDLE_FIELD_RENAMES)
    for field in ("libraryNpcs", "libraryEnemies", "libraryHeroes"):
        if field in result:
            result[field] = normalize_entity_list(result[field])
    slots = result.get("saveSlots")
    if isinstance(slots, list):
        result["saveSlots"] = [normalize_save_slot(slot) for slot in slots]
    return result


__all__ = [
    "ENTITY_FIELD_RENAMES",
    "CATEGORY_VALUE_RENAMES",
    "SAVE_SLOT_FIELD_RENAMES",
    "BUNDLE_FIELD_RENAMES",
    "rename_fields",
    "normalize_entity",
    "normalize_entity_list",
    "normalize_player",
    "normalize_save_slot",
    "normalize_bundle",
]
