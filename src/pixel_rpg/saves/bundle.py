"""Import/export of the whole library, world and save slots as one JSON bundle.

Bundle shape::

    {
        "timestamp": "...",
        "labels": [str],
        "libraryNpcs": [Entity], "libraryEnemies": [Entity], "libraryHeroes": [Entity],
        "activeEntityIds": [str],
        "saveSlots": [SaveSlot | null],
        "autoSave": bool
    }

Older bundles may use ``libraryMonsters``/``monsters``/``npcs``/``heroes``
and per-slot ``worldMonsters``; they are normalized before validation.

Import is all-or-nothing: the whole payload is parsed and validated first,
and only then merged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from pixel_rpg.core.exceptions import ImportMalformedError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.library.manager import LibraryManager
from pixel_rpg.models.entities import Entity
from pixel_rpg.models.enums import EntityCategory
from pixel_rpg.models.game_state import SaveSlot
from pixel_rpg.saves.manager import SaveManager
from pixel_rpg.storage.migrations import normalize_bundle


logger = get_logger(__name__)

LIBRARY_FIELDS: dict[str, EntityCategory] = {
    "libraryNpcs": EntityCategory.NPC,
    "libraryEnemies": EntityCategory.ENEMY,
    "libraryHeroes": EntityCategory.HERO,
}

KNOWN_FIELDS = frozenset({*LIBRARY_FIELDS, "labels", "activeEntityIds", "saveSlots", "autoSave"})


@dataclass
class ImportSummary:
    """What an import changed."""

    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dropped_active_ids: list[str] = field(default_factory=list)
    replaced_world: bool = False
    replaced_labels: bool = False
    replaced_slots: bool = False
    unsaved_slots: list[int] = field(default_factory=list)
    autosave: bool | None = None


@dataclass
class _ParsedBundle:
    entities: list[Entity]
    labels: list[str] | None
    active_ids: list[str] | None
    save_slots: list[SaveSlot | None] | None
    autosave: bool | None


# =============================================================================
# Export
# =============================================================================


def export_bundle(library: LibraryManager, saves: SaveManager) -> dict[str, Any]:
    """Build a bundle from the current in-memory state."""
    previews = saves.previews()
    return {
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "labels": library.labels,
        **{
            name: [e.to_record() for e in library.entities(category)]
            for name, category in LIBRARY_FIELDS.items()
        },
        "activeEntityIds": library.active_ids,
        "saveSlots": [
            previews[slot].to_record() if previews.get(slot) else None for slot in saves.slots
        ],
        "autoSave": saves.autosave_enabled,
    }


def export_json(library: LibraryManager, saves: SaveManager) -> str:
    return json.dumps(export_bundle(library, saves), indent=2)


# =============================================================================
# Import
# =============================================================================


def _string_list(data: dict[str, Any], name: str) -> list[str] | None:
    if name not in data:
        return None
    value = data[name]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ImportMalformedError(f"'{name}' must be a list of strings")
    return value


def parse_bundle(payload: str | bytes | dict[str, Any]) -> _ParsedBundle:
    """Parse and validate a bundle without applying it.

    Raises:
        ImportMalformedError: If anything in the payload is invalid.
    """
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ImportMalformedError(f"Import file is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ImportMalformedError("Import file must contain a JSON object")

    data = normalize_bundle(payload)
    if not KNOWN_FIELDS & data.keys():
        raise ImportMalformedError(
            "Import file has no recognizable fields",
            details={"fields": sorted(data)[:10]},
        )

    entities: list[Entity] = []
    for name, category in LIBRARY_FIELDS.items():
        items = data.get(name)
        if items is None:
            continue
        if not isinstance(items, list):
            raise ImportMalformedError(f"'{name}' must be a list")
        for item in items:
            if not isinstance(item, dict):
                raise ImportMalformedError(f"'{name}' contains a non-object entry")
            try:
                entities.append(Entity.model_validate({"category": category.value, **item}))
            except PydanticValidationError as exc:
                raise ImportMalformedError(
                    f"Invalid entity in '{name}'",
                    details={"errors": exc.error_count()},
                ) from exc

    save_slots: list[SaveSlot | None] | None = None
    if "saveSlots" in data:
        raw_slots = data["saveSlots"]
        if not isinstance(raw_slots, list):
            raise ImportMalformedError("'saveSlots' must be a list")
        save_slots = []
        for index, raw in enumerate(raw_slots, start=1):
            if raw is None:
                save_slots.append(None)
                continue
            try:
                save_slots.append(SaveSlot.model_validate(raw))
            except PydanticValidationError as exc:
                raise ImportMalformedError(
                    f"Invalid save slot {index}",
                    details={"errors": exc.error_count()},
                ) from exc

    autosave = data.get("autoSave")
    if autosave is not None and not isinstance(autosave, bool):
        raise ImportMalformedError("'autoSave' must be a boolean")

    return _ParsedBundle(
        entities=entities,
        labels=_string_list(data, "labels"),
        active_ids=_string_list(data, "activeEntityIds"),
        save_slots=save_slots,
        autosave=autosave,
    )


async def import_bundle(
    payload: str | bytes | dict[str, Any],
    library: LibraryManager,
    saves: SaveManager,
) -> ImportSummary:
    """Merge a bundle into the library and replace world, labels and slots.

    Entities whose id already exists are skipped, never overwritten.
    World membership, labels and save slots present in the bundle replace
    the current ones wholesale.

    Raises:
        ImportMalformedError: If the payload is invalid; nothing is changed.
    """
    parsed = parse_bundle(payload)

    merge = await library.import_contents(
        parsed.entities,
        active_ids=parsed.active_ids,
        labels=parsed.labels,
    )
    summary = ImportSummary(
        added=merge.added,
        skipped=merge.skipped,
        dropped_active_ids=merge.dropped_active_ids,
        replaced_world=parsed.active_ids is not None,
        replaced_labels=parsed.labels is not None,
        autosave=parsed.autosave,
    )

    if parsed.save_slots is not None:
        summary.unsaved_slots = await saves.replace_slots(parsed.save_slots)
        summary.replaced_slots = True
    if parsed.autosave is not None:
        await saves.set_autosave(parsed.autosave)

    logger.info(
        "Bundle imported",
        added=len(summary.added),
        skipped=len(summary.skipped),
        replaced_slots=summary.replaced_slots,
        unsaved_slots=summary.unsaved_slots,
    )
    return summary


__all__ = [
    "ImportSummary",
    "export_bundle",
    "export_json",
    "parse_bundle",
    "import_bundle",
]
