"""Turn raw model output into validated entities.

Models often wrap JSON in Markdown fences or omit fields. Fences are
stripped; missing fields fall back to conservative defaults. Output that is
not a JSON object at all raises ``GenerationError``, since committing a
made-up entity would hide the failure.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from pixel_rpg.core.exceptions import GenerationError
from pixel_rpg.models.entities import Entity, Stats
from pixel_rpg.models.enums import EntityCategory


FALLBACK_NAME = "Unknown Entity"
FALLBACK_DESCRIPTION = "A mysterious entity."
FALLBACK_MAX_HP = 50
FALLBACK_MAX_MP = 0
FALLBACK_ATK = 5
FALLBACK_DEF = 0

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences around a JSON reply."""
    return _FENCE_RE.sub("", text).strip()


def parse_json_object(text: str | None) -> dict[str, Any]:
    """Parse a model reply into a JSON object.

    Raises:
        GenerationError: If the reply is not a JSON object.
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned or "{}")
    except json.JSONDecodeError as exc:
        raise GenerationError(
            "Generation service returned unparseable data",
            details={"preview": cleaned[:80]},
        ) from exc
    if not isinstance(data, dict):
        raise GenerationError(
            "Generation service returned a non-object payload",
            details={"type": type(data).__name__},
        )
    return data


def _positive_int(value: Any, fallback: int) -> int:
    # Zero and missing both mean "use the fallback"
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return fallback
    return int(value)


def entity_from_payload(
    data: dict[str, Any],
    *,
    category: EntityCategory,
    tags: list[str] | tuple[str, ...] = (),
    prompt: str | None = None,
    portrait_ref: str = "",
) -> Entity:
    """Build an entity from a parsed generation payload.

    Args:
        data: Parsed JSON object from the model.
        category: Requested entity category.
        tags: Labels chosen at generation time.
        prompt: The user prompt, kept as ``original_prompt``.
        portrait_ref: Portrait reference, if one was generated.

    Returns:
        A fresh entity with a new id.

    Raises:
        GenerationError: If the payload cannot form a valid entity.
    """
    raw_stats = data.get("stats") if isinstance(data.get("stats"), dict) else {}
    max_hp = _positive_int(raw_stats.get("maxHp"), FALLBACK_MAX_HP)
    max_mp = _positive_int(raw_stats.get("maxMp"), FALLBACK_MAX_MP)

    name = data.get("name")
    description = data.get("description")
    persona = data.get("dialoguePrompt") or data.get("dialoguePersona")

    try:
        return Entity(
            name=str(name)[:100] if name else FALLBACK_NAME,
            description=str(description) if description else FALLBACK_DESCRIPTION,
            category=category,
            portrait_ref=portrait_ref,
            stats=Stats(
                hp=max_hp,
                max_hp=max_hp,
                mp=max_mp,
                max_mp=max_mp,
                atk=_positive_int(raw_stats.get("atk"), FALLBACK_ATK),
                defense=_positive_int(raw_stats.get("def"), FALLBACK_DEF),
            ),
            dialogue_persona=str(persona) if persona else None,
            tags=tuple(tags),
            original_prompt=prompt,
        )
    except PydanticValidationError as exc:
        raise GenerationError(
            "Generated entity failed validation",
            details={"errors": exc.error_count()},
        ) from exc


__all__ = [
    "strip_code_fences",
    "parse_json_object",
    "entity_from_payload",
]
