"""Prompt templates for entity and dialogue generation."""

from __future__ import annotations


# =============================================================================
# Entity Generation
# =============================================================================


PORTRAIT_PROMPT = (
    "A high-quality 16-bit pixel art sprite of a {prompt} for an RPG game. "
    "{tag_context} White background, full body, centered, retro style."
)


ENTITY_STATS_PROMPT = """Generate RPG stats and details for a {category} described as "{prompt}".
{tag_context}
Return ONLY a JSON object with this shape:
{{"name": str, "description": str, "stats": {{"maxHp": int, "maxMp": int, "atk": int, "def": int}}, "dialoguePrompt": str | null}}

Rules:
- HP between 50-200.
- MP between 0-100.
- ATK between 5-30.
- DEF between 0-20.
- Name should be creative.
- Description should be short (under 20 words).
- If NPC, include a 'dialoguePrompt' describing their personality for a roleplay chat.
"""


def tag_context(tags: list[str] | tuple[str, ...]) -> str:
    """Render the style/theme line for a list of tags."""
    if not tags:
        return ""
    return f"Style/Theme tags: {', '.join(tags)}."


# =============================================================================
# Dialogue
# =============================================================================


DEFAULT_PERSONA = "Friendly and helpful"


NPC_SYSTEM_PROMPT = """You are {name}, an RPG NPC.
Personality: {persona}.
Keep responses short (under 30 words) and in character for a retro RPG."""


__all__ = [
    "PORTRAIT_PROMPT",
    "ENTITY_STATS_PROMPT",
    "DEFAULT_PERSONA",
    "NPC_SYSTEM_PROMPT",
    "tag_context",
]
