"""Content generation: service protocol, OpenAI implementation, parsing."""

from __future__ import annotations

from pixel_rpg.generation.parsing import entity_from_payload, parse_json_object, strip_code_fences
from pixel_rpg.generation.service import GenerationService, OpenAIGenerationService


__all__ = [
    "GenerationService",
    "OpenAIGenerationService",
    "entity_from_payload",
    "parse_json_object",
    "strip_code_fences",
]
