"""Workshop: generate entities and commit them to the library.

Generation and commit are separate steps so a user can preview the result
before keeping it. A failed generation never touches the library.
"""

from __future__ import annotations

from collections.abc import Sequence

from pixel_rpg.core.exceptions import ValidationError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.generation.service import GenerationService
from pixel_rpg.library.manager import LibraryManager
from pixel_rpg.models.entities import Entity
from pixel_rpg.models.enums import EntityCategory


logger = get_logger(__name__)


class Workshop:
    """Generation front end bound to a library."""

    def __init__(self, library: LibraryManager, generator: GenerationService) -> None:
        self._library = library
        self._generator = generator

    async def generate(
        self,
        prompt: str,
        category: EntityCategory,
        tags: Sequence[str] = (),
    ) -> Entity:
        """Ask the generation service for a new entity.

        Args:
            prompt: Free-text description.
            category: Desired category.
            tags: Labels to attach.

        Returns:
            The generated entity (not yet in the library).

        Raises:
            ValidationError: If the prompt is blank.
            GenerationError: If the service fails.
        """
        text = prompt.strip()
        if not text:
            raise ValidationError("Prompt cannot be empty", field_name="prompt")

        unknown = [tag for tag in tags if tag not in self._library.labels]
        if unknown:
            logger.info("Generating with labels outside the vocabulary", labels=unknown)

        return await self._generator.generate_entity(text, category, list(tags))

    async def commit(self, entity: Entity, *, add_to_world: bool = False) -> bool:
        """Add a generated entity to the library.

        Args:
            entity: Entity returned by ``generate``.
            add_to_world: Also make it active in the world. Ignored for heroes.

        Returns:
            True if the entity was added (False if its id already exists).
        """
        added = await self._library.add_entity(entity)
        if added and add_to_world and entity.category.is_world_eligible:
            await self._library.set_world_membership([entity.id], True)
        return added


__all__ = [
    "Workshop",
]
