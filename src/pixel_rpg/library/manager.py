"""Entity library, world configuration and label vocabulary.

The library owns every generated entity, partitioned by category. The
world configuration is the ordered set of NPC/ENEMY ids that populate a
new game. Both are kept in memory and written through the
PersistenceEngine after each mutation; a failed write leaves the in-memory
state as the source of truth (degraded persistence).

Invariants:
    * An id is unique across all three partitions.
    * Every active id names an existing NPC or ENEMY entity.
    * Removing an entity removes it from the world in the same step.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from pixel_rpg.core.config import GameSettings
from pixel_rpg.core.exceptions import PersistenceError, ValidationError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.models.entities import Entity
from pixel_rpg.models.enums import EntityCategory
from pixel_rpg.storage import keys
from pixel_rpg.storage.engine import PersistenceEngine
from pixel_rpg.storage.keys import RecordKey
from pixel_rpg.storage.migrations import normalize_entity_list


logger = get_logger(__name__)

PARTITION_KEYS: dict[EntityCategory, RecordKey] = {
    EntityCategory.NPC: keys.LIBRARY_NPCS,
    EntityCategory.ENEMY: keys.LIBRARY_ENEMIES,
    EntityCategory.HERO: keys.LIBRARY_HEROES,
}


@dataclass
class MembershipResult:
    """Outcome of a world membership change.

    Attributes:
        changed: Ids that were actually added or removed.
        rejected: Ids refused as invalid (heroes, unknown ids).
    """

    changed: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


@dataclass
class ImportResult:
    """Outcome of merging imported entities into the library."""

    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dropped_active_ids: list[str] = field(default_factory=list)


class LibraryManager:
    """Owner of the entity library, world config and labels.

    Args:
        engine: Persistence engine used for every write.
        settings: Game settings (default label vocabulary).
    """

    def __init__(self, engine: PersistenceEngine, settings: GameSettings) -> None:
        self._engine = engine
        self._settings = settings
        self._partitions: dict[EntityCategory, dict[str, Entity]] = {
            category: {} for category in EntityCategory
        }
        self._active: dict[str, None] = {}
        self._labels: dict[str, None] = dict.fromkeys(settings.default_labels)

    # =========================================================================
    # Loading
    # =========================================================================

    async def load(self) -> None:
        """Load every record, migrating legacy keys where needed.

        Records that cannot be read are logged and left at their in-memory
        defaults; the storage banner is raised by the engine.
        """
        for category, record in PARTITION_KEYS.items():
            raw = await self._read(record, normalize_entity_list)
            self._partitions[category] = {}
            for entity in self._parse_entities(raw, category):
                if self._find(entity.id) is not None:
                    logger.warning("Duplicate entity id ignored", entity_id=entity.id)
                    continue
                self._partitions[entity.category][entity.id] = entity

        labels = await self._read(keys.LABELS)
        if isinstance(labels, list):
            self._labels = dict.fromkeys(str(label) for label in labels if label)
        else:
            self._labels = dict.fromkeys(self._settings.default_labels)

        active = await self._read(keys.ACTIVE_WORLD_IDS)
        self._active = {}
        if isinstance(active, list):
            for entity_id in active:
                if self._is_world_candidate(entity_id):
                    self._active[entity_id] = None
                else:
                    logger.warning("Dropping stale active id", entity_id=entity_id)

        logger.info("Library loaded", **self.counts(), active=len(self._active))

    async def _read(self, record: RecordKey, normalize: Any = None) -> Any | None:
        try:
            return await self._engine.read_record(record, normalize)
        except PersistenceError as exc:
            logger.warning("Record unavailable, using defaults", record=record.name, error=str(exc))
            return None

    @staticmethod
    def _parse_entities(raw: Any, category: EntityCategory) -> list[Entity]:
        if not isinstance(raw, list):
            return []
        entities = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            item = {"category": category.value, **item}
            try:
                entities.append(Entity.model_validate(item))
            except PydanticValidationError as exc:
                logger.warning("Skipping invalid entity record", error=str(exc))
        return entities

    # =========================================================================
    # Queries
    # =========================================================================

    def _find(self, entity_id: str) -> Entity | None:
        for partition in self._partitions.values():
            if entity_id in partition:
                return partition[entity_id]
        return None

    def _is_world_candidate(self, entity_id: Any) -> bool:
        entity = self._find(entity_id) if isinstance(entity_id, str) else None
        return entity is not None and entity.category.is_world_eligible

    def get(self, entity_id: str) -> Entity | None:
        """Look up an entity by id in any partition."""
        return self._find(entity_id)

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and self._find(entity_id) is not None

    def __len__(self) -> int:
        return sum(len(p) for p in self._partitions.values())

    def entities(
        self,
        category: EntityCategory | None = None,
        tag: str | None = None,
    ) -> list[Entity]:
        """List entities in insertion order, optionally filtered.

        Args:
            category: Only this partition.
            tag: Only entities carrying this tag.
        """
        categories = [category] if category else list(EntityCategory)
        result = [e for c in categories for e in self._partitions[c].values()]
        if tag is not None:
            result = [e for e in result if tag in e.tags]
        return result

    def all_tags(self) -> list[str]:
        """Every tag used by any entity, first-seen order."""
        tags: dict[str, None] = {}
        for entity in self.entities():
            tags.update(dict.fromkeys(entity.tags))
        return list(tags)

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    @property
    def active_ids(self) -> list[str]:
        return list(self._active)

    def is_active(self, entity_id: str) -> bool:
        return entity_id in self._active

    def active_entities(self, category: EntityCategory) -> list[Entity]:
        """Active entities of one category, in membership order."""
        return [
            entity
            for entity_id in self._active
            if (entity := self._find(entity_id)) is not None and entity.category is category
        ]

    def counts(self) -> dict[str, int]:
        return {category.value.lower(): len(p) for category, p in self._partitions.items()}

    # =========================================================================
    # Entity Mutations
    # =========================================================================

    async def add_entity(self, entity: Entity) -> bool:
        """Add an entity to the partition matching its category.

        Adding an id that already exists anywhere in the library is a
        no-op.

        Returns:
            True if the entity was added.
        """
        if self._find(entity.id) is not None:
            logger.debug("Entity already in library", entity_id=entity.id)
            return False
        self._partitions[entity.category][entity.id] = entity
        logger.info("Entity added", entity_id=entity.id, category=entity.category.value)
        await self._persist_partition(entity.category)
        return True

    async def remove_entities(self, entity_ids: Iterable[str]) -> int:
        """Remove entities from the library and the world.

        Returns:
            Number of entities removed.
        """
        removed = 0
        touched: set[EntityCategory] = set()
        world_changed = False
        for entity_id in dict.fromkeys(entity_ids):
            for category, partition in self._partitions.items():
                if partition.pop(entity_id, None) is not None:
                    removed += 1
                    touched.add(category)
            if entity_id in self._active:
                del self._active[entity_id]
                world_changed = True

        for category in touched:
            await self._persist_partition(category)
        if world_changed:
            await self._persist_active()
        logger.info("Entities removed", count=removed)
        return removed

    async def set_world_membership(self, entity_ids: Iterable[str], active: bool) -> MembershipResult:
        """Add ids to or remove ids from the world configuration.

        Heroes and unknown ids cannot join the world; they are reported in
        ``rejected`` and otherwise ignored.

        Args:
            entity_ids: Ids to change.
            active: True to add, False to remove.

        Returns:
            Which ids changed and which were rejected.
        """
        result = MembershipResult()
        for entity_id in dict.fromkeys(entity_ids):
            if active:
                if not self._is_world_candidate(entity_id):
                    logger.warning("Rejected world membership", entity_id=entity_id)
                    result.rejected.append(entity_id)
                    continue
                if entity_id not in self._active:
                    self._active[entity_id] = None
                    result.changed.append(entity_id)
            elif entity_id in self._active:
                del self._active[entity_id]
                result.changed.append(entity_id)

        if result.changed:
            await self._persist_active()
        return result

    # =========================================================================
    # Labels
    # =========================================================================

    async def create_label(self, name: str) -> bool:
        """Add a label to the vocabulary.

        Returns:
            True if the label is new.

        Raises:
            ValidationError: If the name is blank.
        """
        label = name.strip()
        if not label:
            raise ValidationError("Label name cannot be empty", field_name="label")
        if label in self._labels:
            return False
        self._labels[label] = None
        await self._persist_labels()
        return True

    async def delete_label(self, name: str) -> bool:
        """Remove a label from the vocabulary.

        Entities already tagged with it keep the tag.
        """
        if name not in self._labels:
            return False
        del self._labels[name]
        await self._persist_labels()
        return True

    # =========================================================================
    # Bulk Replacement
    # =========================================================================

    async def import_contents(
        self,
        entities: Iterable[Entity],
        *,
        active_ids: list[str] | None = None,
        labels: list[str] | None = None,
    ) -> ImportResult:
        """Merge entities by id and replace world/labels wholesale.

        Existing entities are never overwritten. Active ids that do not
        name an NPC/ENEMY after the merge are dropped. All in-memory
        changes are applied before any write starts.
        """
        result = ImportResult()
        touched: set[EntityCategory] = set()
        for entity in entities:
            if self._find(entity.id) is not None:
                result.skipped.append(entity.id)
                continue
            self._partitions[entity.category][entity.id] = entity
            touched.add(entity.category)
            result.added.append(entity.id)

        if active_ids is not None:
            self._active = {}
            for entity_id in active_ids:
                if self._is_world_candidate(entity_id):
                    self._active[entity_id] = None
                else:
                    result.dropped_active_ids.append(entity_id)
            if result.dropped_active_ids:
                logger.warning("Dropped invalid imported active ids", ids=result.dropped_active_ids)

        if labels is not None:
            self._labels = dict.fromkeys(label for label in labels if label)

        for category in touched:
            await self._persist_partition(category)
        if active_ids is not None:
            await self._persist_active()
        if labels is not None:
            await self._persist_labels()
        return result

    # =========================================================================
    # Persistence
    # =========================================================================

    async def _persist_partition(self, category: EntityCategory) -> None:
        records = [e.to_record() for e in self._partitions[category].values()]
        await self._engine.set(PARTITION_KEYS[category].name, records)

    async def _persist_active(self) -> None:
        await self._engine.set(keys.ACTIVE_WORLD_IDS.name, list(self._active))

    async def _persist_labels(self) -> None:
        await self._engine.set(keys.LABELS.name, list(self._labels))


__all__ = [
    "LibraryManager",
    "MembershipResult",
    "ImportResult",
    "PARTITION_KEYS",
]
