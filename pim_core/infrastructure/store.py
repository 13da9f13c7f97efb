"""In-memory catalog store.

Persistence collaborator used by the application services: entity
lookup, relation queries, counting, saves and a begin/commit/rollback
transaction primitive. Entities are copied on the way in and out, so a
change only becomes visible to other readers once it is saved.

In production, this would be replaced with database persistence.
"""

import copy
from collections import defaultdict
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from pim_core.domain.base import AggregateRoot, Entity
from pim_core.domain.exceptions import EntityNotFoundError

logger = structlog.get_logger()

E = TypeVar("E", bound=Entity)

_Tables = dict[type, dict[str, Entity]]


class InMemoryCatalogStore:
    """In-memory store for catalog entities.

    Example usage:
        store = InMemoryCatalogStore()
        store.load(Product(id="p1", name="Jacket"))

        product = await store.require(Product, "p1")
        product.sku = "JKT-1"
        await store.save(product)
    """

    def __init__(self) -> None:
        self._tables: _Tables = defaultdict(dict)
        self._snapshots: list[_Tables] = []

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def load(self, *entities: Entity) -> None:
        """Put entities into the store as-is, without bumping versions."""
        for entity in entities:
            self._tables[type(entity)][entity.id] = self._detach(entity)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, entity_type: type[E], entity_id: str | None) -> E | None:
        """Get an entity by id.

        Args:
            entity_type: Entity class.
            entity_id: Entity id; None yields None.

        Returns:
            A copy of the stored entity, or None.
        """
        if entity_id is None:
            return None
        stored = self._tables[entity_type].get(entity_id)
        return copy.deepcopy(stored) if stored is not None else None

    async def require(self, entity_type: type[E], entity_id: str | None) -> E:
        """Get an entity by id or raise.

        Raises:
            EntityNotFoundError: If no such entity exists.
        """
        entity = await self.get(entity_type, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_type.__name__, str(entity_id))
        return entity

    async def find(
        self,
        entity_type: type[E],
        where: Callable[[E], bool] | None = None,
        **criteria: Any,
    ) -> list[E]:
        """Find entities matching attribute equality criteria.

        Args:
            entity_type: Entity class.
            where: Optional extra predicate.
            **criteria: Attribute name to expected value.

        Returns:
            Copies of matching entities in insertion order.
        """
        return [
            copy.deepcopy(entity)
            for entity in self._tables[entity_type].values()
            if self._matches(entity, criteria) and (where is None or where(entity))
        ]

    async def find_one(self, entity_type: type[E], **criteria: Any) -> E | None:
        """Find the first entity matching the criteria."""
        found = await self.find(entity_type, **criteria)
        return found[0] if found else None

    async def count(self, entity_type: type[E], **criteria: Any) -> int:
        """Count entities matching the criteria."""
        return sum(
            1 for entity in self._tables[entity_type].values() if self._matches(entity, criteria)
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, entity: E) -> E:
        """Insert or replace an entity.

        Aggregate roots get their version bumped when they already exist.

        Args:
            entity: Entity to persist.

        Returns:
            The same entity, with its version updated.
        """
        table = self._tables[type(entity)]
        existing = table.get(entity.id)
        if isinstance(entity, AggregateRoot) and isinstance(existing, AggregateRoot):
            entity.advance_version(existing.version)
        table[entity.id] = self._detach(entity)
        return entity

    async def delete(self, entity: Entity) -> bool:
        """Delete an entity.

        Returns:
            True if the entity existed.
        """
        return self._tables[type(entity)].pop(entity.id, None) is not None

    async def delete_where(self, entity_type: type[E], **criteria: Any) -> int:
        """Bulk delete entities matching the criteria.

        Returns:
            Number of deleted entities.
        """
        table = self._tables[entity_type]
        doomed = [key for key, entity in table.items() if self._matches(entity, criteria)]
        for key in doomed:
            del table[key]
        return len(doomed)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return bool(self._snapshots)

    async def begin(self) -> None:
        """Start a transaction; transactions nest."""
        self._snapshots.append(copy.deepcopy(self._tables))

    async def commit(self) -> None:
        """Commit the innermost transaction."""
        if not self._snapshots:
            raise RuntimeError("commit() called outside of a transaction")
        self._snapshots.pop()

    async def rollback(self) -> None:
        """Restore the state captured by the innermost ``begin``."""
        if not self._snapshots:
            raise RuntimeError("rollback() called outside of a transaction")
        self._tables = self._snapshots.pop()
        logger.debug("Store transaction rolled back", depth=len(self._snapshots))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _detach(entity: Entity) -> Entity:
        stored = copy.deepcopy(entity)
        if isinstance(stored, AggregateRoot):
            stored.collect_events()
        return stored

    @staticmethod
    def _matches(entity: Entity, criteria: dict[str, Any]) -> bool:
        return all(getattr(entity, name) == value for name, value in criteria.items())


# Global store instance
_catalog_store: InMemoryCatalogStore | None = None


def get_catalog_store() -> InMemoryCatalogStore:
    """Get catalog store singleton."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = InMemoryCatalogStore()
    return _catalog_store
