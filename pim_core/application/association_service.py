"""Association application service.

Creates and removes association edges between products. When the
association type declares a backward type, every edge has a mirrored
edge and the pair is created and removed in one store transaction.
"""

from dataclasses import dataclass, field
from itertools import product as cartesian

import structlog

from pim_core.domain.base import new_id
from pim_core.domain.entities import AssociatedProduct, Association, Product
from pim_core.domain.exceptions import AssociationError, DomainError
from pim_core.infrastructure.store import InMemoryCatalogStore, get_catalog_store

logger = structlog.get_logger()


@dataclass
class PairError:
    """Error for one (main, related) pair of a bulk call."""

    main_product_id: str
    related_product_id: str
    message: str


@dataclass
class AssociationResult:
    """Result of a bulk association call."""

    edge_ids: list[str] = field(default_factory=list)
    errors: list[PairError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class AssociationService:
    """Application service for product associations."""

    def __init__(self, store: InMemoryCatalogStore) -> None:
        self.store = store

    async def associate(
        self,
        association_id: str,
        main_product_id: str,
        related_product_id: str,
    ) -> list[AssociatedProduct]:
        """Create an edge, and its mirror for bidirectional types.

        Both edges are validated before either is stored.

        Returns:
            The created edges, the requested one first.

        Raises:
            AssociationError: If the pair is invalid or already exists.
        """
        association = await self.store.require(Association, association_id)
        await self.store.require(Product, main_product_id)
        await self.store.require(Product, related_product_id)

        if main_product_id == related_product_id:
            raise AssociationError(
                main_product_id, related_product_id, "a product cannot be associated with itself"
            )

        edge = AssociatedProduct(
            id=new_id(),
            association_id=association.id,
            main_product_id=main_product_id,
            related_product_id=related_product_id,
        )
        edges = [edge]

        if association.backward_association_id:
            await self.store.require(Association, association.backward_association_id)
            mirror = AssociatedProduct(
                id=new_id(),
                association_id=association.backward_association_id,
                main_product_id=related_product_id,
                related_product_id=main_product_id,
                backward_association_id=association.id,
                backward_associated_product_id=edge.id,
                both_directions=True,
            )
            edge.backward_association_id = association.backward_association_id
            edge.backward_associated_product_id = mirror.id
            edge.both_directions = True
            edges.append(mirror)

        for candidate in edges:
            if await self.store.count(
                AssociatedProduct,
                association_id=candidate.association_id,
                main_product_id=candidate.main_product_id,
                related_product_id=candidate.related_product_id,
            ):
                raise AssociationError(
                    candidate.main_product_id,
                    candidate.related_product_id,
                    "products are already associated",
                )

        await self.store.begin()
        try:
            for candidate in edges:
                await self.store.save(candidate)
        except Exception:
            await self.store.rollback()
            raise
        await self.store.commit()

        logger.info(
            "Products associated",
            association_id=association.id,
            main_product_id=main_product_id,
            related_product_id=related_product_id,
            mirrored=len(edges) == 2,
        )
        return edges

    async def remove_edge(self, edge: AssociatedProduct) -> list[str]:
        """Delete an edge together with its mirror.

        Returns:
            Ids of the deleted edges.
        """
        doomed = [edge]
        mirror = await self._find_mirror(edge)
        if mirror is not None:
            doomed.append(mirror)

        await self.store.begin()
        try:
            for item in doomed:
                await self.store.delete(item)
        except Exception:
            await self.store.rollback()
            raise
        await self.store.commit()
        return [item.id for item in doomed]

    async def add_associated_products(
        self,
        association_id: str,
        main_product_ids: list[str],
        related_product_ids: list[str],
    ) -> AssociationResult:
        """Associate every main product with every related product.

        A failing pair is reported and does not stop the others.
        """
        result = AssociationResult()
        for main_id, related_id in cartesian(main_product_ids, related_product_ids):
            try:
                edges = await self.associate(association_id, main_id, related_id)
            except DomainError as e:
                result.errors.append(PairError(main_id, related_id, e.message))
                logger.warning(
                    "Association pair rejected",
                    association_id=association_id,
                    main_product_id=main_id,
                    related_product_id=related_id,
                    error=e.message,
                )
                continue
            result.edge_ids.extend(edge.id for edge in edges)
        return result

    async def remove_associated_products(
        self,
        association_id: str,
        main_product_ids: list[str],
        related_product_ids: list[str],
    ) -> AssociationResult:
        """Remove the edges between every main and related product."""
        result = AssociationResult()
        for main_id, related_id in cartesian(main_product_ids, related_product_ids):
            edge = await self.store.find_one(
                AssociatedProduct,
                association_id=association_id,
                main_product_id=main_id,
                related_product_id=related_id,
            )
            if edge is None:
                result.errors.append(PairError(main_id, related_id, "products are not associated"))
                continue
            result.edge_ids.extend(await self.remove_edge(edge))

        logger.info(
            "Associations removed",
            association_id=association_id,
            removed=len(result.edge_ids),
            failed=len(result.errors),
        )
        return result

    async def duplicate_associations(self, source: Product, target: Product) -> int:
        """Copy every edge of a product, in both roles, onto another.

        Mirrored pairs stay linked to each other in the copy.

        Returns:
            Number of created edges.
        """
        edges = await self.store.find(
            AssociatedProduct,
            where=lambda e: source.id in (e.main_product_id, e.related_product_id),
        )
        new_ids = {edge.id: new_id() for edge in edges}

        for edge in edges:
            await self.store.save(
                AssociatedProduct(
                    id=new_ids[edge.id],
                    association_id=edge.association_id,
                    main_product_id=target.id if edge.main_product_id == source.id else edge.main_product_id,
                    related_product_id=(
                        target.id if edge.related_product_id == source.id else edge.related_product_id
                    ),
                    backward_association_id=edge.backward_association_id,
                    backward_associated_product_id=new_ids.get(edge.backward_associated_product_id),
                    both_directions=edge.both_directions,
                )
            )
        return len(edges)

    async def _find_mirror(self, edge: AssociatedProduct) -> AssociatedProduct | None:
        if edge.backward_associated_product_id:
            mirror = await self.store.get(AssociatedProduct, edge.backward_associated_product_id)
            if mirror is not None:
                return mirror
        if not edge.backward_association_id:
            return None
        candidates = await self.store.find(AssociatedProduct, where=edge.is_mirror_of)
        return candidates[0] if candidates else None


def get_association_service(store: InMemoryCatalogStore | None = None) -> AssociationService:
    """Get association service instance."""
    return AssociationService(store or get_catalog_store())
