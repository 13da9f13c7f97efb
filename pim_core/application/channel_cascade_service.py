"""Channel cascade application service.

Keeps product channel relations and category memberships consistent:
- Granting and retracting channels inherited from category trees
- Applying the catalog change policy to existing memberships
- Validating and performing direct category links
- Direct channel relations and their activity flags
"""

from dataclasses import dataclass

import structlog

from pim_core.domain.base import new_id
from pim_core.domain.entities import Category, Channel, Product, ProductCategory, ProductChannel
from pim_core.domain.exceptions import (
    CatalogCategoryMismatchError,
    CategoryAlreadyRelatedError,
    CategoryCatalogMismatchError,
    ChannelAlreadyRelatedError,
    ChannelNotRelatedError,
    InvalidInputError,
    NonLeafCategoryLinkError,
)
from pim_core.domain.value_objects import CatalogChangeBehavior, CategoryGroup
from pim_core.application.ordering_service import OrderingEngine
from pim_core.infrastructure.config import Settings, settings as default_settings
from pim_core.infrastructure.position_store import StorePositionStore
from pim_core.infrastructure.store import InMemoryCatalogStore, get_catalog_store

logger = structlog.get_logger()


@dataclass
class ChannelRelationData:
    """Flags of one product channel relation."""

    is_active: bool
    from_category_tree: bool


class ChannelCascadeManager:
    """Derives channel relations from category tree membership.

    A root category declares the channels of its whole tree. Products
    placed anywhere in the tree get those channels with the
    ``from_category_tree`` flag; the flag is what allows the relation to
    be retracted again without touching direct grants.
    """

    def __init__(
        self,
        store: InMemoryCatalogStore,
        ordering: OrderingEngine | None = None,
        config: Settings | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            store: Catalog store.
            ordering: Ordering engine for category positions.
            config: Settings with the catalog policies.
        """
        self.store = store
        self.config = config or default_settings
        self.ordering = ordering or OrderingEngine(StorePositionStore(store), self.config)

    # ------------------------------------------------------------------
    # Category trees
    # ------------------------------------------------------------------

    async def get_root(self, category: Category) -> Category:
        """Walk up the parents of a category to its tree root.

        Raises:
            InvalidInputError: If the parent chain loops.
        """
        seen = {category.id}
        node = category
        while not node.is_root:
            node = await self.store.require(Category, node.parent_id)
            if node.id in seen:
                raise InvalidInputError(f"category {category.id} has a cyclic parent chain")
            seen.add(node.id)
        return node

    async def is_leaf(self, category: Category) -> bool:
        return await self.store.count(Category, parent_id=category.id) == 0

    async def link_category_channels(
        self,
        product: Product,
        category: Category,
        unrelating: bool = False,
    ) -> bool:
        """Grant or retract the channels declared by a category's tree.

        When retracting, another membership of the product in the same
        tree keeps the grants alive and nothing happens.

        Args:
            product: Product whose relations change.
            category: Category the product was linked to or unlinked from.
            unrelating: Retract instead of grant.

        Returns:
            False if the retraction was not performed.
        """
        root = await self.get_root(category)

        if unrelating:
            memberships = await self.store.find(ProductCategory, product_id=product.id)
            for membership in memberships:
                if membership.category_id == category.id:
                    continue
                other = await self.store.get(Category, membership.category_id)
                if other is not None and (await self.get_root(other)).id == root.id:
                    logger.debug(
                        "Tree channels kept by another membership",
                        product_id=product.id,
                        root_id=root.id,
                        category_id=membership.category_id,
                    )
                    return False

        for channel_id in root.channel_ids:
            if unrelating:
                await self.store.delete_where(
                    ProductChannel,
                    product_id=product.id,
                    channel_id=channel_id,
                    from_category_tree=True,
                )
            else:
                await self.relate_channel(
                    product, channel_id, from_category_tree=True, refresh_existing=True
                )

        logger.info(
            "Tree channels cascaded",
            product_id=product.id,
            root_id=root.id,
            channels=root.channel_ids,
            unrelating=unrelating,
        )
        return True

    async def unrelate_category_tree_channels(self, product: Product) -> int:
        """Delete every channel relation the product got from category trees."""
        removed = await self.store.delete_where(
            ProductChannel, product_id=product.id, from_category_tree=True
        )
        logger.info("Tree channels removed", product_id=product.id, removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Catalog change policy
    # ------------------------------------------------------------------

    async def on_catalog_change(self, product: Product, catalog_id: str | None) -> list[str]:
        """Apply the catalog change policy to the product's categories.

        Under CASCADE every category whose tree is not legal for the new
        catalog is unlinked. Under RESTRICT the first such category is
        reported and nothing changes.

        Args:
            product: Product being moved.
            catalog_id: New catalog, or None.

        Returns:
            Ids of the unlinked categories.

        Raises:
            CatalogCategoryMismatchError: Under RESTRICT, on a violation.
        """
        illegal: list[Category] = []
        for membership in await self.store.find(ProductCategory, product_id=product.id):
            category = await self.store.require(Category, membership.category_id)
            root = await self.get_root(category)
            if not root.is_legal_for_catalog(catalog_id):
                illegal.append(category)

        if self.config.behavior_on_catalog_change is CatalogChangeBehavior.RESTRICT:
            if illegal:
                raise CatalogCategoryMismatchError(product.id, illegal[0].id, catalog_id)
            return []

        for category in illegal:
            await self.unlink_category(product, category.id)
        if illegal:
            logger.info(
                "Categories unlinked by catalog change",
                product_id=product.id,
                catalog_id=catalog_id,
                category_ids=[category.id for category in illegal],
            )
        return [category.id for category in illegal]

    # ------------------------------------------------------------------
    # Category links
    # ------------------------------------------------------------------

    async def validate_category_link(self, product: Product, category: Category) -> None:
        """Check that a product may be linked to a category.

        Raises:
            NonLeafCategoryLinkError: If the category has children and
                non-leaf linking is not allowed.
            CategoryCatalogMismatchError: If the category's tree is not
                legal for the product's catalog.
        """
        if not self.config.product_can_linked_with_non_leaf_categories and not await self.is_leaf(
            category
        ):
            raise NonLeafCategoryLinkError(category.id)

        root = await self.get_root(category)
        if not root.is_legal_for_catalog(product.catalog_id):
            raise CategoryCatalogMismatchError(category.id, product.catalog_id)

    async def link_category(
        self,
        product: Product,
        category_id: str,
        sort_value: int | None = None,
    ) -> ProductCategory:
        """Link a product to a category and cascade the tree channels.

        Args:
            product: Product to link.
            category_id: Target category.
            sort_value: Position inside the category, or None to append.

        Returns:
            The created membership.
        """
        category = await self.store.require(Category, category_id)
        await self.validate_category_link(product, category)

        if await self.store.count(ProductCategory, product_id=product.id, category_id=category_id):
            raise CategoryAlreadyRelatedError(product.id, category_id)

        membership = ProductCategory(id=new_id(), product_id=product.id, category_id=category_id)
        await self.store.save(membership)
        await self.ordering.set_position(CategoryGroup(category_id), product.id, sort_value)
        await self.link_category_channels(product, category)

        logger.info("Category linked", product_id=product.id, category_id=category_id)
        return await self.store.require(ProductCategory, membership.id)

    async def unlink_category(self, product: Product, category_id: str) -> bool:
        """Unlink a product from a category and retract tree channels.

        Returns:
            False if the product was not linked.
        """
        removed = await self.store.delete_where(
            ProductCategory, product_id=product.id, category_id=category_id
        )
        if not removed:
            return False

        category = await self.store.get(Category, category_id)
        if category is not None:
            await self.link_category_channels(product, category, unrelating=True)

        logger.info("Category unlinked", product_id=product.id, category_id=category_id)
        return True

    async def detach_from_all_categories(self, product: Product) -> int:
        """Remove every category membership and every tree channel."""
        removed = await self.store.delete_where(ProductCategory, product_id=product.id)
        await self.unrelate_category_tree_channels(product)
        return removed

    async def unlink_products_from_non_leaf_categories(self) -> int:
        """Remove memberships that point at categories with children.

        Returns:
            Number of removed memberships.
        """
        parents = {
            category.parent_id
            for category in await self.store.find(Category)
            if category.parent_id is not None
        }
        stale = await self.store.find(
            ProductCategory, where=lambda membership: membership.category_id in parents
        )

        removed = 0
        for membership in stale:
            product = await self.store.get(Product, membership.product_id)
            if product is None:
                await self.store.delete(membership)
                removed += 1
                continue
            if await self.unlink_category(product, membership.category_id):
                removed += 1

        logger.info("Non-leaf category memberships removed", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Channel relations
    # ------------------------------------------------------------------

    async def relate_channel(
        self,
        product: Product,
        channel_id: str,
        from_category_tree: bool = False,
        refresh_existing: bool = False,
    ) -> ProductChannel:
        """Relate a product to a channel.

        Args:
            product: Product to relate.
            channel_id: Channel to relate.
            from_category_tree: Provenance flag of the relation.
            refresh_existing: Update provenance and activity of an
                existing relation instead of rejecting it.

        Returns:
            The created or refreshed relation.

        Raises:
            ChannelAlreadyRelatedError: If the relation exists and
                ``refresh_existing`` is False.
        """
        await self.store.require(Channel, channel_id)

        existing = await self.store.find_one(
            ProductChannel, product_id=product.id, channel_id=channel_id
        )
        if existing is not None:
            if not refresh_existing:
                raise ChannelAlreadyRelatedError(product.id, channel_id)
            existing.from_category_tree = from_category_tree
            existing.is_active = True
            return await self.store.save(existing)

        relation = ProductChannel(
            id=new_id(),
            product_id=product.id,
            channel_id=channel_id,
            from_category_tree=from_category_tree,
        )
        await self.store.save(relation)
        logger.debug(
            "Channel related",
            product_id=product.id,
            channel_id=channel_id,
            from_category_tree=from_category_tree,
        )
        return relation

    async def unrelate_channel(self, product: Product, channel_id: str) -> bool:
        removed = await self.store.delete_where(
            ProductChannel, product_id=product.id, channel_id=channel_id
        )
        return removed > 0

    async def update_channel_activity(
        self,
        product: Product,
        channel_id: str,
        is_active: bool,
    ) -> ProductChannel:
        """Switch a product on or off in a related channel.

        Raises:
            ChannelNotRelatedError: If the channel is not related.
        """
        relation = await self.store.find_one(
            ProductChannel, product_id=product.id, channel_id=channel_id
        )
        if relation is None:
            raise ChannelNotRelatedError(product.id, channel_id)
        relation.is_active = is_active
        await self.store.save(relation)
        logger.info(
            "Channel activity updated",
            product_id=product.id,
            channel_id=channel_id,
            is_active=is_active,
        )
        return relation

    async def get_channel_relation_data(self, product: Product) -> dict[str, ChannelRelationData]:
        """Get the relation flags of every channel of a product."""
        return {
            relation.channel_id: ChannelRelationData(
                is_active=relation.is_active,
                from_category_tree=relation.from_category_tree,
            )
            for relation in await self.store.find(ProductChannel, product_id=product.id)
        }


def get_channel_cascade_manager(
    store: InMemoryCatalogStore | None = None,
) -> ChannelCascadeManager:
    """Get channel cascade manager instance."""
    return ChannelCascadeManager(store or get_catalog_store())
