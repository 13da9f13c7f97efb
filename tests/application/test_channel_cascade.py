"""Tests for the channel cascade manager.

Tests category tree bookkeeping including:
- Granting and retracting tree channels
- Category link validation
- Catalog change policies
- Direct channel relations
"""

import pytest

from pim_core.application.channel_cascade_service import ChannelCascadeManager
from pim_core.domain.entities import Category, Product, ProductCategory, ProductChannel
from pim_core.domain.exceptions import (
    CatalogCategoryMismatchError,
    CategoryAlreadyRelatedError,
    CategoryCatalogMismatchError,
    ChannelAlreadyRelatedError,
    ChannelNotRelatedError,
    InvalidInputError,
    NonLeafCategoryLinkError,
)
from pim_core.domain.value_objects import CatalogChangeBehavior
from pim_core.infrastructure.config import Settings


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def manager(store, config) -> ChannelCascadeManager:
    """Create a cascade manager with the cascade policy."""
    return ChannelCascadeManager(store, config=config)


@pytest.fixture
def restrict_manager(store) -> ChannelCascadeManager:
    """Create a cascade manager with the restrict policy."""
    return ChannelCascadeManager(
        store, config=Settings(behavior_on_catalog_change=CatalogChangeBehavior.RESTRICT)
    )


async def relations(store, product_id: str = "p1") -> set[tuple[str, bool]]:
    """Get (channel, from_category_tree) pairs of a product."""
    return {
        (relation.channel_id, relation.from_category_tree)
        for relation in await store.find(ProductChannel, product_id=product_id)
    }


# ============================================================================
# Test: Tree Channels
# ============================================================================


class TestTreeChannels:
    """Tests for granting and retracting tree channels."""

    @pytest.mark.asyncio
    async def test_link_grants_root_channels(self, store, manager) -> None:
        """Linking a category grants its root's channels as tree relations."""
        product = await store.require(Product, "p1")

        await manager.link_category(product, "jackets")

        assert await relations(store) == {("ch-web", True), ("ch-shop", True)}

    @pytest.mark.asyncio
    async def test_cascade_is_idempotent(self, store, manager) -> None:
        """Cascading twice yields the same relations as once."""
        product = await store.require(Product, "p1")
        jackets = await store.require(Category, "jackets")

        await manager.link_category_channels(product, jackets)
        once = await relations(store)
        await manager.link_category_channels(product, jackets)

        assert await relations(store) == once
        assert await store.count(ProductChannel, product_id="p1") == 2

    @pytest.mark.asyncio
    async def test_link_then_unlink_leaves_no_tree_channels(self, store, manager) -> None:
        """Unlinking the only path to a tree retracts its channels."""
        product = await store.require(Product, "p1")

        await manager.link_category(product, "jackets")
        assert await manager.unlink_category(product, "jackets")

        assert await store.count(ProductChannel, product_id="p1", from_category_tree=True) == 0

    @pytest.mark.asyncio
    async def test_other_path_to_same_tree_keeps_channels(self, store, manager) -> None:
        """Another membership in the same tree keeps the grants."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")
        await manager.link_category(product, "shirts")

        await manager.unlink_category(product, "jackets")

        assert await relations(store) == {("ch-web", True), ("ch-shop", True)}
        jackets = await store.require(Category, "jackets")
        assert not await manager.link_category_channels(product, jackets, unrelating=True)

    @pytest.mark.asyncio
    async def test_direct_relation_gets_tree_provenance(self, store, manager) -> None:
        """Cascading over a direct relation refreshes it instead of failing."""
        product = await store.require(Product, "p1")
        await manager.relate_channel(product, "ch-web")
        await manager.update_channel_activity(product, "ch-web", False)

        await manager.link_category(product, "jackets")

        relation = await store.find_one(ProductChannel, product_id="p1", channel_id="ch-web")
        assert relation.from_category_tree
        assert relation.is_active
        assert await store.count(ProductChannel, product_id="p1", channel_id="ch-web") == 1

    @pytest.mark.asyncio
    async def test_unrelate_tree_channels_keeps_direct(self, store, manager) -> None:
        """Bulk retraction only removes tree relations."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")
        await manager.relate_channel(product, "ch-app")

        removed = await manager.unrelate_category_tree_channels(product)

        assert removed == 2
        assert await relations(store) == {("ch-app", False)}

    @pytest.mark.asyncio
    async def test_detach_from_all_categories(self, store, manager) -> None:
        """Detaching removes memberships and tree channels."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")
        await manager.link_category(product, "shirts")

        assert await manager.detach_from_all_categories(product) == 2
        assert await store.count(ProductCategory, product_id="p1") == 0
        assert await relations(store) == set()


# ============================================================================
# Test: Category Links
# ============================================================================


class TestCategoryLinks:
    """Tests for category link validation."""

    @pytest.mark.asyncio
    async def test_memberships_are_appended(self, store, manager) -> None:
        """Each new membership goes after the existing ones."""
        first = await manager.link_category(await store.require(Product, "p1"), "jackets")
        second = await manager.link_category(await store.require(Product, "p2"), "jackets")

        assert first.sorting == 10
        assert second.sorting == 20

    @pytest.mark.asyncio
    async def test_explicit_position_shifts_members(self, store, manager) -> None:
        """Linking at a position shifts the members at or after it."""
        await manager.link_category(await store.require(Product, "p1"), "jackets")
        await manager.link_category(await store.require(Product, "p2"), "jackets", sort_value=10)

        p1 = await store.find_one(ProductCategory, product_id="p1", category_id="jackets")
        p2 = await store.find_one(ProductCategory, product_id="p2", category_id="jackets")
        assert (p2.sorting, p1.sorting) == (10, 20)

    @pytest.mark.asyncio
    async def test_non_leaf_rejected(self, store, manager) -> None:
        """Linking a category with children is rejected."""
        product = await store.require(Product, "p1")

        with pytest.raises(NonLeafCategoryLinkError):
            await manager.link_category(product, "root-apparel")

        assert await store.count(ProductCategory, product_id="p1") == 0

    @pytest.mark.asyncio
    async def test_non_leaf_allowed_by_config(self, store) -> None:
        """Configuration can allow non-leaf links."""
        manager = ChannelCascadeManager(
            store, config=Settings(product_can_linked_with_non_leaf_categories=True)
        )

        await manager.link_category(await store.require(Product, "p1"), "root-apparel")

        assert await store.count(ProductCategory, product_id="p1") == 1

    @pytest.mark.asyncio
    async def test_foreign_tree_rejected(self, store, manager) -> None:
        """Category from a tree of another catalog is rejected."""
        product = await store.require(Product, "p1")

        with pytest.raises(CategoryCatalogMismatchError):
            await manager.link_category(product, "outlet-sale")

        assert await relations(store) == set()

    @pytest.mark.asyncio
    async def test_double_link_rejected(self, store, manager) -> None:
        """Linking the same category twice is rejected."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")

        with pytest.raises(CategoryAlreadyRelatedError):
            await manager.link_category(product, "jackets")

    @pytest.mark.asyncio
    async def test_cyclic_parents_rejected(self, store, manager) -> None:
        """Parent loops are reported instead of walked forever."""
        store.load(
            Category(id="loop-a", name="A", parent_id="loop-b"),
            Category(id="loop-b", name="B", parent_id="loop-a"),
        )

        with pytest.raises(InvalidInputError):
            await manager.get_root(await store.require(Category, "loop-a"))

    @pytest.mark.asyncio
    async def test_unlink_from_non_leaf_categories(self, store, manager) -> None:
        """Memberships in categories that gained children are removed."""
        store.load(
            ProductCategory(id="pc-root", product_id="p1", category_id="root-apparel"),
            ProductCategory(id="pc-leaf", product_id="p2", category_id="jackets"),
        )

        assert await manager.unlink_products_from_non_leaf_categories() == 1
        assert await store.get(ProductCategory, "pc-root") is None
        assert await store.get(ProductCategory, "pc-leaf") is not None


# ============================================================================
# Test: Catalog Change
# ============================================================================


class TestCatalogChange:
    """Tests for the catalog change policies."""

    @pytest.mark.asyncio
    async def test_cascade_unlinks_illegal_categories(self, store, manager) -> None:
        """Cascade unlinks categories of trees illegal for the new catalog."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")

        unlinked = await manager.on_catalog_change(product, "cat-outlet")

        assert unlinked == ["jackets"]
        assert await store.count(ProductCategory, product_id="p1") == 0
        assert await relations(store) == set()

    @pytest.mark.asyncio
    async def test_cascade_keeps_legal_categories(self, store, manager) -> None:
        """Legal categories survive a catalog change."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")

        assert await manager.on_catalog_change(product, "cat-main") == []
        assert await store.count(ProductCategory, product_id="p1") == 1

    @pytest.mark.asyncio
    async def test_restrict_rejects_without_mutation(self, store, manager, restrict_manager) -> None:
        """Restrict reports the first illegal category and changes nothing."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")

        with pytest.raises(CatalogCategoryMismatchError) as exc_info:
            await restrict_manager.on_catalog_change(product, "cat-outlet")

        assert exc_info.value.details["category_id"] == "jackets"
        assert await store.count(ProductCategory, product_id="p1") == 1
        assert await relations(store) == {("ch-web", True), ("ch-shop", True)}


# ============================================================================
# Test: Direct Channel Relations
# ============================================================================


class TestChannelRelations:
    """Tests for direct channel relations."""

    @pytest.mark.asyncio
    async def test_relate_twice_rejected(self, store, manager) -> None:
        """Relating an already related channel directly is rejected."""
        product = await store.require(Product, "p1")
        await manager.relate_channel(product, "ch-app")

        with pytest.raises(ChannelAlreadyRelatedError):
            await manager.relate_channel(product, "ch-app")

    @pytest.mark.asyncio
    async def test_relation_data(self, store, manager) -> None:
        """Relation data reports activity and provenance per channel."""
        product = await store.require(Product, "p1")
        await manager.link_category(product, "jackets")
        await manager.relate_channel(product, "ch-app")
        await manager.update_channel_activity(product, "ch-app", False)

        data = await manager.get_channel_relation_data(product)

        assert set(data) == {"ch-web", "ch-shop", "ch-app"}
        assert data["ch-web"].from_category_tree
        assert not data["ch-app"].from_category_tree
        assert not data["ch-app"].is_active

    @pytest.mark.asyncio
    async def test_activity_of_unrelated_channel_rejected(self, store, manager) -> None:
        """Activity can only change on related channels."""
        product = await store.require(Product, "p1")

        with pytest.raises(ChannelNotRelatedError):
            await manager.update_channel_activity(product, "ch-web", True)

    @pytest.mark.asyncio
    async def test_unrelate_channel(self, store, manager) -> None:
        """Direct unrelate removes the relation."""
        product = await store.require(Product, "p1")
        await manager.relate_channel(product, "ch-app")

        assert await manager.unrelate_channel(product, "ch-app")
        assert not await manager.unrelate_channel(product, "ch-app")
