"""Position stores for ordered link rows.

The ordering engine reads every position of one group and writes back
the ones it changed. Two backends: the in-memory catalog store and the
SQL link tables.
"""

from typing import Protocol

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pim_core.domain.entities import ProductAsset, ProductCategory
from pim_core.domain.value_objects import AssetSlot, CategoryGroup, GroupKey
from pim_core.infrastructure.models import ProductAssetModel, ProductCategoryModel
from pim_core.infrastructure.store import InMemoryCatalogStore


class PositionStore(Protocol):
    """Raw positional read/write for one ordering group."""

    async def read_positions(self, group: GroupKey) -> dict[str, int]:
        """Get member id to position for every member of a group."""
        ...

    async def write_positions(self, group: GroupKey, positions: dict[str, int]) -> None:
        """Set the positions of the given members of a group."""
        ...

    async def delete_member(self, group: GroupKey, member_id: str) -> bool:
        """Remove one member row from a group."""
        ...


class StorePositionStore:
    """Position store over the in-memory catalog store.

    Members of a category group are product ids; members of an asset
    slot are asset ids.
    """

    def __init__(self, store: InMemoryCatalogStore) -> None:
        self.store = store

    async def read_positions(self, group: GroupKey) -> dict[str, int]:
        if isinstance(group, CategoryGroup):
            links = await self.store.find(ProductCategory, category_id=group.category_id)
            return {link.product_id: link.sorting for link in links}
        assets = await self.store.find(
            ProductAsset, product_id=group.product_id, channel_id=group.channel_id
        )
        return {asset.asset_id: asset.sorting for asset in assets}

    async def write_positions(self, group: GroupKey, positions: dict[str, int]) -> None:
        if isinstance(group, CategoryGroup):
            rows = await self.store.find(
                ProductCategory,
                where=lambda link: link.product_id in positions,
                category_id=group.category_id,
            )
            for row in rows:
                row.sorting = positions[row.product_id]
                await self.store.save(row)
            return
        rows = await self.store.find(
            ProductAsset,
            where=lambda asset: asset.asset_id in positions,
            product_id=group.product_id,
            channel_id=group.channel_id,
        )
        for row in rows:
            row.sorting = positions[row.asset_id]
            await self.store.save(row)

    async def delete_member(self, group: GroupKey, member_id: str) -> bool:
        if isinstance(group, CategoryGroup):
            deleted = await self.store.delete_where(
                ProductCategory, category_id=group.category_id, product_id=member_id
            )
        else:
            deleted = await self.store.delete_where(
                ProductAsset,
                product_id=group.product_id,
                channel_id=group.channel_id,
                asset_id=member_id,
            )
        return deleted > 0


class SqlPositionStore:
    """Position store over the ``product_category`` / ``product_asset`` tables.

    Example usage:
        async with session_scope(factory) as session:
            engine = OrderingEngine(SqlPositionStore(session))
            await engine.set_position(CategoryGroup("c1"), "p1", 20)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an open session; the caller owns the transaction.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def read_positions(self, group: GroupKey) -> dict[str, int]:
        if isinstance(group, CategoryGroup):
            query = select(ProductCategoryModel.product_id, ProductCategoryModel.sorting).where(
                ProductCategoryModel.category_id == group.category_id
            )
        else:
            query = select(ProductAssetModel.asset_id, ProductAssetModel.sorting).where(
                ProductAssetModel.product_id == group.product_id,
                self._channel_condition(group),
            )
        result = await self.session.execute(query)
        return {member: sorting for member, sorting in result.all()}

    async def write_positions(self, group: GroupKey, positions: dict[str, int]) -> None:
        if not positions:
            return
        if isinstance(group, CategoryGroup):
            query = select(ProductCategoryModel).where(
                ProductCategoryModel.category_id == group.category_id,
                ProductCategoryModel.product_id.in_(list(positions)),
            )
            result = await self.session.execute(query)
            for row in result.scalars().all():
                row.sorting = positions[row.product_id]
        else:
            query = select(ProductAssetModel).where(
                ProductAssetModel.product_id == group.product_id,
                ProductAssetModel.asset_id.in_(list(positions)),
                self._channel_condition(group),
            )
            result = await self.session.execute(query)
            for row in result.scalars().all():
                row.sorting = positions[row.asset_id]
        await self.session.flush()

    async def delete_member(self, group: GroupKey, member_id: str) -> bool:
        if isinstance(group, CategoryGroup):
            query = delete(ProductCategoryModel).where(
                ProductCategoryModel.category_id == group.category_id,
                ProductCategoryModel.product_id == member_id,
            )
        else:
            query = delete(ProductAssetModel).where(
                ProductAssetModel.product_id == group.product_id,
                ProductAssetModel.asset_id == member_id,
                self._channel_condition(group),
            )
        result = await self.session.execute(query)
        return result.rowcount > 0

    @staticmethod
    def _channel_condition(slot: AssetSlot):
        if slot.channel_id:
            return ProductAssetModel.channel == slot.channel_id
        return or_(ProductAssetModel.channel.is_(None), ProductAssetModel.channel == "")
