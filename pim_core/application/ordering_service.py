"""Ordering application service.

Maintains sort positions of products inside categories and of assets
inside product channel slots:
- Appending a member after the current maximum
- Moving a member to an explicit position, shifting the siblings at or
  after it
- Reordering a whole asset slot from a token list
"""

import structlog

from pim_core.domain.exceptions import InvalidPositionError
from pim_core.domain.value_objects import AssetSlot, AssetToken, GroupKey
from pim_core.infrastructure.config import Settings, settings as default_settings
from pim_core.infrastructure.position_store import PositionStore, StorePositionStore
from pim_core.infrastructure.store import InMemoryCatalogStore, get_catalog_store

logger = structlog.get_logger()


class OrderingEngine:
    """Keeps positions inside an ordering group unique.

    Positions are spaced by ``sort_step``. Gaps are allowed; equal
    positions are not. The engine holds no lock: each call is one
    read-modify-write of a single group and is safe to retry.
    """

    def __init__(self, positions: PositionStore, config: Settings | None = None) -> None:
        """Initialize engine.

        Args:
            positions: Position store backing the groups.
            config: Settings providing ``sort_step``.
        """
        self.positions = positions
        self.config = config or default_settings

    @property
    def step(self) -> int:
        return self.config.sort_step

    async def set_position(
        self,
        group: GroupKey,
        member_id: str,
        sort_value: int | None = None,
    ) -> bool:
        """Place a member inside its group.

        Without a value the member goes after the current maximum and no
        sibling moves. With a value the member takes it, and every
        sibling at or after it is re-spaced upward in order.

        Args:
            group: Ordering group.
            member_id: Member to place; must already belong to the group.
            sort_value: Explicit position, or None to append.

        Returns:
            False if the member is not part of the group.

        Raises:
            InvalidPositionError: If the value is negative.
        """
        if sort_value is not None and sort_value < 0:
            raise InvalidPositionError(sort_value)

        current = await self.positions.read_positions(group)
        if member_id not in current:
            logger.warning(
                "Ordering member not found in group",
                group=str(group),
                member_id=member_id,
            )
            return False

        if sort_value is None:
            position = max(current.values()) + self.step
            await self.positions.write_positions(group, {member_id: position})
            logger.debug("Member appended", group=str(group), member_id=member_id, position=position)
            return True

        siblings = {member: position for member, position in current.items() if member != member_id}
        updates = {member_id: sort_value}
        previous = sort_value
        for member, position in sorted(siblings.items(), key=lambda item: (item[1], item[0])):
            if position < sort_value:
                continue
            previous += self.step
            updates[member] = previous

        await self.positions.write_positions(group, updates)
        logger.debug(
            "Member positioned",
            group=str(group),
            member_id=member_id,
            position=sort_value,
            shifted=len(updates) - 1,
        )
        return True

    async def set_asset_position(
        self,
        product_id: str,
        token: str,
        sort_value: int | None = None,
    ) -> bool:
        """Place an asset inside the product slot named by its token."""
        asset = AssetToken.parse(token)
        return await self.set_position(asset.slot(product_id), asset.asset_id, sort_value)

    async def update_asset_sort_order(self, product_id: str, tokens: list[str]) -> int:
        """Reorder assets so each token gets ``index * step``.

        Tokens of different channels land in their own slots; unknown
        assets are ignored.

        Args:
            product_id: Product owning the assets.
            tokens: Ordered ``asset_channel`` tokens.

        Returns:
            Number of repositioned assets.
        """
        by_slot: dict[AssetSlot, dict[str, int]] = {}
        for index, token in enumerate(tokens):
            asset = AssetToken.parse(token)
            by_slot.setdefault(asset.slot(product_id), {})[asset.asset_id] = index * self.step

        updated = 0
        for slot, wanted in by_slot.items():
            existing = await self.positions.read_positions(slot)
            known = {asset_id: position for asset_id, position in wanted.items() if asset_id in existing}
            if known:
                await self.positions.write_positions(slot, known)
            updated += len(known)

        logger.info("Asset sort order updated", product_id=product_id, assets=updated)
        return updated

    async def unlink_asset(self, product_id: str, token: str) -> bool:
        """Remove an asset from the product slot named by its token."""
        asset = AssetToken.parse(token)
        removed = await self.positions.delete_member(asset.slot(product_id), asset.asset_id)
        if removed:
            logger.info("Asset unlinked", product_id=product_id, token=token)
        return removed


def get_ordering_engine(store: InMemoryCatalogStore | None = None) -> OrderingEngine:
    """Get an ordering engine over the catalog store."""
    return OrderingEngine(StorePositionStore(store or get_catalog_store()))
