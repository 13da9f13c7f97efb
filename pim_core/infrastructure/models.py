"""SQLAlchemy models for ordered link tables.

Defines the product-in-category and asset-in-product link rows whose
``sorting`` column the ordering engine maintains.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pim_core.infrastructure.database import Base


class ProductCategoryModel(Base):
    """Link of a product to a category.

    Attributes:
        id: Link row identifier.
        product_id: Linked product.
        category_id: Category the product is placed in.
        sorting: Position of the product inside the category.
    """

    __tablename__ = "product_category"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    product_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sorting: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("product_id", "category_id", name="uq_product_category"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProductCategory(product_id={self.product_id}, "
            f"category_id={self.category_id}, sorting={self.sorting})>"
        )


class ProductAssetModel(Base):
    """Link of an asset to a product, optionally inside a channel slot.

    An empty or NULL ``channel`` is the channel-independent slot.
    """

    __tablename__ = "product_asset"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    product_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    asset_id: Mapped[str] = mapped_column(String(36), nullable=False)
    channel: Mapped[str | None] = mapped_column(String(36), nullable=True)
    sorting: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("product_id", "asset_id", "channel", name="uq_product_asset"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProductAsset(product_id={self.product_id}, asset_id={self.asset_id}, "
            f"channel={self.channel}, sorting={self.sorting})>"
        )
