"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

from pim_core.domain.base import ValueObject
from pim_core.domain.exceptions import InvalidInputError

# Marker a channel lists among its locales when it also publishes the
# default (un-suffixed) value.
MAIN_LOCALE = "mainLocale"

# Joins a stored attribute value id and a locale code into a virtual id.
LOCALE_IN_ID_SEPARATOR = "~"

# Joins an asset id and a channel id in an asset ordering token.
ASSET_TOKEN_SEPARATOR = "_"


# ============================================================================
# Enumerations
# ============================================================================


class AttributeScope(str, Enum):
    """Whether an attribute value applies to all channels or to one."""

    GLOBAL = "Global"
    CHANNEL = "Channel"


class CatalogChangeBehavior(str, Enum):
    """Policy applied when a product moves to another catalog.

    CASCADE unlinks categories whose tree is not legal for the new
    catalog; RESTRICT rejects the change instead.
    """

    CASCADE = "cascade"
    RESTRICT = "restrict"


# ============================================================================
# Ordering Group Keys
# ============================================================================


@dataclass(frozen=True)
class CategoryGroup(ValueObject):
    """Ordering group of the products linked to one category."""

    category_id: str

    def __str__(self) -> str:
        return f"category:{self.category_id}"


@dataclass(frozen=True)
class AssetSlot(ValueObject):
    """Ordering group of the assets of one product in one channel.

    A ``channel_id`` of None is the channel-independent slot.
    """

    product_id: str
    channel_id: str | None = None

    def __str__(self) -> str:
        return f"assets:{self.product_id}:{self.channel_id or '-'}"


GroupKey = CategoryGroup | AssetSlot


@dataclass(frozen=True)
class AssetToken(ValueObject):
    """Asset id plus optional channel, as sent by clients in one token.

    The token format is ``<assetId>`` or ``<assetId>_<channelId>``; the
    channel part may itself contain underscores.
    """

    asset_id: str
    channel_id: str | None = None

    @classmethod
    def parse(cls, token: str) -> Self:
        """Split a combined token into asset id and channel.

        Args:
            token: Combined ``asset_channel`` token.

        Returns:
            Parsed token.

        Raises:
            InvalidInputError: If the asset id part is empty.
        """
        asset_id, _, channel = token.partition(ASSET_TOKEN_SEPARATOR)
        if not asset_id:
            raise InvalidInputError(f"asset token '{token}' has no asset id")
        return cls(asset_id=asset_id, channel_id=channel or None)

    def slot(self, product_id: str) -> AssetSlot:
        """Get the ordering slot this asset lives in for a product."""
        return AssetSlot(product_id=product_id, channel_id=self.channel_id)

    def __str__(self) -> str:
        if self.channel_id:
            return f"{self.asset_id}{ASSET_TOKEN_SEPARATOR}{self.channel_id}"
        return self.asset_id


# ============================================================================
# Attribute Value Keys
# ============================================================================


@dataclass(frozen=True)
class AttributeValueKey(ValueObject):
    """Uniqueness key of an attribute value.

    At most one value may exist per (product, attribute, scope, channel);
    the channel only participates when the scope is CHANNEL.
    """

    product_id: str
    attribute_id: str
    scope: AttributeScope
    channel_id: str | None = None

    @classmethod
    def of(
        cls,
        product_id: str,
        attribute_id: str,
        scope: AttributeScope,
        channel_id: str | None,
    ) -> Self:
        """Build a key, dropping the channel for Global scope."""
        return cls(
            product_id=product_id,
            attribute_id=attribute_id,
            scope=scope,
            channel_id=channel_id if scope == AttributeScope.CHANNEL else None,
        )


@dataclass(frozen=True)
class LocaleValue(ValueObject):
    """Per-locale shadow fields of a multilingual attribute value."""

    value: Any = None
    type_value: Any = None
    owner_user_id: str | None = None
    assigned_user_id: str | None = None


@dataclass(frozen=True)
class SaveOptions(ValueObject):
    """One-shot overrides for a single attribute value save.

    Derived writes (family materialization, duplication) bypass the
    validations a user edit goes through.

    Attributes:
        skip_channel_validation: Do not require the value's channel to be
            related to the product.
        skip_family_validation: Do not check the value against its family
            template.
        skip_hooks: Do not run externally registered save hooks
            (e.g. variant propagation).
    """

    skip_channel_validation: bool = False
    skip_family_validation: bool = False
    skip_hooks: bool = False

    @classmethod
    def derived(cls) -> Self:
        """Options for writes derived from other data, not user edits."""
        return cls(
            skip_channel_validation=True,
            skip_family_validation=True,
            skip_hooks=True,
        )
