"""Domain entities for the product catalog.

Entities reference each other by id; graph traversal (category roots,
family templates, memberships) goes through the persistence store so
that every step re-derives from current data.
"""

from dataclasses import dataclass, field
from typing import Any

from pim_core.domain.base import AggregateRoot, Entity, new_id
from pim_core.domain.events import ProductCatalogChanged, ProductFamilyChanged
from pim_core.domain.state_machines import (
    CompositeUpdateStatus,
    validate_composite_update_transition,
)
from pim_core.domain.value_objects import (
    AttributeScope,
    AttributeValueKey,
    LocaleValue,
    MAIN_LOCALE,
)


# ============================================================================
# Catalog Structure
# ============================================================================


@dataclass
class Catalog(Entity):
    """Groups the category trees that are legal for its products."""

    id: str
    name: str
    code: str | None = None


@dataclass
class Channel(Entity):
    """Distribution channel.

    Attributes:
        locales: Ordered locale codes the channel publishes. The
            MAIN_LOCALE marker means the default value is published too.
    """

    id: str
    name: str
    code: str | None = None
    locales: list[str] = field(default_factory=list)

    @property
    def has_main_locale(self) -> bool:
        return MAIN_LOCALE in self.locales

    @property
    def extra_locales(self) -> list[str]:
        """Channel locales without the main-locale marker."""
        return [locale for locale in self.locales if locale != MAIN_LOCALE]


@dataclass(kw_only=True)
class Category(AggregateRoot):
    """Node of a category tree.

    Only the root's ``catalog_ids`` and ``channel_ids`` are meaningful:
    they declare which catalogs the whole tree is legal for and which
    channels products placed anywhere in the tree inherit.
    """

    id: str
    name: str
    parent_id: str | None = None
    sort_order: int = 0
    catalog_ids: list[str] = field(default_factory=list)
    channel_ids: list[str] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def is_legal_for_catalog(self, catalog_id: str | None) -> bool:
        """Check whether this root's tree may hold products of a catalog.

        Products without a catalog may only use trees not linked to any
        catalog.

        Args:
            catalog_id: Product catalog, or None.

        Returns:
            True if the tree is legal.
        """
        if catalog_id is None:
            return not self.catalog_ids
        return catalog_id in self.catalog_ids


# ============================================================================
# Attribute Definitions
# ============================================================================


@dataclass
class Attribute(Entity):
    """Definition of an attribute value's shape.

    Attributes:
        names: Localized attribute names keyed by locale code.
    """

    id: str
    name: str
    code: str
    type: str = "varchar"
    is_multilang: bool = False
    names: dict[str, str] = field(default_factory=dict)

    def name_for(self, locale: str) -> str:
        """Get the localized name, falling back to the default name."""
        return self.names.get(locale) or self.name


@dataclass
class ProductFamily(Entity):
    """Template set that drives which attribute values a product owns."""

    id: str
    name: str


@dataclass
class FamilyAttributeTemplate(Entity):
    """One attribute slot declared by a product family."""

    id: str
    family_id: str
    attribute_id: str
    is_required: bool = False
    scope: AttributeScope = AttributeScope.GLOBAL
    channel_id: str | None = None
    sort_order: int = 0


# ============================================================================
# Product Aggregate
# ============================================================================


@dataclass(kw_only=True)
class Product(AggregateRoot):
    """Product aggregate root.

    Attributes:
        type: Product type, fixed once the product exists.
        sku: Stock keeping unit, unique inside the catalog when set.
        ean: EAN code, unique inside the catalog when set.
        mpn: Manufacturer part number, unique inside the catalog when set.
        catalog_id: Catalog the product is assigned to.
        product_family_id: Family whose templates drive attribute values.
    """

    id: str = field(default_factory=new_id)
    name: str
    type: str = "simpleProduct"
    sku: str | None = None
    ean: str | None = None
    mpn: str | None = None
    catalog_id: str | None = None
    product_family_id: str | None = None
    owner_user_id: str | None = None
    assigned_user_id: str | None = None
    team_ids: list[str] = field(default_factory=list)

    def change_family(self, family_id: str | None) -> bool:
        """Point the product at another family.

        Args:
            family_id: New family id or None.

        Returns:
            True if the family actually changed.
        """
        if family_id == self.product_family_id:
            return False
        previous = self.product_family_id
        self.product_family_id = family_id
        self._touch()
        self._record_event(
            ProductFamilyChanged(
                aggregate_id=self.id,
                aggregate_type="Product",
                previous_family_id=previous,
                family_id=family_id,
            )
        )
        return True

    def change_catalog(self, catalog_id: str | None) -> bool:
        """Move the product to another catalog.

        Args:
            catalog_id: New catalog id or None.

        Returns:
            True if the catalog actually changed.
        """
        if catalog_id == self.catalog_id:
            return False
        previous = self.catalog_id
        self.catalog_id = catalog_id
        self._touch()
        self._record_event(
            ProductCatalogChanged(
                aggregate_id=self.id,
                aggregate_type="Product",
                previous_catalog_id=previous,
                catalog_id=catalog_id,
            )
        )
        return True


@dataclass
class ProductCategory(Entity):
    """Membership of a product in a category, with its sort position."""

    id: str
    product_id: str
    category_id: str
    sorting: int = 0


@dataclass
class ProductChannel(Entity):
    """Relation of a product to a channel.

    Attributes:
        is_active: Whether the product is published in the channel.
        from_category_tree: True when the relation was derived from a
            category tree rather than granted directly.
    """

    id: str
    product_id: str
    channel_id: str
    is_active: bool = True
    from_category_tree: bool = False


@dataclass
class ProductAsset(Entity):
    """Asset attached to a product, optionally inside one channel slot."""

    id: str
    product_id: str
    asset_id: str
    channel_id: str | None = None
    sorting: int = 0


# ============================================================================
# Attribute Value Aggregate
# ============================================================================


@dataclass(kw_only=True)
class AttributeValue(AggregateRoot):
    """Stored value of one attribute for one product.

    Attributes:
        family_attribute_id: Template this value was materialized from,
            or None when the value was entered independently.
        locale_values: Per-locale shadow fields for multilingual
            attributes, keyed by locale code.
    """

    id: str = field(default_factory=new_id)
    product_id: str
    attribute_id: str
    scope: AttributeScope = AttributeScope.GLOBAL
    channel_id: str | None = None
    is_required: bool = False
    family_attribute_id: str | None = None
    value: Any = None
    type_value: Any = None
    owner_user_id: str | None = None
    assigned_user_id: str | None = None
    team_ids: list[str] = field(default_factory=list)
    locale_values: dict[str, LocaleValue] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> AttributeValueKey:
        return AttributeValueKey.of(
            self.product_id, self.attribute_id, self.scope, self.channel_id
        )

    def locale_value(self, locale: str) -> LocaleValue:
        """Get the shadow fields for a locale, empty when never set."""
        return self.locale_values.get(locale, LocaleValue())


# ============================================================================
# Associations
# ============================================================================


@dataclass
class Association(Entity):
    """Association type between products.

    Attributes:
        backward_association_id: When set, every edge of this type gets a
            mirrored edge of the backward type.
    """

    id: str
    name: str
    backward_association_id: str | None = None


@dataclass
class AssociatedProduct(Entity):
    """Directed association edge from a main product to a related one.

    Attributes:
        backward_associated_product_id: Id of the mirrored edge when the
            association type has a backward type.
        both_directions: Set on both edges of a mirrored pair.
    """

    id: str
    association_id: str
    main_product_id: str
    related_product_id: str
    backward_association_id: str | None = None
    backward_associated_product_id: str | None = None
    both_directions: bool = False

    def is_mirror_of(self, other: "AssociatedProduct") -> bool:
        """Check whether ``other`` is this edge's backward counterpart."""
        return (
            other.association_id == self.backward_association_id
            and other.main_product_id == self.related_product_id
            and other.related_product_id == self.main_product_id
        )


# ============================================================================
# Composite Update
# ============================================================================


@dataclass
class CompositeUpdate(Entity):
    """Tracks one product save that wraps nested attribute value edits.

    Conflicting field names are collected across every nested save and
    the primary save, in first-seen order and without duplicates.

    Attributes:
        product_id: Primary entity being updated.
        status: Current lifecycle state.
        transactional: Whether a store transaction was opened.
        conflicts: Collected conflicting field names.
    """

    id: str
    product_id: str
    status: CompositeUpdateStatus = CompositeUpdateStatus.OPEN
    transactional: bool = False
    conflicts: list[str] = field(default_factory=list)

    @classmethod
    def open(cls, product_id: str, transactional: bool) -> "CompositeUpdate":
        """Open a composite update for a product."""
        return cls(id=new_id(), product_id=product_id, transactional=transactional)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def add_conflicts(self, fields: list[str]) -> None:
        """Merge conflicting field names into the collected set."""
        for name in fields:
            if name not in self.conflicts:
                self.conflicts.append(name)

    def start_nested_saves(self) -> None:
        self._transition(CompositeUpdateStatus.NESTED_SAVES_RUNNING)

    def commit(self) -> None:
        self._transition(CompositeUpdateStatus.COMMITTED)

    def roll_back(self) -> None:
        self._transition(CompositeUpdateStatus.ROLLED_BACK)

    def _transition(self, target: CompositeUpdateStatus) -> None:
        validate_composite_update_transition(self.id, self.status, target)
        self.status = target
