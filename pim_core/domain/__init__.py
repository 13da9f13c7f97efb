"""Domain layer - Entities, value objects, state machines, domain events.

This module exports the core catalog building blocks:

- **Entities**: Products, categories, channels, families, attribute values
- **Value Objects**: Ordering group keys, attribute value keys, save options
- **State Machines**: Composite update lifecycle
- **Domain Events**: Family and catalog changes of a product
- **Exceptions**: Catalog rule violations

Example usage:
    from pim_core.domain import Category, Product

    root = Category(id="tree-1", name="Apparel", catalog_ids=["main"])
    product = Product(name="Rain jacket", catalog_id="main")
    assert root.is_legal_for_catalog(product.catalog_id)
"""

# Base classes
from pim_core.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject, new_id

# Entities
from pim_core.domain.entities import (
    AssociatedProduct,
    Association,
    Attribute,
    AttributeValue,
    Catalog,
    Category,
    Channel,
    CompositeUpdate,
    FamilyAttributeTemplate,
    Product,
    ProductAsset,
    ProductCategory,
    ProductChannel,
    ProductFamily,
)

# Domain Events
from pim_core.domain.events import (
    ProductCatalogChanged,
    ProductFamilyChanged,
)

# State Machines
from pim_core.domain.state_machines import (
    CompositeUpdateStatus,
    validate_composite_update_transition,
)

# Value Objects
from pim_core.domain.value_objects import (
    LOCALE_IN_ID_SEPARATOR,
    MAIN_LOCALE,
    AssetSlot,
    AssetToken,
    AttributeScope,
    AttributeValueKey,
    CatalogChangeBehavior,
    CategoryGroup,
    GroupKey,
    LocaleValue,
    SaveOptions,
)

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    "new_id",
    # Entities
    "AssociatedProduct",
    "Association",
    "Attribute",
    "AttributeValue",
    "Catalog",
    "Category",
    "Channel",
    "CompositeUpdate",
    "FamilyAttributeTemplate",
    "Product",
    "ProductAsset",
    "ProductCategory",
    "ProductChannel",
    "ProductFamily",
    # Events
    "ProductCatalogChanged",
    "ProductFamilyChanged",
    # State Machines
    "CompositeUpdateStatus",
    "validate_composite_update_transition",
    # Value Objects
    "LOCALE_IN_ID_SEPARATOR",
    "MAIN_LOCALE",
    "AssetSlot",
    "AssetToken",
    "AttributeScope",
    "AttributeValueKey",
    "CatalogChangeBehavior",
    "CategoryGroup",
    "GroupKey",
    "LocaleValue",
    "SaveOptions",
]
