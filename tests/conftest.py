"""Shared fixtures: a seeded catalog in an in-memory store.

Catalog layout:
    cat-main   <- root-apparel (channels ch-web, ch-shop)
                    ├── jackets
                    └── shirts
    cat-outlet <- root-outlet (channel ch-app)
                    └── outlet-sale
"""

import pytest

from pim_core.domain.entities import (
    Association,
    Attribute,
    Catalog,
    Category,
    Channel,
    FamilyAttributeTemplate,
    Product,
    ProductFamily,
)
from pim_core.domain.value_objects import MAIN_LOCALE, AttributeScope, CatalogChangeBehavior
from pim_core.infrastructure.config import Settings
from pim_core.infrastructure.store import InMemoryCatalogStore


@pytest.fixture
def config() -> Settings:
    """Settings with multilingual mode on and the cascade policy."""
    return Settings(
        behavior_on_catalog_change=CatalogChangeBehavior.CASCADE,
        product_can_linked_with_non_leaf_categories=False,
        input_language_list=["de_DE", "fr_FR"],
        is_multilang_active=True,
        sort_step=10,
    )


@pytest.fixture
def store() -> InMemoryCatalogStore:
    """Create a store holding the sample catalog."""
    store = InMemoryCatalogStore()
    store.load(
        Catalog(id="cat-main", name="Main"),
        Catalog(id="cat-outlet", name="Outlet"),
        Channel(id="ch-web", name="Web", locales=[MAIN_LOCALE, "de_DE"]),
        Channel(id="ch-shop", name="Shop", locales=["fr_FR"]),
        Channel(id="ch-app", name="App", locales=[]),
        Category(
            id="root-apparel",
            name="Apparel",
            catalog_ids=["cat-main"],
            channel_ids=["ch-web", "ch-shop"],
        ),
        Category(id="jackets", name="Jackets", parent_id="root-apparel"),
        Category(id="shirts", name="Shirts", parent_id="root-apparel"),
        Category(
            id="root-outlet",
            name="Outlet",
            catalog_ids=["cat-outlet"],
            channel_ids=["ch-app"],
        ),
        Category(id="outlet-sale", name="Sale", parent_id="root-outlet"),
        Attribute(id="attr-color", name="Color", code="color", is_multilang=True),
        Attribute(
            id="attr-weight",
            name="Weight",
            code="weight",
            names={"de_DE": "Gewicht"},
        ),
        Attribute(id="attr-size", name="Size", code="size"),
        ProductFamily(id="fam-apparel", name="Apparel"),
        ProductFamily(id="fam-basic", name="Basic"),
        FamilyAttributeTemplate(
            id="t-color",
            family_id="fam-apparel",
            attribute_id="attr-color",
            is_required=True,
            sort_order=1,
        ),
        FamilyAttributeTemplate(
            id="t-size",
            family_id="fam-apparel",
            attribute_id="attr-size",
            scope=AttributeScope.CHANNEL,
            channel_id="ch-web",
            sort_order=2,
        ),
        FamilyAttributeTemplate(
            id="t-weight",
            family_id="fam-basic",
            attribute_id="attr-weight",
        ),
        Product(
            id="p1",
            name="Rain jacket",
            sku="JKT-1",
            catalog_id="cat-main",
            owner_user_id="u-owner",
            assigned_user_id="u-assignee",
            team_ids=["team-a"],
        ),
        Product(id="p2", name="Denim shirt", catalog_id="cat-main"),
        Product(id="p3", name="Wool scarf", catalog_id="cat-main"),
        Association(
            id="assoc-accessory",
            name="Accessory",
            backward_association_id="assoc-accessory-of",
        ),
        Association(
            id="assoc-accessory-of",
            name="Accessory of",
            backward_association_id="assoc-accessory",
        ),
        Association(id="assoc-similar", name="Similar"),
    )
    return store
