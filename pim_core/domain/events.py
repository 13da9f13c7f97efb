"""Domain events for the catalog.

Products record these while they change; the product service collects
and logs them once the save went through.
"""

from dataclasses import dataclass
from typing import ClassVar

from pim_core.domain.base import DomainEvent


@dataclass(frozen=True)
class ProductFamilyChanged(DomainEvent):
    """A product moved to another family, or lost its family."""

    event_type: ClassVar[str] = "product.family_changed"

    previous_family_id: str | None = None
    family_id: str | None = None


@dataclass(frozen=True)
class ProductCatalogChanged(DomainEvent):
    """A product moved to another catalog, or left its catalog."""

    event_type: ClassVar[str] = "product.catalog_changed"

    previous_catalog_id: str | None = None
    catalog_id: str | None = None
