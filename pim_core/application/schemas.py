"""Request schemas for product and attribute value edits.

Pydantic models for composite update validation. Only fields the
caller actually sent are applied; ``prev`` carries the values the
caller last saw and drives conflict detection.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pim_core.domain.value_objects import AttributeScope

# Fields that describe the edit itself rather than the entity.
CONTROL_FIELDS = frozenset({"prev", "version"})


class LocaleValueUpdate(BaseModel):
    """Shadow fields of one locale."""

    model_config = ConfigDict(extra="forbid")

    value: Any = Field(default=None, description="Localized value")
    type_value: Any = Field(default=None, description="Localized type value")
    owner_user_id: str | None = Field(default=None, description="Localized owner")
    assigned_user_id: str | None = Field(default=None, description="Localized assignee")


class AttributeValueUpdate(BaseModel):
    """Edit of one stored attribute value."""

    model_config = ConfigDict(extra="forbid")

    value: Any = Field(default=None, description="Default-locale value")
    type_value: Any = Field(default=None, description="Default-locale type value")
    is_required: bool | None = Field(default=None)
    owner_user_id: str | None = Field(default=None)
    assigned_user_id: str | None = Field(default=None)
    scope: AttributeScope | None = Field(default=None)
    channel_id: str | None = Field(default=None)
    locale_values: dict[str, LocaleValueUpdate] = Field(
        default_factory=dict, description="Shadow fields keyed by locale code"
    )
    data: dict[str, Any] | None = Field(default=None)
    prev: dict[str, Any] | None = Field(
        default=None, description="Field values the caller based the edit on"
    )
    version: int | None = Field(
        default=None, description="Entity version the caller based the edit on"
    )

    def changed_fields(self) -> set[str]:
        """Names of entity fields the caller sent."""
        return set(self.model_fields_set) - CONTROL_FIELDS


class ProductUpdateRequest(BaseModel):
    """Composite update of a product and its attribute values.

    ``ignore_conflict`` disables conflict checks for the nested
    attribute value edits only; the product itself is always checked.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None)
    type: str | None = Field(default=None)
    sku: str | None = Field(default=None)
    ean: str | None = Field(default=None)
    mpn: str | None = Field(default=None)
    catalog_id: str | None = Field(default=None)
    product_family_id: str | None = Field(default=None)
    owner_user_id: str | None = Field(default=None)
    assigned_user_id: str | None = Field(default=None)
    attribute_values: dict[str, AttributeValueUpdate] = Field(
        default_factory=dict, description="Nested edits keyed by attribute value id"
    )
    ignore_conflict: bool = Field(default=False)
    prev: dict[str, Any] | None = Field(default=None)
    version: int | None = Field(default=None)

    def changed_fields(self) -> set[str]:
        """Names of product fields the caller sent."""
        return set(self.model_fields_set) - CONTROL_FIELDS - {"attribute_values", "ignore_conflict"}
