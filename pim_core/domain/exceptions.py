"""Domain exceptions.

All domain-level errors that represent catalog rule violations.
Every error carries a translation ``key`` so the caller can render a
localized message; the English message is the fallback.
"""

from typing import Any, ClassVar


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    key: ClassVar[str] = "domainError"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EntityNotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    key = "notFound"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f"{entity_type} '{entity_id}' not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class InvalidInputError(DomainError):
    """Raised when an operation receives malformed input."""

    key = "wrongInputData"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid input: {reason}", details={"reason": reason})


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    key = "invalidStateTransition"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "CompositeUpdate").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Product Errors
# ============================================================================


class ImmutableFieldChangedError(DomainError):
    """Raised when a field that is fixed after creation is changed."""

    key = "youCantChangeFieldOfTypeInProduct"

    def __init__(self, entity_type: str, entity_id: str, field: str) -> None:
        super().__init__(
            f"Field '{field}' of {entity_type} {entity_id} cannot be changed after creation",
            details={"entity_type": entity_type, "entity_id": entity_id, "field": field},
        )


class UniqueFieldViolationError(DomainError):
    """Raised when SKU, EAN or MPN is already used inside the catalog."""

    key = "productFieldShouldBeUnique"

    def __init__(self, field: str, value: str, catalog_id: str | None) -> None:
        super().__init__(
            f"Product with {field} '{value}' already exists in catalog {catalog_id or '-'}",
            details={"field": field, "value": value, "catalog_id": catalog_id},
        )


# ============================================================================
# Category / Catalog Errors
# ============================================================================


class NonLeafCategoryLinkError(DomainError):
    """Raised when linking a product to a category that has children."""

    key = "productCanNotLinkToNonLeafCategory"

    def __init__(self, category_id: str) -> None:
        super().__init__(
            f"Product cannot be linked to non-leaf category {category_id}",
            details={"category_id": category_id},
        )


class CategoryCatalogMismatchError(DomainError):
    """Raised when a category tree is not legal for the product's catalog."""

    key = "youShouldUseCategoriesFromThoseTreesThatLinkedWithProductCatalog"

    def __init__(self, category_id: str, catalog_id: str | None) -> None:
        super().__init__(
            f"Category {category_id} belongs to a tree not linked with catalog {catalog_id or '-'}",
            details={"category_id": category_id, "catalog_id": catalog_id},
        )


class CatalogCategoryMismatchError(DomainError):
    """Raised by the restrict policy when a catalog change orphans a category."""

    key = "productCatalogChangeException"

    def __init__(self, product_id: str, category_id: str, catalog_id: str | None) -> None:
        super().__init__(
            f"Catalog of product {product_id} cannot change to {catalog_id or '-'}: "
            f"category {category_id} would become illegal",
            details={
                "product_id": product_id,
                "category_id": category_id,
                "catalog_id": catalog_id,
            },
        )


class CategoryAlreadyRelatedError(DomainError):
    """Raised when a product is linked to a category twice."""

    key = "isCategoryAlreadyRelated"

    def __init__(self, product_id: str, category_id: str) -> None:
        super().__init__(
            f"Product {product_id} is already linked to category {category_id}",
            details={"product_id": product_id, "category_id": category_id},
        )


# ============================================================================
# Channel Errors
# ============================================================================


class ChannelAlreadyRelatedError(DomainError):
    """Raised when a channel relation is created twice."""

    key = "isChannelAlreadyRelated"

    def __init__(self, product_id: str, channel_id: str) -> None:
        super().__init__(
            f"Channel {channel_id} is already related to product {product_id}",
            details={"product_id": product_id, "channel_id": channel_id},
        )


class ChannelNotRelatedError(DomainError):
    """Raised when a channel-scoped value targets a channel the product lacks."""

    key = "noSuchChannelInProduct"

    def __init__(self, product_id: str, channel_id: str | None) -> None:
        super().__init__(
            f"Channel {channel_id or '-'} is not related to product {product_id}",
            details={"product_id": product_id, "channel_id": channel_id},
        )


# ============================================================================
# Attribute Value Errors
# ============================================================================


class DuplicateAttributeValueError(DomainError):
    """Raised when a second value for the same attribute slot is written."""

    key = "productAttributeAlreadyExists"

    def __init__(
        self,
        product_id: str,
        attribute_id: str,
        scope: str,
        channel_id: str | None,
    ) -> None:
        super().__init__(
            f"Product {product_id} already has a {scope} value for attribute {attribute_id}"
            + (f" in channel {channel_id}" if channel_id else ""),
            details={
                "product_id": product_id,
                "attribute_id": attribute_id,
                "scope": scope,
                "channel_id": channel_id,
            },
        )


class FamilyAttributeMismatchError(DomainError):
    """Raised when a family-origin value no longer matches its template."""

    key = "productFamilyAttributeMismatch"

    def __init__(self, value_id: str, template_id: str) -> None:
        super().__init__(
            f"Attribute value {value_id} does not match family template {template_id}",
            details={"value_id": value_id, "template_id": template_id},
        )


class FamilyMaterializationError(DomainError):
    """Raised after a save when some family templates could not be materialized.

    The save itself and every template that did materialize stay in
    place; running the reconciliation again repairs the rest.
    """

    key = "productFamilyAttributesNotCreated"

    def __init__(self, product_id: str, failures: dict[str, str]) -> None:
        super().__init__(
            f"Family attributes of product {product_id} not created: "
            + ", ".join(sorted(failures)),
            details={"product_id": product_id, "template_ids": sorted(failures)},
        )
        self.failures = failures


# ============================================================================
# Concurrency Errors
# ============================================================================


class VersionConflictError(DomainError):
    """Raised by a single save whose input was based on stale data."""

    key = "editedByAnotherUser"

    def __init__(self, entity_type: str, entity_id: str, fields: list[str]) -> None:
        super().__init__(
            f"{entity_type} {entity_id} was edited by another user: {', '.join(fields)}",
            details={"entity_type": entity_type, "entity_id": entity_id, "fields": fields},
        )
        self.fields = fields


class ConflictError(DomainError):
    """Raised once per composite update with every conflicting field."""

    key = "editedByAnotherUser"

    def __init__(self, fields: list[str], message: str | None = None) -> None:
        super().__init__(
            message or f"Fields were edited by another user: {', '.join(fields)}",
            details={"fields": fields},
        )
        self.fields = fields


# ============================================================================
# Ordering / Association Errors
# ============================================================================


class InvalidPositionError(DomainError):
    """Raised when a sort position is negative."""

    key = "invalidSortOrder"

    def __init__(self, position: int) -> None:
        super().__init__(
            f"Sort position must be a non-negative integer, got {position}",
            details={"position": position},
        )


class AssociationError(DomainError):
    """Raised when an association edge cannot be created."""

    key = "associationError"

    def __init__(self, main_product_id: str, related_product_id: str, reason: str) -> None:
        super().__init__(
            f"Cannot associate {main_product_id} with {related_product_id}: {reason}",
            details={
                "main_product_id": main_product_id,
                "related_product_id": related_product_id,
                "reason": reason,
            },
        )
