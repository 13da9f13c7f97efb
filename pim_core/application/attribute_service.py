"""Attribute value application service.

Handles the stored attribute values of products:
- Validated saves that keep (product, attribute, scope, channel) unique
- Partial edits with optimistic conflict detection
- Bulk writes of Global values and copying values between products
- Materializing values from a product family's templates
"""

import dataclasses
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from pim_core.application.schemas import AttributeValueUpdate
from pim_core.domain.entities import (
    Attribute,
    AttributeValue,
    FamilyAttributeTemplate,
    Product,
    ProductChannel,
)
from pim_core.domain.exceptions import (
    ChannelNotRelatedError,
    DomainError,
    DuplicateAttributeValueError,
    FamilyAttributeMismatchError,
    InvalidInputError,
    VersionConflictError,
)
from pim_core.domain.value_objects import (
    AttributeScope,
    AttributeValueKey,
    LocaleValue,
    SaveOptions,
)
from pim_core.infrastructure.config import Settings, settings as default_settings
from pim_core.infrastructure.store import InMemoryCatalogStore, get_catalog_store

logger = structlog.get_logger()

SaveHook = Callable[[AttributeValue], Awaitable[None]]

# Fields compared for conflict detection and change tracking.
TRACKED_FIELDS = (
    "value",
    "type_value",
    "is_required",
    "owner_user_id",
    "assigned_user_id",
    "scope",
    "channel_id",
    "data",
)
LOCALE_FIELDS = ("value", "type_value", "owner_user_id", "assigned_user_id")

DEFAULT_LOCALE_KEY = "default"


def field_snapshot(pav: AttributeValue) -> dict[str, Any]:
    """Flatten the editable state of a value.

    Locale shadow fields appear as ``<field>_<locale>``, e.g.
    ``value_de_DE``.
    """
    snapshot = {name: getattr(pav, name) for name in TRACKED_FIELDS}
    for locale, shadow in pav.locale_values.items():
        for name in LOCALE_FIELDS:
            snapshot[f"{name}_{locale}"] = getattr(shadow, name)
    return snapshot


# ============================================================================
# Attribute Value Service
# ============================================================================


class AttributeValueService:
    """Validated persistence of attribute values.

    Example usage:
        service = AttributeValueService(store)
        pav = await service.save(AttributeValue(product_id="p1", attribute_id="a1"))
        await service.update(pav.id, AttributeValueUpdate(value="red", version=pav.version))
    """

    def __init__(
        self,
        store: InMemoryCatalogStore,
        config: Settings | None = None,
        hooks: list[SaveHook] | None = None,
    ) -> None:
        """Initialize service.

        Args:
            store: Catalog store.
            config: Settings.
            hooks: Extra callbacks run after user saves, such as
                variant propagation.
        """
        self.store = store
        self.config = config or default_settings
        self.hooks = list(hooks or [])

    async def find_copy(
        self,
        key: AttributeValueKey,
        exclude_id: str | None = None,
    ) -> AttributeValue | None:
        """Find the stored value occupying a uniqueness key."""
        found = await self.store.find(
            AttributeValue,
            where=lambda pav: pav.key == key and pav.id != exclude_id,
            product_id=key.product_id,
        )
        return found[0] if found else None

    async def list_for_product(self, product_id: str) -> list[AttributeValue]:
        return await self.store.find(AttributeValue, product_id=product_id)

    async def save(
        self,
        pav: AttributeValue,
        options: SaveOptions = SaveOptions(),
    ) -> AttributeValue:
        """Validate and store a value, inserting or replacing it.

        Args:
            pav: Value to store.
            options: One-shot overrides for derived writes.

        Returns:
            The stored value.

        Raises:
            DuplicateAttributeValueError: If another value holds the key.
            ChannelNotRelatedError: If a channel value targets a channel
                the product is not related to.
            FamilyAttributeMismatchError: If the value no longer matches
                its family template.
        """
        if pav.scope == AttributeScope.GLOBAL:
            pav.channel_id = None

        await self._validate(pav, options)
        await self.store.save(pav)

        if not options.skip_hooks:
            for hook in self.hooks:
                await hook(pav)

        logger.debug(
            "Attribute value saved",
            pav_id=pav.id,
            product_id=pav.product_id,
            attribute_id=pav.attribute_id,
            scope=pav.scope.value,
            channel_id=pav.channel_id,
        )
        return pav

    async def update(
        self,
        pav_id: str,
        changes: AttributeValueUpdate,
        ignore_conflict: bool = False,
        options: SaveOptions = SaveOptions(),
    ) -> AttributeValue:
        """Apply a partial edit to a stored value.

        An edit that leaves every field as it is does not write anything.

        Args:
            pav_id: Value to edit.
            changes: Fields to change, plus ``prev``/``version`` the
                caller based the edit on.
            ignore_conflict: Skip conflict detection.
            options: One-shot overrides.

        Returns:
            The stored value after the edit.

        Raises:
            VersionConflictError: If the value changed since the caller
                read it.
        """
        pav = await self.store.require(AttributeValue, pav_id)
        before = field_snapshot(pav)

        if not ignore_conflict:
            self._check_conflict(pav, before, changes)

        changed = changes.changed_fields()
        for name in changed.intersection(TRACKED_FIELDS):
            if name == "data":
                pav.data = dict(changes.data or {})
            else:
                setattr(pav, name, getattr(changes, name))
        if "locale_values" in changed:
            for locale, shadow in changes.locale_values.items():
                pav.locale_values[locale] = dataclasses.replace(
                    pav.locale_value(locale),
                    **{name: getattr(shadow, name) for name in shadow.model_fields_set},
                )
        if pav.scope == AttributeScope.GLOBAL:
            pav.channel_id = None

        if field_snapshot(pav) == before:
            logger.debug("Attribute value not modified", pav_id=pav_id)
            return pav

        return await self.save(pav, options)

    async def save_product_attributes(
        self,
        product: Product,
        payload: dict[str, dict[str, Any]],
    ) -> list[AttributeValue]:
        """Upsert Global values of a product in one call.

        Args:
            product: Product owning the values.
            payload: ``{attribute_id: {"locales": {"default" | locale:
                value}, "data": {...}}}``.

        Returns:
            The stored values in payload order.
        """
        saved = []
        for attribute_id, entry in payload.items():
            key = AttributeValueKey.of(product.id, attribute_id, AttributeScope.GLOBAL, None)
            pav = await self.find_copy(key)
            if pav is None:
                pav = AttributeValue(product_id=product.id, attribute_id=attribute_id)
                self._inherit_ownership(pav, product)

            for locale, value in entry.get("locales", {}).items():
                if locale == DEFAULT_LOCALE_KEY:
                    pav.value = value
                else:
                    pav.locale_values[locale] = dataclasses.replace(
                        pav.locale_value(locale), value=value
                    )
            if "data" in entry:
                pav.data = {**pav.data, **entry["data"]}

            saved.append(await self.save(pav))

        logger.info("Product attributes saved", product_id=product.id, count=len(saved))
        return saved

    async def duplicate_attribute_values(self, source: Product, target: Product) -> int:
        """Copy the values of one product onto another.

        Only products of the same family share values. Values whose key
        is already taken on the target are left alone.

        Returns:
            Number of copied values.
        """
        if source.product_family_id != target.product_family_id:
            return 0

        copied = 0
        for pav in await self.list_for_product(source.id):
            duplicate = AttributeValue(
                product_id=target.id,
                attribute_id=pav.attribute_id,
                scope=pav.scope,
                channel_id=pav.channel_id,
                is_required=pav.is_required,
                family_attribute_id=pav.family_attribute_id,
                value=pav.value,
                type_value=pav.type_value,
                owner_user_id=pav.owner_user_id,
                assigned_user_id=pav.assigned_user_id,
                team_ids=list(pav.team_ids),
                locale_values=dict(pav.locale_values),
                data=dict(pav.data),
            )
            if await self.find_copy(duplicate.key) is not None:
                continue
            await self.save(duplicate, SaveOptions.derived())
            copied += 1
        return copied

    def _inherit_ownership(self, pav: AttributeValue, product: Product) -> None:
        if self.config.attribute_ownership_tracked_externally:
            return
        pav.owner_user_id = product.owner_user_id
        pav.assigned_user_id = product.assigned_user_id
        pav.team_ids = list(product.team_ids)

    async def _validate(self, pav: AttributeValue, options: SaveOptions) -> None:
        await self.store.require(Product, pav.product_id)
        await self.store.require(Attribute, pav.attribute_id)

        if pav.scope == AttributeScope.CHANNEL:
            if not pav.channel_id:
                raise InvalidInputError("a Channel value needs a channel")
            if not options.skip_channel_validation and not await self.store.count(
                ProductChannel, product_id=pav.product_id, channel_id=pav.channel_id
            ):
                raise ChannelNotRelatedError(pav.product_id, pav.channel_id)

        if pav.family_attribute_id and not options.skip_family_validation:
            template = await self.store.get(FamilyAttributeTemplate, pav.family_attribute_id)
            if template is None or not _matches_template(pav, template):
                raise FamilyAttributeMismatchError(pav.id, pav.family_attribute_id)

        if await self.find_copy(pav.key, exclude_id=pav.id) is not None:
            raise DuplicateAttributeValueError(
                pav.product_id, pav.attribute_id, pav.scope.value, pav.channel_id
            )

    @staticmethod
    def _check_conflict(
        pav: AttributeValue,
        current: dict[str, Any],
        changes: AttributeValueUpdate,
    ) -> None:
        if changes.prev is not None:
            fields = [name for name, seen in changes.prev.items() if current.get(name) != seen]
        elif changes.version is not None and changes.version != pav.version:
            fields = sorted(changes.changed_fields())
        else:
            fields = []
        if fields:
            raise VersionConflictError("AttributeValue", pav.id, fields)


def _matches_template(pav: AttributeValue, template: FamilyAttributeTemplate) -> bool:
    if template.attribute_id != pav.attribute_id or template.scope != pav.scope:
        return False
    return template.scope == AttributeScope.GLOBAL or template.channel_id == pav.channel_id


# ============================================================================
# Attribute Materializer
# ============================================================================


@dataclass
class ReconcileResult:
    """Outcome of reconciling a product with its family.

    Attributes:
        detached: Values whose template origin was cleared.
        materialized: Values created from templates.
        claimed: Existing values taken over by a template.
        failures: Template id to error message for templates that could
            not be materialized.
    """

    detached: list[str] = field(default_factory=list)
    materialized: list[str] = field(default_factory=list)
    claimed: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failures


class AttributeMaterializer:
    """Synchronizes a product's values with its family's templates.

    Reconciling is idempotent and always works from current data, so a
    run that stopped halfway, or reported failures, is repaired by
    running it again.
    """

    def __init__(
        self,
        store: InMemoryCatalogStore,
        values: AttributeValueService | None = None,
        config: Settings | None = None,
    ) -> None:
        self.store = store
        self.config = config or default_settings
        self.values = values or AttributeValueService(store, self.config)

    async def reconcile(self, product: Product) -> ReconcileResult:
        """Rebuild the family-origin values of a product.

        Family origins are cleared first without deleting any data. Each
        template of the current family then either creates a new value
        or claims the value already holding its key. A failing template
        is reported and does not undo the others.

        Args:
            product: Product whose family changed.

        Returns:
            ReconcileResult describing what happened per value.
        """
        result = ReconcileResult()

        origin_values = await self.store.find(
            AttributeValue,
            where=lambda pav: pav.family_attribute_id is not None,
            product_id=product.id,
        )
        for pav in origin_values:
            pav.family_attribute_id = None
            await self.store.save(pav)
            result.detached.append(pav.id)

        if product.product_family_id is None:
            logger.info("Product has no family", product_id=product.id, detached=len(result.detached))
            return result

        templates = await self.store.find(
            FamilyAttributeTemplate, family_id=product.product_family_id
        )
        templates.sort(key=lambda template: (template.sort_order, template.id))

        for template in templates:
            try:
                await self._materialize(product, template, result)
            except DomainError as e:
                result.failures[template.id] = e.message
                logger.warning(
                    "Template materialization failed",
                    product_id=product.id,
                    template_id=template.id,
                    error=e.message,
                )

        logger.info(
            "Product family reconciled",
            product_id=product.id,
            family_id=product.product_family_id,
            materialized=len(result.materialized),
            claimed=len(result.claimed),
            failed=len(result.failures),
        )
        return result

    async def _materialize(
        self,
        product: Product,
        template: FamilyAttributeTemplate,
        result: ReconcileResult,
    ) -> None:
        candidate = await self._build_candidate(product, template)

        existing = await self.values.find_copy(candidate.key)
        if existing is not None:
            existing.family_attribute_id = template.id
            existing.is_required = template.is_required
            await self.values.save(existing, SaveOptions.derived())
            result.claimed.append(existing.id)
            logger.warning(
                "Existing attribute value claimed by template",
                product_id=product.id,
                pav_id=existing.id,
                template_id=template.id,
            )
            return

        await self.values.save(
            candidate, SaveOptions(skip_channel_validation=True, skip_hooks=True)
        )
        result.materialized.append(candidate.id)

    async def _build_candidate(
        self,
        product: Product,
        template: FamilyAttributeTemplate,
    ) -> AttributeValue:
        attribute = await self.store.require(Attribute, template.attribute_id)
        candidate = AttributeValue(
            product_id=product.id,
            attribute_id=template.attribute_id,
            scope=template.scope,
            channel_id=template.channel_id if template.scope == AttributeScope.CHANNEL else None,
            is_required=template.is_required,
            family_attribute_id=template.id,
        )

        if not self.config.attribute_ownership_tracked_externally:
            candidate.owner_user_id = product.owner_user_id
            candidate.assigned_user_id = product.assigned_user_id
            candidate.team_ids = list(product.team_ids)
            if attribute.is_multilang and self.config.is_multilang_active:
                candidate.locale_values = {
                    locale: LocaleValue(
                        owner_user_id=product.owner_user_id,
                        assigned_user_id=product.assigned_user_id,
                    )
                    for locale in self.config.input_language_list
                }
        return candidate


def get_attribute_value_service(
    store: InMemoryCatalogStore | None = None,
) -> AttributeValueService:
    """Get attribute value service instance."""
    return AttributeValueService(store or get_catalog_store())


def get_attribute_materializer(
    store: InMemoryCatalogStore | None = None,
) -> AttributeMaterializer:
    """Get attribute materializer instance."""
    return AttributeMaterializer(store or get_catalog_store())
