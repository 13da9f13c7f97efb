"""Locale projection of attribute values.

One stored attribute value is read as zero or more virtual records:
the default record plus one record per locale the value is published
in. Virtual records are immutable views derived from the stored value.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog

from pim_core.domain.entities import Attribute, AttributeValue, Channel, Product, ProductChannel
from pim_core.domain.value_objects import AttributeScope, LOCALE_IN_ID_SEPARATOR
from pim_core.infrastructure.acl import READ, AccessChecker, AllowAllAccessChecker
from pim_core.infrastructure.config import Settings, settings as default_settings
from pim_core.infrastructure.store import InMemoryCatalogStore, get_catalog_store

logger = structlog.get_logger()


@dataclass(frozen=True)
class AttributeValueView:
    """Read-only record handed to the presentation layer.

    Attributes:
        id: Stored id, or ``<id>~<locale>`` for a locale record.
        base_id: Id of the stored value the record derives from.
        locale: Locale of the record, None for the default record.
        title: Display title, suffixed with the locale for locale records.
            Locale records also carry the localized attribute name as
            ``data["title"]``.
        titles: Localized attribute names, only for non-multilingual
            attributes.
    """

    id: str
    base_id: str
    product_id: str
    attribute_id: str
    scope: AttributeScope
    channel_id: str | None
    is_required: bool
    family_attribute_id: str | None
    title: str
    value: Any = None
    type_value: Any = None
    owner_user_id: str | None = None
    assigned_user_id: str | None = None
    locale: str | None = None
    titles: dict[str, str] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def default_of(
        cls,
        pav: AttributeValue,
        attribute: Attribute,
        titles: dict[str, str] | None = None,
    ) -> "AttributeValueView":
        """Build the default (un-suffixed) record of a stored value."""
        return cls(
            id=pav.id,
            base_id=pav.id,
            product_id=pav.product_id,
            attribute_id=pav.attribute_id,
            scope=pav.scope,
            channel_id=pav.channel_id,
            is_required=pav.is_required,
            family_attribute_id=pav.family_attribute_id,
            title=attribute.name,
            value=pav.value,
            type_value=pav.type_value,
            owner_user_id=pav.owner_user_id,
            assigned_user_id=pav.assigned_user_id,
            titles=dict(titles or {}),
            data=dict(pav.data),
        )

    def for_locale(
        self,
        pav: AttributeValue,
        attribute: Attribute,
        locale: str,
    ) -> "AttributeValueView":
        """Derive the record of one locale from a default record."""
        shadow = pav.locale_value(locale)
        return AttributeValueView(
            id=f"{self.base_id}{LOCALE_IN_ID_SEPARATOR}{locale}",
            base_id=self.base_id,
            product_id=self.product_id,
            attribute_id=self.attribute_id,
            scope=self.scope,
            channel_id=self.channel_id,
            is_required=self.is_required,
            family_attribute_id=self.family_attribute_id,
            title=f"{self.title} › {locale}",
            value=shadow.value,
            type_value=shadow.type_value,
            owner_user_id=shadow.owner_user_id,
            assigned_user_id=shadow.assigned_user_id,
            locale=locale,
            data={**self.data, "title": attribute.name_for(locale)},
        )


def project(
    pav: AttributeValue,
    attribute: Attribute,
    channel: Channel | None,
    all_locales: list[str],
) -> Iterator[AttributeValueView]:
    """Expand a stored value into its virtual records.

    Non-multilingual values are yielded once, with the attribute's
    localized names as ``titles``. Global multilingual values yield the
    default record and one record per locale of ``all_locales``. Channel
    values use the channel's locales instead; the default record only
    appears when the channel lists the main-locale marker. A Channel
    value whose channel is unknown has no locales and yields nothing.

    Args:
        pav: Stored value.
        attribute: Definition of the value's attribute.
        channel: Channel of a Channel-scoped value, if any.
        all_locales: Configured input locales.

    Yields:
        AttributeValueView records.
    """
    if not attribute.is_multilang:
        yield AttributeValueView.default_of(
            pav, attribute, titles={locale: attribute.name_for(locale) for locale in all_locales}
        )
        return

    default = AttributeValueView.default_of(pav, attribute)

    if pav.scope == AttributeScope.GLOBAL:
        yield default
        for locale in all_locales:
            yield default.for_locale(pav, attribute, locale)
        return

    if channel is None:
        return

    if channel.has_main_locale:
        yield default
    for locale in channel.extra_locales:
        yield default.for_locale(pav, attribute, locale)


class LocaleProjection:
    """Restartable iterable over the virtual records of one value.

    Every iteration starts a fresh projection, so the sequence can be
    consumed any number of times.
    """

    def __init__(
        self,
        pav: AttributeValue,
        attribute: Attribute,
        channel: Channel | None,
        all_locales: list[str],
    ) -> None:
        self.pav = pav
        self.attribute = attribute
        self.channel = channel
        self.all_locales = list(all_locales)

    def __iter__(self) -> Iterator[AttributeValueView]:
        return project(self.pav, self.attribute, self.channel, self.all_locales)


class AttributeValueReader:
    """Lists a product's attribute values the way readers see them."""

    def __init__(
        self,
        store: InMemoryCatalogStore,
        acl: AccessChecker | None = None,
        config: Settings | None = None,
    ) -> None:
        self.store = store
        self.acl = acl or AllowAllAccessChecker()
        self.config = config or default_settings

    async def list_for_product(self, product_id: str) -> list[AttributeValueView]:
        """List the readable values of a product.

        Only Global values and values of channels related to the product
        are listed. A value the caller may not read is dropped together
        with all of its locale records.

        Args:
            product_id: Product to read.

        Returns:
            Views, expanded per locale when multilingual mode is on.
        """
        await self.store.require(Product, product_id)
        related = {
            relation.channel_id
            for relation in await self.store.find(ProductChannel, product_id=product_id)
        }
        values = await self.store.find(
            AttributeValue,
            where=lambda pav: pav.scope == AttributeScope.GLOBAL or pav.channel_id in related,
            product_id=product_id,
        )

        views: list[AttributeValueView] = []
        denied = 0
        for pav in values:
            if not self.acl.check(pav, READ):
                denied += 1
                continue
            attribute = await self.store.require(Attribute, pav.attribute_id)
            if not self.config.is_multilang_active:
                views.append(AttributeValueView.default_of(pav, attribute))
                continue
            channel = await self.store.get(Channel, pav.channel_id)
            views.extend(
                LocaleProjection(pav, attribute, channel, self.config.input_language_list)
            )

        if denied:
            logger.debug("Attribute values hidden by access check", product_id=product_id, denied=denied)
        return views


def get_attribute_value_reader(
    store: InMemoryCatalogStore | None = None,
    acl: AccessChecker | None = None,
) -> AttributeValueReader:
    """Get attribute value reader instance."""
    return AttributeValueReader(store or get_catalog_store(), acl)
