"""Tests for the attribute value service."""

import pytest

from pim_core.application.attribute_service import AttributeValueService, field_snapshot
from pim_core.application.schemas import AttributeValueUpdate, LocaleValueUpdate
from pim_core.domain.entities import AttributeValue, Product, ProductChannel
from pim_core.domain.exceptions import (
    ChannelNotRelatedError,
    DuplicateAttributeValueError,
    FamilyAttributeMismatchError,
    InvalidInputError,
    VersionConflictError,
)
from pim_core.domain.value_objects import AttributeScope, LocaleValue, SaveOptions


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def service(store, config) -> AttributeValueService:
    """Create an attribute value service over the seeded store."""
    return AttributeValueService(store, config)


@pytest.fixture
def color_value(store) -> AttributeValue:
    """Stored multilingual color value of p1."""
    pav = AttributeValue(
        id="pav-color",
        product_id="p1",
        attribute_id="attr-color",
        value="red",
        locale_values={"de_DE": LocaleValue(value="rot")},
    )
    store.load(pav)
    return pav


# ============================================================================
# Test: Save Validation
# ============================================================================


class TestSave:
    """Tests for validated saves."""

    @pytest.mark.asyncio
    async def test_duplicate_key_rejected(self, service, color_value) -> None:
        """Second value for the same key is rejected."""
        with pytest.raises(DuplicateAttributeValueError) as exc_info:
            await service.save(AttributeValue(product_id="p1", attribute_id="attr-color"))

        assert exc_info.value.key == "productAttributeAlreadyExists"

    @pytest.mark.asyncio
    async def test_same_attribute_other_channel_allowed(self, store, service) -> None:
        """Channel values on different channels do not collide."""
        store.load(
            ProductChannel(id="r1", product_id="p1", channel_id="ch-web"),
            ProductChannel(id="r2", product_id="p1", channel_id="ch-shop"),
        )

        for channel_id in ("ch-web", "ch-shop"):
            await service.save(
                AttributeValue(
                    product_id="p1",
                    attribute_id="attr-size",
                    scope=AttributeScope.CHANNEL,
                    channel_id=channel_id,
                )
            )

        assert await store.count(AttributeValue, attribute_id="attr-size") == 2

    @pytest.mark.asyncio
    async def test_channel_must_be_related(self, store, service) -> None:
        """Channel values need the channel on the product."""
        pav = AttributeValue(
            product_id="p1",
            attribute_id="attr-size",
            scope=AttributeScope.CHANNEL,
            channel_id="ch-web",
        )

        with pytest.raises(ChannelNotRelatedError):
            await service.save(pav)

        store.load(ProductChannel(id="r1", product_id="p1", channel_id="ch-web"))
        await service.save(pav)

    @pytest.mark.asyncio
    async def test_channel_value_needs_channel(self, service) -> None:
        """Channel scope without channel is rejected."""
        with pytest.raises(InvalidInputError):
            await service.save(
                AttributeValue(product_id="p1", attribute_id="attr-size", scope=AttributeScope.CHANNEL)
            )

    @pytest.mark.asyncio
    async def test_global_value_drops_channel(self, store, service) -> None:
        """Global values never keep a channel."""
        pav = await service.save(
            AttributeValue(product_id="p1", attribute_id="attr-weight", channel_id="ch-web")
        )

        assert (await store.require(AttributeValue, pav.id)).channel_id is None

    @pytest.mark.asyncio
    async def test_template_mismatch_rejected(self, service) -> None:
        """Value pointing at another attribute's template is rejected."""
        with pytest.raises(FamilyAttributeMismatchError):
            await service.save(
                AttributeValue(
                    product_id="p1",
                    attribute_id="attr-weight",
                    family_attribute_id="t-color",
                )
            )

    @pytest.mark.asyncio
    async def test_hooks_run_for_user_saves_only(self, store, config) -> None:
        """Hooks run for user saves and are skipped for derived ones."""
        seen: list[str] = []

        async def hook(pav: AttributeValue) -> None:
            seen.append(pav.attribute_id)

        service = AttributeValueService(store, config, hooks=[hook])
        await service.save(AttributeValue(product_id="p1", attribute_id="attr-weight"))
        await service.save(
            AttributeValue(product_id="p1", attribute_id="attr-size"), SaveOptions.derived()
        )

        assert seen == ["attr-weight"]


# ============================================================================
# Test: Partial Updates
# ============================================================================


class TestUpdate:
    """Tests for partial edits with conflict detection."""

    @pytest.mark.asyncio
    async def test_update_changes_sent_fields(self, store, service, color_value) -> None:
        """Only sent fields change."""
        await service.update("pav-color", AttributeValueUpdate(value="blue", version=1))

        stored = await store.require(AttributeValue, "pav-color")
        assert stored.value == "blue"
        assert stored.locale_value("de_DE").value == "rot"
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, store, service, color_value) -> None:
        """Stale version reports the sent fields and writes nothing."""
        with pytest.raises(VersionConflictError) as exc_info:
            await service.update(
                "pav-color", AttributeValueUpdate(value="blue", is_required=True, version=7)
            )

        assert exc_info.value.fields == ["is_required", "value"]
        assert (await store.require(AttributeValue, "pav-color")).value == "red"

    @pytest.mark.asyncio
    async def test_stale_prev_conflicts(self, service, color_value) -> None:
        """Fields that differ from what the caller saw conflict."""
        changes = AttributeValueUpdate(
            value="green",
            prev={"value": "blue", "value_de_DE": "rot"},
        )

        with pytest.raises(VersionConflictError) as exc_info:
            await service.update("pav-color", changes)

        assert exc_info.value.fields == ["value"]

    @pytest.mark.asyncio
    async def test_ignore_conflict(self, store, service, color_value) -> None:
        """Conflict detection can be switched off."""
        await service.update(
            "pav-color", AttributeValueUpdate(value="blue", version=7), ignore_conflict=True
        )

        assert (await store.require(AttributeValue, "pav-color")).value == "blue"

    @pytest.mark.asyncio
    async def test_unchanged_edit_not_written(self, store, service, color_value) -> None:
        """Edit that changes nothing is skipped."""
        await service.update("pav-color", AttributeValueUpdate(value="red", version=1))

        assert (await store.require(AttributeValue, "pav-color")).version == 1

    @pytest.mark.asyncio
    async def test_locale_fields_merged(self, store, service, color_value) -> None:
        """Locale edits only touch the sent shadow fields."""
        await service.update(
            "pav-color",
            AttributeValueUpdate(
                locale_values={
                    "de_DE": LocaleValueUpdate(owner_user_id="u-translator"),
                    "fr_FR": LocaleValueUpdate(value="rouge"),
                }
            ),
        )

        stored = await store.require(AttributeValue, "pav-color")
        assert stored.locale_value("de_DE") == LocaleValue(value="rot", owner_user_id="u-translator")
        assert stored.locale_value("fr_FR").value == "rouge"

    def test_snapshot_flattens_locales(self, color_value) -> None:
        """Snapshot exposes locale fields with a locale suffix."""
        snapshot = field_snapshot(color_value)

        assert snapshot["value"] == "red"
        assert snapshot["value_de_DE"] == "rot"


# ============================================================================
# Test: Bulk Operations
# ============================================================================


class TestBulk:
    """Tests for bulk writes and duplication."""

    @pytest.mark.asyncio
    async def test_save_product_attributes(self, store, service, color_value) -> None:
        """Global values are created or updated from the payload."""
        product = await store.require(Product, "p1")

        saved = await service.save_product_attributes(
            product,
            {
                "attr-color": {"locales": {"default": "black", "fr_FR": "noir"}},
                "attr-weight": {"locales": {"default": "1kg"}, "data": {"unit": "kg"}},
            },
        )

        assert [pav.attribute_id for pav in saved] == ["attr-color", "attr-weight"]
        color = await store.require(AttributeValue, "pav-color")
        assert color.value == "black"
        assert color.locale_value("fr_FR").value == "noir"
        assert color.locale_value("de_DE").value == "rot"
        weight = await store.find_one(AttributeValue, attribute_id="attr-weight")
        assert weight.value == "1kg"
        assert weight.data == {"unit": "kg"}
        assert weight.owner_user_id == "u-owner"

    @pytest.mark.asyncio
    async def test_duplicate_values_same_family(self, store, service, color_value) -> None:
        """Values are copied between products of the same family."""
        source = await store.require(Product, "p1")
        target = await store.require(Product, "p2")

        assert await service.duplicate_attribute_values(source, target) == 1

        copy = await store.find_one(AttributeValue, product_id="p2")
        assert copy.id != "pav-color"
        assert copy.value == "red"
        assert copy.locale_value("de_DE").value == "rot"

    @pytest.mark.asyncio
    async def test_duplicate_values_other_family(self, store, service, color_value) -> None:
        """Products of different families share no values."""
        source = await store.require(Product, "p1")
        target = await store.require(Product, "p2")
        target.product_family_id = "fam-basic"

        assert await service.duplicate_attribute_values(source, target) == 0
