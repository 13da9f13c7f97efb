"""Product application service.

Orchestrates product saves including:
- SKU/EAN/MPN uniqueness inside the catalog and the immutable type
- Catalog change policy and family reconciliation
- Composite updates that wrap nested attribute value edits and report
  every conflicting field at once
- Product duplication
"""

from typing import Any

import structlog

from pim_core.application.association_service import AssociationService
from pim_core.application.attribute_service import (
    AttributeMaterializer,
    AttributeValueService,
    ReconcileResult,
)
from pim_core.application.channel_cascade_service import ChannelCascadeManager
from pim_core.application.schemas import ProductUpdateRequest
from pim_core.domain.entities import Catalog, CompositeUpdate, Product, ProductFamily
from pim_core.domain.exceptions import (
    ConflictError,
    FamilyMaterializationError,
    ImmutableFieldChangedError,
    UniqueFieldViolationError,
    VersionConflictError,
)
from pim_core.infrastructure.config import Settings, settings as default_settings
from pim_core.infrastructure.store import InMemoryCatalogStore, get_catalog_store
from pim_core.infrastructure.translations import Translator, get_translator

logger = structlog.get_logger()

UNIQUE_FIELDS = ("sku", "ean", "mpn")


class ProductService:
    """Application service for product saves.

    Example usage:
        service = ProductService(store)
        product = await service.create_product(Product(name="Jacket", sku="JKT-1"))
        product = await service.update_product(
            product.id,
            ProductUpdateRequest(name="Rain jacket", version=product.version),
        )
    """

    def __init__(
        self,
        store: InMemoryCatalogStore,
        config: Settings | None = None,
        translator: Translator | None = None,
        values: AttributeValueService | None = None,
        materializer: AttributeMaterializer | None = None,
        cascade: ChannelCascadeManager | None = None,
        associations: AssociationService | None = None,
    ) -> None:
        """Initialize service.

        Args:
            store: Catalog store.
            config: Settings.
            translator: Renders conflict messages.
            values: Attribute value service for nested edits.
            materializer: Family reconciliation.
            cascade: Category and channel bookkeeping.
            associations: Association edges, used when duplicating.
        """
        self.store = store
        self.config = config or default_settings
        self.translator = translator or get_translator()
        self.values = values or AttributeValueService(store, self.config)
        self.materializer = materializer or AttributeMaterializer(store, self.values, self.config)
        self.cascade = cascade or ChannelCascadeManager(store, config=self.config)
        self.associations = associations or AssociationService(store)

    async def create_product(self, product: Product) -> Product:
        """Store a new product and materialize its family values.

        Raises:
            FamilyMaterializationError: If some templates of the family
                could not be materialized; the product is stored anyway.
        """
        await self._check_unique_fields(product)
        if product.catalog_id is not None:
            await self.store.require(Catalog, product.catalog_id)
        if product.product_family_id is not None:
            await self.store.require(ProductFamily, product.product_family_id)

        await self.store.save(product)
        logger.info("Product created", product_id=product.id, catalog_id=product.catalog_id)

        if product.product_family_id is not None:
            self._check_reconciled(product, await self.materializer.reconcile(product))
        return product

    async def save_product(self, product: Product, is_duplicate: bool = False) -> Product:
        """Save changes of an existing product.

        Args:
            product: Product carrying the new state.
            is_duplicate: Skip family reconciliation; values are copied
                by the duplication instead.

        Returns:
            The saved product.

        Raises:
            ImmutableFieldChangedError: If the type changed.
            UniqueFieldViolationError: If SKU, EAN or MPN is taken.
            CatalogCategoryMismatchError: If the restrict policy rejects
                the catalog change.
            FamilyMaterializationError: If some templates of the new family
                could not be materialized; the product is saved anyway.
        """
        stored = await self.store.require(Product, product.id)

        if product.type != stored.type:
            raise ImmutableFieldChangedError("Product", product.id, "type")
        await self._check_unique_fields(product)

        catalog_changed = product.catalog_id != stored.catalog_id
        if catalog_changed and product.catalog_id is not None:
            await self.store.require(Catalog, product.catalog_id)

        family_changed = product.product_family_id != stored.product_family_id
        if family_changed and product.product_family_id is not None:
            await self.store.require(ProductFamily, product.product_family_id)

        if catalog_changed:
            await self._move_to_catalog(product)
        else:
            await self.store.save(product)

        for event in product.collect_events():
            logger.info("Domain event", product_id=product.id, **event.to_dict())

        if family_changed and not is_duplicate:
            self._check_reconciled(product, await self.materializer.reconcile(product))
        return product

    async def update_product(self, product_id: str, request: ProductUpdateRequest) -> Product:
        """Apply a composite update of a product and its attribute values.

        Nested edits run inside one store transaction. A conflict in one
        nested edit does not stop the others; the product is saved last
        and every conflicting field ends up in a single ConflictError,
        after the whole transaction is rolled back.

        Args:
            product_id: Product to update.
            request: Product fields and nested attribute value edits.

        Returns:
            The saved product.

        Raises:
            ConflictError: If any save was based on stale data.
            FamilyMaterializationError: After the commit, if the family
                change left templates unmaterialized.
        """
        update = CompositeUpdate.open(product_id, transactional=bool(request.attribute_values))
        if update.transactional:
            await self.store.begin()

        try:
            update.start_nested_saves()
            for pav_id, changes in request.attribute_values.items():
                try:
                    await self.values.update(
                        pav_id, changes, ignore_conflict=request.ignore_conflict
                    )
                except VersionConflictError as e:
                    update.add_conflicts(e.fields)

            product = None
            incomplete: FamilyMaterializationError | None = None
            try:
                product = await self._save_primary(product_id, request)
            except VersionConflictError as e:
                update.add_conflicts(e.fields)
            except FamilyMaterializationError as e:
                incomplete = e

            if update.has_conflicts:
                raise ConflictError(
                    update.conflicts,
                    message=self.translator.translate("editedByAnotherUser", fields=update.conflicts),
                )
        except Exception:
            if update.transactional:
                await self.store.rollback()
            update.roll_back()
            logger.warning(
                "Composite update rolled back",
                product_id=product_id,
                conflicts=update.conflicts,
            )
            raise

        if update.transactional:
            await self.store.commit()
        update.commit()
        logger.info(
            "Composite update committed",
            product_id=product_id,
            nested=len(request.attribute_values),
        )
        if incomplete is not None:
            raise incomplete
        return product

    async def duplicate_product(self, source_id: str, name: str | None = None) -> Product:
        """Create a copy of a product with its values and associations.

        SKU, EAN and MPN are not copied.

        Args:
            source_id: Product to copy.
            name: Name of the copy, defaults to the source name.

        Returns:
            The new product.
        """
        source = await self.store.require(Product, source_id)
        duplicate = Product(
            name=name or source.name,
            type=source.type,
            catalog_id=source.catalog_id,
            product_family_id=source.product_family_id,
            owner_user_id=source.owner_user_id,
            assigned_user_id=source.assigned_user_id,
            team_ids=list(source.team_ids),
        )
        await self.store.save(duplicate)

        copied_values = await self.values.duplicate_attribute_values(source, duplicate)
        copied_edges = await self.associations.duplicate_associations(source, duplicate)

        logger.info(
            "Product duplicated",
            source_id=source_id,
            product_id=duplicate.id,
            attribute_values=copied_values,
            associations=copied_edges,
        )
        return duplicate

    async def _save_primary(self, product_id: str, request: ProductUpdateRequest) -> Product:
        product = await self.store.require(Product, product_id)
        self._check_conflict(product, request)

        changed = request.changed_fields()
        if not changed:
            return product

        for name in changed:
            if name == "catalog_id":
                product.change_catalog(request.catalog_id)
            elif name == "product_family_id":
                product.change_family(request.product_family_id)
            else:
                setattr(product, name, getattr(request, name))
        return await self.save_product(product)

    async def _move_to_catalog(self, product: Product) -> None:
        await self.store.begin()
        try:
            await self.cascade.on_catalog_change(product, product.catalog_id)
            await self.store.save(product)
        except Exception:
            await self.store.rollback()
            raise
        await self.store.commit()

    @staticmethod
    def _check_reconciled(product: Product, result: ReconcileResult) -> None:
        if not result.success:
            raise FamilyMaterializationError(product.id, result.failures)

    @staticmethod
    def _check_conflict(product: Product, request: ProductUpdateRequest) -> None:
        if request.prev is not None:
            fields = [
                name
                for name, seen in request.prev.items()
                if getattr(product, name, None) != seen
            ]
        elif request.version is not None and request.version != product.version:
            fields = sorted(request.changed_fields())
        else:
            fields = []
        if fields:
            raise VersionConflictError("Product", product.id, fields)

    async def _check_unique_fields(self, product: Product) -> None:
        for name in UNIQUE_FIELDS:
            value: Any = getattr(product, name)
            if not value:
                continue
            others = await self.store.find(
                Product,
                where=lambda other: other.id != product.id,
                catalog_id=product.catalog_id,
                **{name: value},
            )
            if others:
                raise UniqueFieldViolationError(name, value, product.catalog_id)


def get_product_service(store: InMemoryCatalogStore | None = None) -> ProductService:
    """Get product service instance.

    Args:
        store: Catalog store, defaults to the shared one.

    Returns:
        ProductService instance.
    """
    return ProductService(store or get_catalog_store())
