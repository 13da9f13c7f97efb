"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from pim_core.application.association_service import (
    AssociationService,
    get_association_service,
)
from pim_core.application.attribute_service import (
    AttributeMaterializer,
    AttributeValueService,
    ReconcileResult,
    get_attribute_materializer,
    get_attribute_value_service,
)
from pim_core.application.channel_cascade_service import (
    ChannelCascadeManager,
    get_channel_cascade_manager,
)
from pim_core.application.locale_projection import (
    AttributeValueReader,
    AttributeValueView,
    LocaleProjection,
    get_attribute_value_reader,
    project,
)
from pim_core.application.ordering_service import (
    OrderingEngine,
    get_ordering_engine,
)
from pim_core.application.product_service import (
    ProductService,
    get_product_service,
)
from pim_core.application.schemas import (
    AttributeValueUpdate,
    LocaleValueUpdate,
    ProductUpdateRequest,
)

__all__ = [
    "AssociationService",
    "get_association_service",
    "AttributeMaterializer",
    "AttributeValueService",
    "ReconcileResult",
    "get_attribute_materializer",
    "get_attribute_value_service",
    "ChannelCascadeManager",
    "get_channel_cascade_manager",
    "AttributeValueReader",
    "AttributeValueView",
    "LocaleProjection",
    "get_attribute_value_reader",
    "project",
    "OrderingEngine",
    "get_ordering_engine",
    "ProductService",
    "get_product_service",
    "AttributeValueUpdate",
    "LocaleValueUpdate",
    "ProductUpdateRequest",
]
