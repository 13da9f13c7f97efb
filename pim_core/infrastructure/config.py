"""Application configuration.

Loads settings from environment variables (prefix ``PIM_``) with
sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pim_core.domain.value_objects import CatalogChangeBehavior


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./pim.db"

    # Catalog rules
    behavior_on_catalog_change: CatalogChangeBehavior = CatalogChangeBehavior.CASCADE
    product_can_linked_with_non_leaf_categories: bool = False

    # Locales
    input_language_list: list[str] = Field(default_factory=list)
    is_multilang_active: bool = False

    # Attribute values
    attribute_ownership_tracked_externally: bool = False

    # Ordering
    sort_step: int = Field(default=10, gt=0)


settings = Settings()
