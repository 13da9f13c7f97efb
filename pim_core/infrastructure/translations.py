"""Translation collaborator.

Maps error keys to human-readable messages. Only used to render
messages for callers, never for control flow.
"""

from typing import Any

import structlog

from pim_core.domain.exceptions import DomainError

logger = structlog.get_logger()


# English catalog, keyed by ``DomainError.key``.
DEFAULT_MESSAGES: dict[str, str] = {
    "notFound": "{entity_type} '{entity_id}' not found.",
    "wrongInputData": "Wrong input data: {reason}.",
    "invalidStateTransition": "Cannot move from '{current_state}' to '{target_state}'.",
    "youCantChangeFieldOfTypeInProduct": "You can't change field '{field}' of a product.",
    "productFieldShouldBeUnique": "Product with {field} '{value}' already exists in this catalog.",
    "productCanNotLinkToNonLeafCategory": "Product cannot be linked to a non-leaf category.",
    "youShouldUseCategoriesFromThoseTreesThatLinkedWithProductCatalog": (
        "You should use categories from those trees that are linked with the product catalog."
    ),
    "productCatalogChangeException": (
        "Product catalog cannot be changed: category {category_id} is not linked with it."
    ),
    "isCategoryAlreadyRelated": "Category is already related to the product.",
    "isChannelAlreadyRelated": "Channel is already related to the product.",
    "noSuchChannelInProduct": "Channel {channel_id} is not related to the product.",
    "productAttributeAlreadyExists": "Such product attribute value already exists.",
    "productFamilyAttributeMismatch": "Attribute value does not match its family template.",
    "productFamilyAttributesNotCreated": (
        "Family attributes could not be created for templates: {template_ids}."
    ),
    "editedByAnotherUser": "Fields were edited by another user: {fields}.",
    "invalidSortOrder": "Sort order must be a non-negative integer.",
    "associationError": "Products cannot be associated: {reason}.",
}


class Translator:
    """Renders messages for error keys in one language.

    Unknown keys render as the key itself; missing placeholders render
    the raw template.
    """

    def __init__(self, language: str = "en_US", messages: dict[str, str] | None = None) -> None:
        self.language = language
        self.messages = {**DEFAULT_MESSAGES, **(messages or {})}

    def translate(self, key: str, **params: Any) -> str:
        template = self.messages.get(key)
        if template is None:
            return key
        rendered = {
            name: ", ".join(map(str, value)) if isinstance(value, list | tuple) else value
            for name, value in params.items()
        }
        try:
            return template.format(**rendered)
        except KeyError as e:
            logger.warning(
                "Translation placeholder missing",
                key=key,
                language=self.language,
                placeholder=str(e),
            )
            return template

    def translate_error(self, error: DomainError) -> str:
        """Render the message for a domain error from its key and details."""
        return self.translate(error.key, **error.details)


_translator: Translator | None = None


def get_translator() -> Translator:
    """Get translator singleton."""
    global _translator
    if _translator is None:
        _translator = Translator()
    return _translator
