"""Authorization collaborator.

The core never evaluates permissions itself; it asks an access checker
whether an entity (or an entity type) may be used for an action.
"""

from typing import Any, Protocol

READ = "read"
EDIT = "edit"


class AccessChecker(Protocol):
    """Decides whether an action is allowed on an entity or entity type."""

    def check(self, entity_or_type: Any, action: str) -> bool:
        ...


class AllowAllAccessChecker:
    """Access checker that allows everything."""

    def check(self, entity_or_type: Any, action: str) -> bool:
        return True


class RuleAccessChecker:
    """Deny-list access checker.

    Example usage:
        acl = RuleAccessChecker()
        acl.deny_entity("pav-1", READ)
        acl.deny_type(AttributeValue, EDIT)
    """

    def __init__(self) -> None:
        self._denied_ids: set[tuple[str, str]] = set()
        self._denied_types: set[tuple[type, str]] = set()

    def deny_entity(self, entity_id: str, action: str = READ) -> None:
        self._denied_ids.add((entity_id, action))

    def deny_type(self, entity_type: type, action: str = READ) -> None:
        self._denied_types.add((entity_type, action))

    def check(self, entity_or_type: Any, action: str) -> bool:
        entity_type = entity_or_type if isinstance(entity_or_type, type) else type(entity_or_type)
        if (entity_type, action) in self._denied_types:
            return False
        entity_id = getattr(entity_or_type, "id", None)
        if isinstance(entity_or_type, type) or entity_id is None:
            return True
        return (entity_id, action) not in self._denied_ids
