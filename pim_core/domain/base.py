"""Base classes for domain layer.

Catalog records are plain dataclasses identified by string ids. Records
that are edited concurrently (products, categories, attribute values)
are aggregate roots: they carry an optimistic-lock version and buffer
the domain events raised while they change.
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import uuid4


def new_id() -> str:
    """Generate a new entity identifier.

    Returns:
        Random hex identifier without separators.
    """
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable value compared by its fields.

    Example:
        @dataclass(frozen=True)
        class CategoryGroup(ValueObject):
            category_id: str
    """


@dataclass
class Entity(ABC):
    """Catalog record with a string identity.

    Attributes:
        id: Identifier, unique per entity type.
    """

    id: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))


@dataclass(kw_only=True)
class AggregateRoot(Entity):
    """Entity that is saved as a unit and versioned.

    The store owns the version: a save of an already stored aggregate
    moves it one past the stored version, and a composite update that
    was based on an older version is reported as a conflict.

    Attributes:
        version: Optimistic-lock version, starting at 1.
        updated_at: Timestamp of the last in-memory change.
    """

    version: int = field(default=1, compare=False)
    updated_at: datetime = field(default_factory=utc_now, compare=False)
    _events: list["DomainEvent"] = field(
        default_factory=list,
        init=False,
        repr=False,
        compare=False,
    )

    def advance_version(self, stored_version: int) -> int:
        """Move the version past the one currently stored.

        Args:
            stored_version: Version of the stored copy being replaced.

        Returns:
            The new version.
        """
        self.version = stored_version + 1
        return self.version

    @property
    def has_pending_events(self) -> bool:
        return bool(self._events)

    def collect_events(self) -> list["DomainEvent"]:
        """Hand out the buffered events and clear the buffer."""
        events, self._events = self._events, []
        return events

    def _record_event(self, event: "DomainEvent") -> None:
        self._events.append(event)

    def _touch(self) -> None:
        self.updated_at = utc_now()


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Something that happened to an aggregate.

    Subclasses set ``event_type`` and declare their payload as extra
    dataclass fields; every field not defined here is payload.

    Attributes:
        event_id: Unique id of this occurrence.
        occurred_at: When the change was made.
        aggregate_id: Id of the changed aggregate.
        aggregate_type: Class name of the changed aggregate.
    """

    event_type: ClassVar[str]

    event_id: str = field(default_factory=new_id)
    occurred_at: datetime = field(default_factory=utc_now)
    aggregate_id: str = ""
    aggregate_type: str = ""

    @property
    def payload(self) -> dict[str, Any]:
        envelope = {f.name for f in fields(DomainEvent)}
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in envelope}

    def to_dict(self) -> dict[str, Any]:
        """Flatten the event for logging."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "payload": self.payload,
        }
