"""Lookup of event classes by event kind for stores that serialize payloads."""

from ..domain import Aggregate, Event
from ..domain.exceptions import UnsupportedEventKind


class EventTypeRegistry:
    """Maps event kinds to the event classes that deserialize them.

    Stores that persist payloads as documents use the registry to rebuild
    typed events on load. Registering an aggregate registers every event
    kind in its transition table.

    Examples:
        >>> registry = EventTypeRegistry.from_aggregates([User])
        >>> registry.resolve("UserRenamed")
        <class 'UserRenamed'>
    """

    @staticmethod
    def from_aggregates(aggregates: list[type[Aggregate]]) -> "EventTypeRegistry":
        registry = EventTypeRegistry()
        for aggregate in aggregates:
            registry.register_aggregate(aggregate)
        return registry

    def __init__(self) -> None:
        self.by_kind: dict[str, type[Event]] = {}

    def register(self, event_type: type[Event]) -> None:
        kind = event_type.event_kind()
        existing = self.by_kind.get(kind)
        if existing is not None and existing is not event_type:
            raise ValueError(
                f"Event kind {kind!r} is already registered to "
                f"{existing.__module__}.{existing.__qualname__}"
            )
        self.by_kind[kind] = event_type

    def register_aggregate(self, aggregate_type: type[Aggregate]) -> None:
        for event_type in aggregate_type.applied_events():
            self.register(event_type)

    def resolve(self, kind: str) -> type[Event]:
        try:
            return self.by_kind[kind]
        except KeyError:
            raise UnsupportedEventKind("EventTypeRegistry", kind) from None
