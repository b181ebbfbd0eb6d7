"""Event bus for run observability.

Carries the migration events of `blockmigrate.contracts.events` from the
orchestrator to CLI formatters. Counters reach the CLI through events,
never through shared module state.

Only migration event types can be subscribed to or emitted; anything else
is a wiring bug and raises TypeError at the call site.
"""

from collections.abc import Callable
from typing import Protocol, TypeVar

from blockmigrate.contracts.events import MIGRATION_EVENT_TYPES, MigrationEvent

E = TypeVar("E", bound=MigrationEvent)


def _check_event_type(event_type: type) -> None:
    if event_type not in MIGRATION_EVENT_TYPES:
        raise TypeError(f"{event_type.__name__} is not a migration event")


class EventBusProtocol(Protocol):
    """What the orchestrator and formatters need from a bus."""

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None: ...

    def emit(self, event: MigrationEvent) -> None: ...


class EventBus:
    """Synchronous event bus.

    Handlers run in subscription order, on the emitting thread. Handler
    exceptions propagate to the emitter.

    Example:
        bus = EventBus()
        bus.subscribe(ProgressEvent, lambda e: print(e.records_read))
        bus.emit(ProgressEvent(...))
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[MigrationEvent], list[Callable[[MigrationEvent], None]]] = {}

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        """Subscribe a handler to one event type.

        Raises:
            TypeError: If event_type is not a migration event.
        """
        _check_event_type(event_type)
        self._subscribers.setdefault(event_type, []).append(handler)  # type: ignore[arg-type]

    def emit(self, event: MigrationEvent) -> None:
        """Dispatch to the subscribers of the event's exact type.

        Raises:
            TypeError: If event is not a migration event.
        """
        _check_event_type(type(event))
        for handler in self._subscribers.get(type(event), []):
            handler(event)


class NullEventBus:
    """No-op bus for library use without a CLI.

    Still rejects non-event types, so wiring mistakes show up in library
    use as well.
    """

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        _check_event_type(event_type)

    def emit(self, event: MigrationEvent) -> None:
        _check_event_type(type(event))
