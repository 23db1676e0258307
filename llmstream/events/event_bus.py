"""
Centralized publish/subscribe routing for stream events.
"""

import logging
from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Optional

from .stream_events import (
    BaseStreamEvent,
    EventFilter,
    EventType,
    StreamEventListener,
    debug_output,
)


logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class _Subscription:
    """One registration of a listener. Identity is what unsubscribe removes."""

    __slots__ = ("listener",)

    def __init__(self, listener: StreamEventListener):
        self.listener = listener

    def __repr__(self) -> str:
        name = getattr(self.listener, "__qualname__", repr(self.listener))
        return f"_Subscription({name})"


class EventBus:
    """
    In-process event bus with global, type-scoped and filtered subscriptions.

    Listeners are plain callables invoked synchronously in registration order:
    global listeners first, then listeners registered for the event's type.
    A listener that raises never affects the publisher or other listeners; the
    failure is reported as a ``debug:output`` event to global listeners only.

    Emitting is not re-entrant. An event emitted by a listener is queued and
    delivered after the current event has reached every listener, so all
    listeners see events in the same order.

    Create one bus per process and pass it to the components that need it.
    """

    def __init__(self):
        self._global: List[_Subscription] = []
        self._by_type: Dict[EventType, List[_Subscription]] = {}
        self._pending: Deque[BaseStreamEvent] = deque()
        self._current: Optional[BaseStreamEvent] = None
        self._dispatching = False

    def subscribe(self, listener: StreamEventListener) -> Unsubscribe:
        """
        Subscribe to all events.

        Args:
            listener: Callable invoked with every emitted event

        Returns:
            Unsubscribe: Removes exactly this registration; safe to call twice
        """
        subscription = _Subscription(listener)
        self._global.append(subscription)

        def unsubscribe() -> None:
            self._remove(self._global, subscription)

        return unsubscribe

    def subscribe_to_types(
        self,
        event_types: Iterable[EventType],
        listener: StreamEventListener
    ) -> Unsubscribe:
        """
        Subscribe to specific event types.

        Args:
            event_types: Event types to listen for
            listener: Callable invoked with matching events

        Returns:
            Unsubscribe: Removes the registrations for every listed type
        """
        registrations = []

        for event_type in event_types:
            event_type = EventType(event_type)
            subscription = _Subscription(listener)
            self._by_type.setdefault(event_type, []).append(subscription)
            registrations.append((event_type, subscription))

        def unsubscribe() -> None:
            for event_type, subscription in registrations:
                bucket = self._by_type.get(event_type)
                if bucket is None:
                    continue
                self._remove(bucket, subscription)
                if not bucket:
                    del self._by_type[event_type]

        return unsubscribe

    def subscribe_with_filter(
        self,
        event_filter: EventFilter,
        listener: StreamEventListener
    ) -> Unsubscribe:
        """
        Subscribe with filter criteria.

        Filters naming event types are registered per type, everything else
        is registered globally and checked on every emit.
        """
        def filtered_listener(event: BaseStreamEvent) -> None:
            if event_filter.matches(event):
                listener(event)

        if event_filter.event_types:
            return self.subscribe_to_types(event_filter.event_types, filtered_listener)

        return self.subscribe(filtered_listener)

    def emit(self, event: BaseStreamEvent) -> None:
        """
        Deliver an event to global listeners, then to its type's listeners.

        Called from inside a listener, the event is queued and this returns
        immediately; the outermost ``emit`` drains the queue in FIFO order.
        """
        self._pending.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._dispatching = False
            self._current = None

    @property
    def current_event(self) -> Optional[BaseStreamEvent]:
        """The event being delivered right now, or None outside a delivery."""
        return self._current

    def _deliver(self, event: BaseStreamEvent) -> None:
        self._current = event
        for subscription in list(self._global):
            self._invoke(subscription, event)

        type_subscriptions = self._by_type.get(event.type)
        if type_subscriptions:
            for subscription in list(type_subscriptions):
                self._invoke(subscription, event)

    def get_listener_counts(self) -> Dict[str, int]:
        """Current listener counts, for debugging."""
        counts = {"global": len(self._global)}
        for event_type, subscriptions in self._by_type.items():
            counts[event_type.value] = len(subscriptions)
        return counts

    def clear_all(self) -> None:
        """Remove every listener (useful for testing)."""
        self._global.clear()
        self._by_type.clear()

    def clear_event_types(self, event_types: Iterable[EventType]) -> None:
        """Remove all listeners registered for the given types."""
        for event_type in event_types:
            self._by_type.pop(EventType(event_type), None)

    @staticmethod
    def _remove(subscriptions: List[_Subscription], subscription: _Subscription) -> None:
        for index, existing in enumerate(subscriptions):
            if existing is subscription:
                del subscriptions[index]
                return

    def _invoke(self, subscription: _Subscription, event: BaseStreamEvent) -> None:
        try:
            subscription.listener(event)
        except Exception as e:
            logger.error(f"Event listener error while handling {event.type.value}: {e}")
            self._emit_listener_error(e)

    def _emit_listener_error(self, error: Exception) -> None:
        # Global listeners only, so a failing diagnostic cannot recurse
        diagnostic = debug_output(
            content=f"Event listener error: {error}",
            level="error",
            source="EventBus"
        )
        failed_event, self._current = self._current, diagnostic
        try:
            for subscription in list(self._global):
                try:
                    subscription.listener(diagnostic)
                except Exception as e:
                    logger.debug(f"Listener failed while handling a listener error: {e}")
        finally:
            self._current = failed_event
