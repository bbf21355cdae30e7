from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Type

logger = logging.getLogger(__name__)

EventHandler = Callable[[object], None]


@dataclass(frozen=True, order=True)
class Subscription:
    priority: int
    order: int
    event_type: Type[object] = field(compare=False)
    handler: EventHandler = field(compare=False)

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))


@dataclass(frozen=True)
class HandlerFailure:
    subscription: Subscription
    error: Exception


class EventBus:
    """Synchronous in-process publisher for advancement events.

    A handler registered for a base event class also receives its subclasses.
    Matching handlers run lowest priority value first, ties in registration
    order. A failing handler is logged and skipped so the publishing command
    still completes.
    """

    def __init__(self) -> None:
        self._subscriptions: Dict[Type[object], List[Subscription]] = {}
        self._next_order = 0
        self._failures: List[HandlerFailure] = []

    def subscribe(self, event_type: Type[object], handler: EventHandler, *, priority: int = 100) -> Subscription:
        subscription = Subscription(int(priority), self._next_order, event_type, handler)
        self._next_order += 1
        bisect.insort(self._subscriptions.setdefault(event_type, []), subscription)
        return subscription

    def unsubscribe(self, event_type: Type[object], handler: EventHandler) -> None:
        rows = self._subscriptions.get(event_type, [])
        self._subscriptions[event_type] = [row for row in rows if row.handler != handler]

    def subscriptions_for(self, event_type: Type[object]) -> List[Subscription]:
        return sorted(row for klass in event_type.__mro__ for row in self._subscriptions.get(klass, ()))

    def publish(self, event: object) -> List[HandlerFailure]:
        failures: List[HandlerFailure] = []
        for subscription in self.subscriptions_for(type(event)):
            try:
                subscription.handler(event)
            except Exception as exc:
                failures.append(HandlerFailure(subscription, exc))
                logger.exception(
                    "Handler %s failed for %s",
                    subscription.handler_name,
                    type(event).__name__,
                    extra={"priority": subscription.priority},
                )
        self._failures = failures
        return failures

    def last_publish_errors(self) -> List[Exception]:
        return [row.error for row in self._failures]
