"""
Event bus for ledger domain events.

Synchronous in-process pub/sub. Handlers execute immediately in the thread
that published, which for issuance is the request's worker thread. Handler
errors are logged but never propagate: the issuance transaction has already
committed by the time anything is published.
"""

import logging
import threading
from typing import Callable, Dict, List

from core.events import LedgerEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus for ledger domain events.

    Subscribe by event class name (string), publish by event instance.
    Handlers are called synchronously in subscription order. Subscribing
    and publishing are safe from concurrent worker threads.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, callback: Callable):
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Name of event class to subscribe to (e.g. 'InvoiceIssued')
            callback: Function to call when event is published
        """
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> bool:
        """Remove a callback. Returns False if it was not subscribed."""
        with self._lock:
            callbacks = self._subscribers.get(event_type, [])
            if callback not in callbacks:
                return False
            callbacks.remove(callback)
            return True

    def publish(self, event: LedgerEvent):
        """
        Publish an event to all subscribers of that type.

        Args:
            event: LedgerEvent instance to publish
        """
        event_type = event.__class__.__name__

        with self._lock:
            callbacks = list(self._subscribers.get(event_type, ()))

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
