import logging
import threading
import uuid
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type


@dataclass(kw_only=True)
class Event:
    """Base event class."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by subscribe(); can be used to unsubscribe."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    run_async: bool = False
    active: bool = True

    def cancel(self):
        self.active = False


class EventBus:
    """Publish loader events to synchronous or pool-backed subscribers.

    Synchronous handlers run on the publishing thread, which for the fetch
    coordinator is usually a worker thread.  Handlers that touch widgets
    must marshal onto the UI thread themselves.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, max_workers: int = 2):
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: Dict[Type[Event], List[Subscription]] = defaultdict(list)
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], handler: Callable, async_: bool = False) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler, run_async=async_)
        with self._lock:
            self._handlers[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        with self._lock:
            subs = self._handlers.get(subscription.event_type, [])
            if subscription in subs:
                subs.remove(subscription)

    def publish(self, event: Event) -> None:
        event_type = type(event)
        with self._lock:
            subs = [sub for sub in self._handlers[event_type] if sub.active]

        for sub in subs:
            if sub.run_async:
                self._pool().submit(self._safe_call, sub.handler, event)
            else:
                self._safe_call(sub.handler, event)

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="event-bus"
                )
            return self._executor

    def _safe_call(self, handler: Callable, event: Event) -> None:
        try:
            handler(event)
        except Exception as e:
            self._logger.error(f"Handler failed for {type(event).__name__}: {e}")

    def shutdown(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
