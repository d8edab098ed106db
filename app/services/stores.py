"""
Observable in-memory stores shared between background services and the UI.

A Store holds one value. Subscribers are called with the current value on
subscribe and after every change.
"""

import logging
import threading
from typing import Callable, Generic, List, Optional, Protocol, Sequence, TypeVar

from app.models.slack import LoadingState, Message

logger = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[[T], None]


class BatchListener(Protocol):
    """Notified after the reaction loader applies a batch to a message list."""

    def on_batch_applied(self, messages: List[Message], indices: Sequence[int]) -> None:
        ...


class Store(Generic[T]):
    def __init__(self, initial: T):
        self._lock = threading.Lock()
        self._value = initial
        self._subscribers: List[Subscriber] = []

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        self._notify(subscribers, value)

    def update(self, fn: Callable[[T], T]) -> T:
        with self._lock:
            value = fn(self._value)
            self._value = value
            subscribers = list(self._subscribers)
        self._notify(subscribers, value)
        return value

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)
            value = self._value
        self._notify([callback], value)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @staticmethod
    def _notify(subscribers: List[Subscriber], value: T) -> None:
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception("Store subscriber failed")


class LoadingStateStore(Store[LoadingState]):
    def __init__(self):
        super().__init__(LoadingState())


class SearchResultsStore(Store[List[Message]]):
    """
    Current search results as seen by the UI.

    Subscribers always receive a fresh list snapshot. Batch notifications
    for a list other than the current source (a stale loader run from a
    previous search) are ignored.
    """

    def __init__(self):
        super().__init__([])
        self._source: Optional[List[Message]] = None

    def set_results(self, messages: List[Message]) -> None:
        with self._lock:
            self._source = messages
        self.set(list(messages))

    def on_batch_applied(self, messages: List[Message], indices: Sequence[int]) -> None:
        with self._lock:
            is_current = messages is self._source
        if not is_current:
            logger.debug(f"Ignoring {len(indices)} updates for a superseded result list")
            return
        self.set(list(messages))
