from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[T], None]


class Observable(Generic[T]):
    """
    Thread-safe holder of a current value with change listeners.

    Setting a value equal to the current one is a no-op, so listeners only
    see real transitions. Listeners run on the thread that called ``set``;
    a failing listener is logged and does not prevent the others from
    being notified.
    """

    def __init__(self, initial: T) -> None:
        self._lock = threading.Lock()
        self._value = initial
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            if value == self._value:
                return
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Observable listener %r failed", listener)

    def subscribe(self, listener: Listener[T], *, emit_current: bool = False) -> Callable[[], None]:
        """
        Register a listener; returns a callable that unregisters it.

        With ``emit_current`` the listener is called once with the current
        value before any change is delivered.
        """
        with self._lock:
            self._listeners.append(listener)
            current = self._value
        if emit_current:
            listener(current)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
