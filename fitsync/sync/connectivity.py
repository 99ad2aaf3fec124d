from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivitySignal(Protocol):
    """
    Reachability as seen by the sync engine.

    ``subscribe`` delivers online/offline transitions (never two identical
    states in a row) until the returned callable is invoked. Consumers
    should treat a notification as a hint and re-read ``is_online()``:
    delivery order across threads is not guaranteed.
    """

    def is_online(self) -> bool:
        ...

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        ...


class ManualConnectivitySignal:
    """
    Connectivity signal driven by the host platform.

    The host's network callback calls ``set_online``; listeners are told
    only about actual transitions.
    """

    def __init__(self, online: bool = False) -> None:
        self._lock = threading.Lock()
        self._online = online
        self._listeners: list[ConnectivityListener] = []

    def is_online(self) -> bool:
        with self._lock:
            return self._online

    def set_online(self, online: bool) -> None:
        with self._lock:
            if online == self._online:
                return
            self._online = online
            listeners = list(self._listeners)
        logger.debug("Connectivity changed: online=%s", online)
        for listener in listeners:
            try:
                listener(online)
            except Exception:
                logger.exception("Connectivity listener %r failed", listener)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
