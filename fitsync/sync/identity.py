from __future__ import annotations

import threading
from typing import Optional, Protocol


class IdentityProvider(Protocol):
    def current_user_id(self) -> Optional[str]:
        """Authenticated user id, or None when signed out."""
        ...


class StaticIdentityProvider:
    """Identity holder updated by the host's auth layer on sign-in/out."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self._lock = threading.Lock()
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        with self._lock:
            return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id cannot be empty")
        with self._lock:
            self._user_id = user_id

    def sign_out(self) -> None:
        with self._lock:
            self._user_id = None
