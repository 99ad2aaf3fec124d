from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

import requests

from ..config import RemoteConfig
from ..db.helpers import validate_identifier
from ..errors import RemoteStoreError

logger = logging.getLogger(__name__)


class PostgrestRemoteStore:
    """
    RemoteStore speaking the PostgREST dialect used by Supabase.

    Row-level security on the server scopes every request to the user
    behind the bearer token, so ``access_token`` should return the signed-in
    user's JWT. When it returns None the anon API key is sent instead.

    Usage:
        store = PostgrestRemoteStore(RemoteConfig(url, anon_key), access_token=auth.token)
        store.insert("workouts", {"id": "...", "user_id": "...", ...})
        store.update("workouts", {"is_deleted": True}, id_value="...")
    """

    def __init__(
        self,
        config: RemoteConfig,
        *,
        session: Optional[requests.Session] = None,
        access_token: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._access_token = access_token

    def _table_url(self, table: str) -> str:
        table = validate_identifier(table, "table")
        return f"{self.config.base_url}/rest/v1/{table}"

    def _headers(self) -> dict[str, str]:
        token = self._access_token() if self._access_token is not None else None
        return {
            "apikey": self.config.api_key,
            "Authorization": f"Bearer {token or self.config.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        self._send("POST", self._table_url(table), dict(row), params=None)

    def update(self, table: str, row: Mapping[str, Any], *, id_value: Any) -> None:
        self._send("PATCH", self._table_url(table), dict(row), params={"id": f"eq.{id_value}"})

    def _send(
        self,
        method: str,
        url: str,
        body: dict[str, Any],
        params: Optional[dict[str, str]],
    ) -> None:
        try:
            response = self._session.request(
                method,
                url,
                json=body,
                params=params,
                headers=self._headers(),
                timeout=self.config.timeout_s,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(f"{method} {url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise RemoteStoreError(
                f"{method} {url} returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        logger.debug("%s %s -> %s", method, url, response.status_code)
