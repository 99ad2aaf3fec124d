from __future__ import annotations

from typing import Any, Mapping, Protocol


class RemoteStore(Protocol):
    """
    Table-oriented view of the remote multi-tenant row store.

    Implementations raise TransmissionError (usually RemoteStoreError) on
    any failure, and must bound every call with a timeout.
    """

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        ...

    def update(self, table: str, row: Mapping[str, Any], *, id_value: Any) -> None:
        """Update the row(s) whose ``id`` column equals ``id_value``."""
        ...
