from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from fitsync.config import RemoteConfig
from fitsync.errors import RemoteStoreError, TransmissionError
from fitsync.remote import PostgrestRemoteStore

BASE_URL = "https://project.supabase.co"


def _session(status_code: int = 201, text: str = "") -> MagicMock:
    session = MagicMock(spec=requests.Session)
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    session.request.return_value = response
    return session


def _store(session: MagicMock, access_token=None) -> PostgrestRemoteStore:
    return PostgrestRemoteStore(
        RemoteConfig(base_url=BASE_URL + "/", api_key="anon-key", timeout_s=7.5),
        session=session,
        access_token=access_token,
    )


def test_insert_posts_row_to_table() -> None:
    session = _session(201)

    _store(session).insert("workouts", {"id": "w1", "reps": 10})

    session.request.assert_called_once_with(
        "POST",
        f"{BASE_URL}/rest/v1/workouts",
        json={"id": "w1", "reps": 10},
        params=None,
        headers={
            "apikey": "anon-key",
            "Authorization": "Bearer anon-key",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        },
        timeout=7.5,
    )


def test_update_patches_with_id_filter_and_user_token() -> None:
    session = _session(204)

    _store(session, access_token=lambda: "jwt-123").update(
        "workouts", {"is_deleted": True}, id_value="w1"
    )

    _, kwargs = session.request.call_args
    assert session.request.call_args.args[:2] == ("PATCH", f"{BASE_URL}/rest/v1/workouts")
    assert kwargs["params"] == {"id": "eq.w1"}
    assert kwargs["json"] == {"is_deleted": True}
    assert kwargs["headers"]["Authorization"] == "Bearer jwt-123"


def test_signed_out_token_falls_back_to_api_key() -> None:
    session = _session(201)

    _store(session, access_token=lambda: None).insert("workouts", {"id": "w1"})

    _, kwargs = session.request.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer anon-key"


@pytest.mark.parametrize("status_code", [400, 401, 409, 500, 503])
def test_non_2xx_raises_with_status(status_code: int) -> None:
    session = _session(status_code, text='{"message": "nope"}')

    with pytest.raises(RemoteStoreError) as excinfo:
        _store(session).insert("workouts", {"id": "w1"})

    assert excinfo.value.status_code == status_code
    assert str(status_code) in str(excinfo.value)
    assert isinstance(excinfo.value, TransmissionError)


def test_transport_errors_are_wrapped() -> None:
    session = _session()
    session.request.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(RemoteStoreError, match="connection refused") as excinfo:
        _store(session).update("workouts", {"reps": 1}, id_value="w1")

    assert excinfo.value.status_code is None


def test_rejects_unsafe_table_name() -> None:
    session = _session()

    with pytest.raises(ValueError, match="Invalid table"):
        _store(session).insert("workouts?select=*", {"id": "w1"})

    session.request.assert_not_called()
