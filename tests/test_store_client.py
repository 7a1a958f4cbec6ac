import pytest
import requests

from league_portal.core.errors import (
    AuthorizationDenied,
    NotFound,
    StoreError,
    TransportError,
    UniqueViolation,
)
from league_portal.services.store import SINGLE_OBJECT, StoreClient, eq

from tests.fakes import FakeHTTP, make_response

REST = "https://project.example.test/rest/v1"


def _client(*responses, token=None):
    http = FakeHTTP(*responses)
    return StoreClient(REST, "anon-key", token_getter=lambda: token, http=http), http


def test_eq_filter():
    assert eq("abc") == "eq.abc"
    assert eq(7) == "eq.7"


def test_select_builds_query_and_headers():
    client, http = _client(make_response(200, [{"id": "t1", "name": "Red Lions"}]), token="user-jwt")

    rows = client.select("teams", "id, name", filters={"id": eq("t1")}, order="name.asc", limit=5)

    assert rows == [{"id": "t1", "name": "Red Lions"}]
    call = http.last
    assert call["method"] == "GET"
    assert call["url"] == f"{REST}/teams"
    assert call["params"] == {"select": "id, name","id": "eq.t1", "order": "name.asc", "limit": "5"}
    assert call["headers"]["apikey"] == "anon-key"
    assert call["headers"]["Authorization"] == "Bearer user-jwt"


def test_select_collapses_multiline_columns():
    client, http = _client(make_response(200, []))
    client.select("teams", """
        id,
        profiles(id, pro_clubs_name)
    """)
    assert http.last["params"]["select"] == "id, profiles(id, pro_clubs_name)"


def test_anon_key_used_as_bearer_when_signed_out():
    client, http = _client(make_response(200, []))
    client.select("teams")
    assert http.last["headers"]["Authorization"] == "Bearer anon-key"


def test_single_requests_object_media_type():
    client, http = _client(make_response(200, {"id": "u1"}))
    assert client.select("profiles", single=True, filters={"id": eq("u1")}) == {"id": "u1"}
    assert http.last["headers"]["Accept"] == SINGLE_OBJECT


def test_single_with_no_row_is_not_found():
    client, _ = _client(make_response(406, {"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"}))
    with pytest.raises(NotFound) as exc:
        client.select("profiles", single=True)
    assert exc.value.code == "PGRST116"
    assert exc.value.status == 406


def test_maybe_single_returns_first_or_none():
    client, http = _client(make_response(200, []), make_response(200, [{"id": "a"}]))
    assert client.select("admin_roles", "id", maybe_single=True) is None
    assert http.last["params"]["limit"] == "1"
    assert client.select("admin_roles", "id", maybe_single=True) == {"id": "a"}


def test_duplicate_key_is_unique_violation():
    client, _ = _client(make_response(409, {"code": "23505", "message": "duplicate key value", "details": "Key (id)=(u1) already exists."}))
    with pytest.raises(UniqueViolation) as exc:
        client.insert("profiles", {"id": "u1"})
    assert exc.value.details == "Key (id)=(u1) already exists."


def test_policy_rejection_is_authorization_denied():
    client, _ = _client(make_response(403, {"code": "42501", "message": "new row violates row-level security policy"}))
    with pytest.raises(AuthorizationDenied):
        client.update("profiles", {"goals": 1}, filters={"id": eq("p1")})


def test_other_errors_keep_upstream_detail():
    client, _ = _client(make_response(400, {"code": "22P02", "message": "invalid input syntax for type uuid"}))
    with pytest.raises(StoreError) as exc:
        client.select("teams")
    assert not isinstance(exc.value, (NotFound, UniqueViolation, AuthorizationDenied))
    assert exc.value.code == "22P02"
    assert "invalid input syntax" in str(exc.value)


def test_network_failure_is_transport_error():
    client, _ = _client(requests.ConnectionError("connection refused"))
    with pytest.raises(TransportError):
        client.select("teams")


def test_insert_prefers_minimal_return():
    client, http = _client(make_response(201))
    assert client.insert("manager_assignments", {"user_id": "u1", "team_id": "t1"}) is None
    assert http.last["method"] == "POST"
    assert http.last["json"] == {"user_id": "u1", "team_id": "t1"}
    assert http.last["headers"]["Prefer"] == "return=minimal"


def test_update_and_delete_require_filters():
    client, http = _client()
    with pytest.raises(ValueError):
        client.update("profiles", {"goals": 1}, filters={})
    with pytest.raises(ValueError):
        client.delete("manager_assignments", filters={})
    assert http.calls == []


def test_delete_sends_filter():
    client, http = _client(make_response(204))
    client.delete("manager_assignments", filters={"id": eq("ma-1")})
    assert http.last["method"] == "DELETE"
    assert http.last["params"] == {"id": "eq.ma-1"}
