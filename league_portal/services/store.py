# league_portal/services/store.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import requests

from league_portal.core.errors import (
    AuthorizationDenied,
    NotFound,
    StoreError,
    TransportError,
    UniqueViolation,
)
from league_portal.core.logging import get_logger

logger = get_logger(__name__)

# PostgREST "exactly one row" media type; 406 + PGRST116 when the row count is not one
SINGLE_OBJECT = "application/vnd.pgrst.object+json"

UNIQUE_VIOLATION = "23505"
INSUFFICIENT_PRIVILEGE = "42501"
NO_SINGLE_ROW = "PGRST116"


# ---- filter helpers (PostgREST operator syntax) ----

def eq(value: Any) -> str:
    return f"eq.{value}"


def _raise_for_store_body(resp: requests.Response, method: str, table: str) -> None:
    """Map an error response onto the store error taxonomy, keeping upstream detail."""
    body: Dict[str, Any] = {}
    try:
        parsed = resp.json()
        if isinstance(parsed, dict):
            body = parsed
    except ValueError:
        pass

    code = body.get("code")
    message = body.get("message") or (resp.text[:300] if resp.text else "<no-body>")
    details = body.get("details")
    text = f"{method} {table} -> {resp.status_code}: {message}"

    if code == NO_SINGLE_ROW or resp.status_code == 406:
        raise NotFound(text, status=resp.status_code, code=code, details=details)
    if code == UNIQUE_VIOLATION or (resp.status_code == 409 and code is None):
        raise UniqueViolation(text, status=resp.status_code, code=code, details=details)
    if code == INSUFFICIENT_PRIVILEGE or resp.status_code in (401, 403):
        raise AuthorizationDenied(text, status=resp.status_code, code=code, details=details)
    raise StoreError(text, status=resp.status_code, code=code, details=details)


class StoreClient:
    """
    Blocking client for the hosted tabular store (PostgREST dialect).

    Every relation is exposed at {rest_url}/{table}. Calls carry the project
    anon key plus the signed-in user's bearer token when one is available, so
    row-level policies (if any) see the real caller.
    """

    def __init__(
        self,
        rest_url: str,
        api_key: str,
        *,
        token_getter: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 15.0,
        http: Optional[requests.Session] = None,
    ):
        self.rest_url = rest_url.rstrip("/")
        self.api_key = api_key
        self.token_getter = token_getter or (lambda: None)
        self.timeout = timeout
        self.http = http or requests.Session()

    def _headers(self, *, accept: Optional[str] = None, prefer: Optional[str] = None) -> Dict[str, str]:
        bearer = self.token_getter() or self.api_key
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {bearer}",
            "Accept": accept or "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        accept: Optional[str] = None,
        prefer: Optional[str] = None,
    ) -> Any:
        url = f"{self.rest_url}/{table}"
        try:
            resp = self.http.request(
                method,
                url,
                params=params or {},
                json=json,
                headers=self._headers(accept=accept, prefer=prefer),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {table} failed: {e}") from e

        if not resp.ok:
            _raise_for_store_body(resp, method, table)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise StoreError(
                f"{method} {table} returned non-JSON body", status=resp.status_code
            ) from e

    # ---------------- reads ----------------

    def select(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        single: bool = False,
        maybe_single: bool = False,
    ) -> Any:
        """
        `columns` accepts embedded relations, e.g. "id,profiles(id,pro_clubs_name)".
        single=True returns one dict or raises NotFound; maybe_single=True
        returns the first row or None.
        """
        params: Dict[str, str] = {"select": " ".join(columns.split())}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        elif maybe_single:
            params["limit"] = "1"

        if single:
            return self._request("GET", table, params=params, accept=SINGLE_OBJECT)

        rows = self._request("GET", table, params=params) or []
        if maybe_single:
            return rows[0] if rows else None
        return rows

    # ---------------- writes ----------------

    def insert(self, table: str, values: Dict[str, Any] | List[Dict[str, Any]], *, returning: bool = False) -> Any:
        prefer = "return=representation" if returning else "return=minimal"
        logger.debug("insert into %s", table)
        return self._request("POST", table, json=values, prefer=prefer)

    def update(self, table: str, values: Dict[str, Any], *, filters: Dict[str, str]) -> Any:
        if not filters:
            raise ValueError("update requires at least one filter")
        return self._request("PATCH", table, params=dict(filters), json=values, prefer="return=minimal")

    def delete(self, table: str, *, filters: Dict[str, str]) -> Any:
        if not filters:
            raise ValueError("delete requires at least one filter")
        return self._request("DELETE", table, params=dict(filters), prefer="return=minimal")
