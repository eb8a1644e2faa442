from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
import logging
import os
from typing import Optional, Dict, Any, List, Tuple, Sequence
import requests

logger = logging.getLogger(__name__)

REST_URL_TMPL = "{base_url}/rest/v1/{table}"
DEFAULT_TIMEOUT_SECS = 20


class StoreError(Exception):
    """Base class for data store failures."""


class StoreUnavailableError(StoreError):
    """The store could not be reached (connection refused, DNS, timeout)."""


class StoreQueryError(StoreError):
    """The store answered with an error status for a query or insert."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.hint = hint


@dataclass
class StoreResponse:
    data: List[Dict[str, Any]]
    count: Optional[int] = None


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_content_range(header: Optional[str]) -> Optional[int]:
    # e.g. "0-9/42", "*/42"; total is "*" when the server did not count
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    try:
        return int(total)
    except ValueError:
        return None


class StoreQuery:
    """
    Read query against one table. Filters are kept as (column, op, value)
    triples and rendered to PostgREST query parameters on execute.
    """

    def __init__(self, client: "StoreClient", table: str):
        self._client = client
        self.table = table
        self.columns = "*"
        self.count: Optional[str] = None
        self.head = False
        self.filters: List[Tuple[Any, str, Any]] = []
        self.order_by: List[Tuple[str, bool]] = []
        self.offset: Optional[int] = None
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False) -> "StoreQuery":
        self.columns = columns
        self.count = count
        self.head = head
        return self

    def eq(self, column: str, value: Any) -> "StoreQuery":
        self.filters.append((column, "eq", value))
        return self

    def gte(self, column: str, value: Any) -> "StoreQuery":
        self.filters.append((column, "gte", value))
        return self

    def lte(self, column: str, value: Any) -> "StoreQuery":
        self.filters.append((column, "lte", value))
        return self

    def ilike_any(self, columns: Sequence[str], text: str) -> "StoreQuery":
        """Case-insensitive substring match on at least one of `columns`."""
        self.filters.append((tuple(columns), "ilike_any", text))
        return self

    def order(self, column: str, ascending: bool = True) -> "StoreQuery":
        self.order_by.append((column, ascending))
        return self

    def range(self, start: int, end: int) -> "StoreQuery":
        """Inclusive row window, [start, end]."""
        self.offset = start
        self.row_limit = end - start + 1
        return self

    def limit(self, n: int) -> "StoreQuery":
        self.row_limit = n
        return self

    def params(self) -> List[Tuple[str, str]]:
        out: List[Tuple[str, str]] = [("select", self.columns)]
        for column, op, value in self.filters:
            if op == "ilike_any":
                clauses = ",".join(f"{c}.ilike.{_quote(f'*{value}*')}" for c in column)
                out.append(("or", f"({clauses})"))
            else:
                out.append((column, f"{op}.{_format_value(value)}"))
        if self.order_by:
            out.append(("order", ",".join(f"{c}.{'asc' if asc else 'desc'}" for c, asc in self.order_by)))
        if self.offset is not None:
            out.append(("offset", str(self.offset)))
        if self.row_limit is not None:
            out.append(("limit", str(self.row_limit)))
        return out

    def execute(self) -> StoreResponse:
        return self._client.execute(self)


class StoreClient:
    """
    Thin HTTP client for a hosted PostgREST-style data service.
    One request per execute/insert; no retries, no caching.
    """

    def __init__(
        self,
        url: str,
        key: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECS,
    ):
        self.base_url = url.rstrip("/")
        self.key = key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }

    def _url(self, table: str) -> str:
        return REST_URL_TMPL.format(base_url=self.base_url, table=table)

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreUnavailableError(f"{method} {url} failed: {e}") from e
        if resp.status_code >= 400:
            raise _query_error(resp)
        return resp

    def table(self, name: str) -> StoreQuery:
        return StoreQuery(self, name)

    def execute(self, query: StoreQuery) -> StoreResponse:
        headers = self._headers()
        if query.count:
            headers["Prefer"] = f"count={query.count}"
        method = "HEAD" if query.head else "GET"
        resp = self._request(method, self._url(query.table), params=query.params(), headers=headers)
        data: List[Dict[str, Any]] = [] if query.head else _json_rows(resp)
        count = _parse_content_range(resp.headers.get("Content-Range")) if query.count else None
        return StoreResponse(data=data, count=count)

    def insert(self, table: str, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        headers = self._headers()
        headers["Content-Type"] = "application/json"
        headers["Prefer"] = "return=representation"
        resp = self._request("POST", self._url(table), json=row, headers=headers)
        return _json_rows(resp)


def _json_rows(resp: requests.Response) -> List[Dict[str, Any]]:
    """Decode a row-list body; anything else means the URL is not the data service."""
    try:
        body = resp.json()
    except ValueError as e:
        raise StoreQueryError(
            f"Response from store is not JSON: {e}", status_code=resp.status_code,
        ) from e
    if body is None:
        return []
    if not isinstance(body, list) or not all(isinstance(r, dict) for r in body):
        raise StoreQueryError(
            f"Expected a list of rows from store, got {type(body).__name__}",
            status_code=resp.status_code,
        )
    return body


def _query_error(resp: requests.Response) -> StoreQueryError:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return StoreQueryError(resp.text or f"HTTP {resp.status_code}", status_code=resp.status_code)
    return StoreQueryError(
        body.get("message") or f"HTTP {resp.status_code}",
        status_code=resp.status_code,
        code=body.get("code"),
        details=body.get("details"),
        hint=body.get("hint"),
    )


def create_store_client(
    url: Optional[str] = None,
    key: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> Optional[StoreClient]:
    """
    Build a client from explicit settings or the environment. Returns None
    when the URL or key is missing; read paths treat that as an empty store.
    """
    url = url or os.environ.get("SUPABASE_URL") or os.environ.get("VITE_SUPABASE_URL")
    key = key or os.environ.get("SUPABASE_KEY") or os.environ.get("VITE_SUPABASE_PUBLISHABLE_KEY")
    if not url or not key:
        logger.warning("Store client not initialized. Set SUPABASE_URL and SUPABASE_KEY.")
        return None
    timeout = float(os.environ.get("STORE_TIMEOUT_SECS", str(DEFAULT_TIMEOUT_SECS)))
    logger.info("Store client initialized for %s", url)
    return StoreClient(url, key, session=session, timeout=timeout)
