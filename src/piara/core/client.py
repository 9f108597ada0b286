"""Supabase store client - PostgREST over httpx.

Every table is reached at `{SUPABASE_URL}/rest/v1/<table>`. Filters use
PostgREST syntax in the query string (`codigo=eq.C-001`, `order=fecha.desc`).

Reads go through `select_with_retry()`, which retries transient failures.
Writes go through `mutate()` and are never retried: a write that may or may
not have landed is reported to the caller as-is.
"""

from datetime import date, datetime
from enum import Enum

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from piara.core.config import settings

REST_PATH = "/rest/v1"

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"

# =============================================================================
# Retry Configuration
# =============================================================================

MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10


# =============================================================================
# Exceptions
# =============================================================================


class StoreError(Exception):
    """Base class for persistence failures."""

    pass


class RetryableError(StoreError):
    """Transient error that should be retried (timeouts, connection errors, 5xx)."""

    pass


class SupabaseAPIError(StoreError):
    """Non-retryable error from the store; carries the response body verbatim."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class ConstraintViolationError(SupabaseAPIError):
    """A write broke a table constraint (e.g. duplicate `codigo`)."""

    pass


class NotFoundError(StoreError):
    """The requested row does not exist (or is hidden by row-level security)."""

    pass


# =============================================================================
# Request Helpers
# =============================================================================


def table_url(table: str) -> str:
    return f"{settings.supabase_url.rstrip('/')}{REST_PATH}/{table}"


def _headers(prefer: str | None = None) -> dict:
    if not settings.supabase_key:
        raise SupabaseAPIError("SUPABASE_KEY is not configured")

    token = settings.supabase_access_token or settings.supabase_key
    headers = {
        "apikey": settings.supabase_key,
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if prefer:
        headers["Prefer"] = prefer
    return headers


def _literal(value) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def filter_params(filters: dict | None) -> dict:
    """
    Turn {column: value} into PostgREST query parameters.

    Scalars become `eq.`, lists/tuples become `in.(...)`, None becomes `is.null`.
    """
    params = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, (list, tuple, set)):
            params[column] = f"in.({','.join(_literal(v) for v in value)})"
        else:
            params[column] = f"eq.{_literal(value)}"
    return params


def _error_from_response(e: httpx.HTTPStatusError, retry_server_errors: bool) -> StoreError:
    """Map an HTTP error to the store exception family."""
    status = e.response.status_code
    try:
        body = e.response.text
    except Exception:
        body = "(unable to read response body)"

    code = None
    try:
        payload = e.response.json()
        if isinstance(payload, dict):
            code = payload.get("code")
    except ValueError:
        pass

    if code == UNIQUE_VIOLATION or status == 409:
        return ConstraintViolationError(f"HTTP {status}: {body}", status, code)
    if status >= 500 and retry_server_errors:
        return RetryableError(f"HTTP {status}: {body}")
    return SupabaseAPIError(f"HTTP {status}: {body}", status, code)


# =============================================================================
# Client Functions
# =============================================================================


async def rest(
    method: str,
    table: str,
    params: dict | None = None,
    json: dict | list | None = None,
    prefer: str | None = None,
) -> list[dict]:
    """Make a single PostgREST request without retry.

    For reads prefer `select_with_retry()`; for writes use `mutate()`.

    Args:
        method: HTTP method (GET, POST, PATCH, DELETE)
        table: Table name (e.g. "cerdas")
        params: Query string parameters (filters, select, order, limit)
        json: Request body for writes
        prefer: Optional Prefer header (e.g. "return=representation")

    Returns:
        List of rows (empty for responses without a body)

    Raises:
        httpx.HTTPStatusError: If the HTTP request fails
    """
    async with httpx.AsyncClient() as client:
        response = await client.request(
            method,
            table_url(table),
            params=params,
            json=json,
            headers=_headers(prefer),
            timeout=settings.request_timeout,
        )
        response.raise_for_status()

        if not response.content:
            return []
        return response.json()


@retry(
    retry=retry_if_exception_type(RetryableError),
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS, jitter=2),
    reraise=True,
)
async def select_with_retry(table: str, params: dict | None = None) -> list[dict]:
    """Read rows with automatic retry on transient errors.

    Retries on:
    - Timeouts
    - Connection errors
    - HTTP 5xx errors

    After MAX_RETRIES failures, the last RetryableError is raised.

    Raises:
        SupabaseAPIError: On 4xx responses (bad filter, permission denied)
        RetryableError: If every attempt failed transiently
    """
    query = {"select": "*"}
    query.update(params or {})
    try:
        return await rest("GET", table, params=query)
    except httpx.TimeoutException as e:
        raise RetryableError(f"Request timed out: {e}") from e
    except httpx.ConnectError as e:
        raise RetryableError(f"Connection failed: {e}") from e
    except httpx.HTTPStatusError as e:
        raise _error_from_response(e, retry_server_errors=True) from e


async def mutate(
    method: str,
    table: str,
    params: dict | None = None,
    json: dict | list | None = None,
) -> list[dict]:
    """Write rows and return them as stored. Never retried.

    Raises:
        ConstraintViolationError: If the write breaks a unique constraint
        SupabaseAPIError: For any other rejected write
        StoreError: On timeouts or connection failures (outcome unknown)
    """
    try:
        return await rest(method, table, params=params, json=json, prefer="return=representation")
    except httpx.TimeoutException as e:
        raise StoreError(f"Request timed out, write outcome unknown: {e}") from e
    except httpx.ConnectError as e:
        raise StoreError(f"Connection failed: {e}") from e
    except httpx.HTTPStatusError as e:
        raise _error_from_response(e, retry_server_errors=False) from e


async def select_one(table: str, filters: dict) -> dict:
    """Fetch exactly one row by filters.

    Raises:
        NotFoundError: If no row matches
    """
    rows = await select_with_retry(table, {**filter_params(filters), "limit": "1"})
    if not rows:
        described = ", ".join(f"{k}={v}" for k, v in filters.items())
        raise NotFoundError(f"No {table} row with {described}")
    return rows[0]
