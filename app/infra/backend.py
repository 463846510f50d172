"""Client for the hosted data store and its serverless functions.

Tables are reached through the PostgREST-style ``/rest/v1`` surface and
functions through ``/functions/v1``. Joined relations come back either as a
single object or as an array of one; :func:`normalize_relations` collapses
them here so nothing past this module has to care.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

import httpx

from app.infra.metrics import metrics

logger = logging.getLogger(__name__)

Filter = tuple[str, str]


class BackendError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class FunctionResult:
    ok: bool
    message: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def eq(column: str, value: object) -> Filter:
    return column, f"eq.{_format_value(value)}"


def gt(column: str, value: object) -> Filter:
    return column, f"gt.{_format_value(value)}"


def gte(column: str, value: object) -> Filter:
    return column, f"gte.{_format_value(value)}"


def lt(column: str, value: object) -> Filter:
    return column, f"lt.{_format_value(value)}"


def lte(column: str, value: object) -> Filter:
    return column, f"lte.{_format_value(value)}"


def in_(column: str, values: Iterable[object]) -> Filter:
    joined = ",".join(_format_value(value) for value in values)
    return column, f"in.({joined})"


def unwrap_relation(value: object) -> dict[str, Any] | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        return value
    return None


def normalize_relations(row: Mapping[str, Any], *names: str) -> dict[str, Any]:
    normalized = dict(row)
    for name in names:
        if name in normalized:
            normalized[name] = unwrap_relation(normalized[name])
    return normalized


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "msg"):
            message = body.get(key)
            if message:
                return str(message)
    return response.reason_phrase or "Unknown"


def _parse_content_range(header: str | None) -> int:
    # "0-24/3573" or "*/0"
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class BackendClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params: list[tuple[str, str]] = [("select", columns), *filters]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        response = await self._request("select", "GET", f"/rest/v1/{table}", params=params)
        rows = response.json()
        if not isinstance(rows, list):
            raise BackendError(f"Unexpected response for {table}", response.status_code)
        return [row for row in rows if isinstance(row, dict)]

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[dict[str, Any]]:
        if not filters:
            raise BackendError(f"Refusing unfiltered update on {table}")
        response = await self._request(
            "update",
            "PATCH",
            f"/rest/v1/{table}",
            params=list(filters),
            json={key: _jsonable(value) for key, value in values.items()},
            headers={"Prefer": "return=representation"},
        )
        if not response.content:
            return []
        rows = response.json()
        return rows if isinstance(rows, list) else []

    async def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        response = await self._request(
            "count",
            "HEAD",
            f"/rest/v1/{table}",
            params=[("select", "id"), *filters],
            headers={"Prefer": "count=exact"},
        )
        return _parse_content_range(response.headers.get("Content-Range"))

    async def invoke(self, function: str, body: Mapping[str, Any]) -> FunctionResult:
        try:
            response = await self._client.post(f"/functions/v1/{function}", json=dict(body))
        except httpx.HTTPError as exc:
            metrics.record_function_call(function, "transport_error")
            logger.warning(
                "function_transport_error",
                extra={"extra": {"function": function, "error": str(exc)}},
            )
            return FunctionResult(ok=False, message=str(exc) or exc.__class__.__name__)

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}

        if response.is_success and not payload.get("error"):
            metrics.record_function_call(function, "ok")
            logger.info("function_invoked", extra={"extra": {"function": function}})
            return FunctionResult(ok=True, message=payload.get("message"), payload=payload)

        message = _error_message(response)
        metrics.record_function_call(function, "error")
        logger.warning(
            "function_failed",
            extra={"extra": {"function": function, "status_code": response.status_code, "error": message}},
        )
        return FunctionResult(ok=False, message=message, payload=payload)

    async def _request(self, kind: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            metrics.record_backend_request(kind, "transport_error")
            logger.error("backend_transport_error", extra={"extra": {"kind": kind, "url": url, "error": str(exc)}})
            raise BackendError(str(exc) or exc.__class__.__name__) from exc
        if not response.is_success:
            metrics.record_backend_request(kind, "error")
            message = _error_message(response)
            logger.error(
                "backend_request_failed",
                extra={"extra": {"kind": kind, "url": url, "status_code": response.status_code, "error": message}},
            )
            raise BackendError(message, response.status_code)
        metrics.record_backend_request(kind, "ok")
        return response


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
