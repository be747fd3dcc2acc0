"""Client for the hosted data platform's REST and storage endpoints.

Reads and writes follow PostgREST conventions: filters are encoded as query
parameters (``col=eq.value``), writes ask for ``return=representation`` so the
stored record comes back, and upserts resolve conflicts with
``merge-duplicates``. Uploads go to the storage API and yield a public URL.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import httpx

from srm_collab.backend.base import Backend, ChangeHandler, Filter, FilterOp, Query, Record
from srm_collab.backend.polling import ChangePoller
from srm_collab.core.errors import (
    AuthError,
    BackendConnectionError,
    BackendError,
    ConstraintError,
    ForbiddenError,
    RecordNotFoundError,
    StorageError,
)
from srm_collab.core.settings import settings

logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_SERVER_ERROR = 500

# Postgres error code for unique_violation, reported in the error body.
UNIQUE_VIOLATION = "23505"

_RESERVED = set(',.:()"{} ')


@dataclass(frozen=True)
class RestBackendConfig:
    """Immutable configuration for the hosted platform client."""

    base_url: str
    api_key: str
    timeout_seconds: float
    poll_interval_seconds: float


def load_rest_config() -> RestBackendConfig:
    """Build configuration object from global settings."""
    if not settings.hosted_backend_enabled:
        raise BackendConnectionError("Hosted backend is not configured")

    return RestBackendConfig(
        base_url=(settings.backend_url or "").rstrip("/"),
        api_key=settings.backend_api_key or "",
        timeout_seconds=float(settings.http_timeout_seconds),
        poll_interval_seconds=float(settings.realtime_poll_interval_seconds),
    )


def encode_value(value: Any) -> str:
    """Render a scalar the way PostgREST expects it in a filter."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def _quote(value: Any) -> str:
    text = encode_value(value)
    if any(char in _RESERVED for char in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def encode_filter(flt: Filter) -> tuple[str, str]:
    """Translate a filter into a ``(column, operator.value)`` query parameter."""
    if flt.op is FilterOp.EQ:
        if flt.value is None:
            return flt.column, "is.null"
        return flt.column, f"eq.{encode_value(flt.value)}"
    if flt.op is FilterOp.NEQ:
        return flt.column, f"neq.{encode_value(flt.value)}"
    if flt.op is FilterOp.IN:
        return flt.column, f"in.({','.join(_quote(v) for v in flt.value)})"
    if flt.op is FilterOp.NOT_IN:
        return flt.column, f"not.in.({','.join(_quote(v) for v in flt.value)})"
    if flt.op is FilterOp.CONTAINS:
        return flt.column, f"cs.{{{','.join(_quote(v) for v in flt.value)}}}"
    if flt.op is FilterOp.GTE:
        return flt.column, f"gte.{encode_value(flt.value)}"
    if flt.op is FilterOp.LT:
        return flt.column, f"lt.{encode_value(flt.value)}"
    raise ValueError(f"Unsupported filter operator: {flt.op}")


def encode_query(query: Query) -> list[tuple[str, str]]:
    """Build the query parameters for a read."""
    params: list[tuple[str, str]] = [("select", "*")]
    params.extend(encode_filter(flt) for flt in query.filters)
    if query.order:
        params.append(
            (
                "order",
                ",".join(
                    f"{order.column}.{'desc' if order.descending else 'asc'}"
                    for order in query.order
                ),
            )
        )
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    return value


def _error_detail(response: httpx.Response) -> tuple[str, str | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if isinstance(body, Mapping):
        message = body.get("message") or body.get("error") or body.get("msg") or str(body)
        return str(message), body.get("code")
    return str(body), None


def raise_for_response(response: httpx.Response, action: str) -> None:
    """Translate an unsuccessful response into the error taxonomy."""
    status = response.status_code
    if status < HTTP_BAD_REQUEST:
        return

    message, code = _error_detail(response)
    detail = f"{action} failed ({status}): {message}"
    if status == HTTP_UNAUTHORIZED:
        raise AuthError(detail)
    if status == HTTP_FORBIDDEN:
        raise ForbiddenError(detail)
    if status == HTTP_NOT_FOUND:
        raise RecordNotFoundError(detail)
    if status == HTTP_CONFLICT or code == UNIQUE_VIOLATION:
        raise ConstraintError(detail)
    if status >= HTTP_INTERNAL_SERVER_ERROR:
        raise BackendConnectionError(detail)
    raise ConstraintError(detail)


class RestBackend:
    """Backend implementation over the hosted platform's HTTP API."""

    def __init__(
        self,
        config: RestBackendConfig | None = None,
        *,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        parent: RestBackend | None = None,
    ) -> None:
        self.config = config or (parent.config if parent else load_rest_config())
        self.access_token = access_token
        self._transport = transport
        self._parent = parent
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    def bind(self, access_token: str | None) -> Backend:
        """Return a backend sending requests with the user's access token.

        The bound backend shares this backend's HTTP connection pool.
        """
        root = self._parent or self
        return RestBackend(root.config, access_token=access_token, parent=root)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._parent is not None:
            return await self._parent._ensure_client()

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )

        return self._client

    def _build_auth_headers(self) -> dict[str, str]:
        return {
            "apikey": self.config.api_key,
            "Authorization": f"Bearer {self.access_token or self.config.api_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        params: Sequence[tuple[str, str]] | None = None,
        json_data: Any | None = None,
        content: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        logger.debug("Platform request: %s %s", method, path)
        request_headers = self._build_auth_headers()
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method,
                path,
                params=list(params) if params else None,
                json=_jsonable(json_data) if json_data is not None else None,
                content=content,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            raise BackendConnectionError(f"{action} failed: {exc}") from exc

        raise_for_response(response, action)
        return response

    @staticmethod
    def _single(response: httpx.Response, action: str) -> Record:
        rows = response.json()
        if isinstance(rows, list):
            if not rows:
                raise RecordNotFoundError(f"{action} returned no record")
            return rows[0]
        return rows

    async def query(self, query: Query) -> list[Record]:
        response = await self._request(
            "GET",
            f"/rest/v1/{query.collection}",
            action=f"Query on {query.collection}",
            params=encode_query(query),
        )
        return list(response.json())

    async def insert(self, collection: str, payload: Mapping[str, Any]) -> Record:
        action = f"Insert into {collection}"
        response = await self._request(
            "POST",
            f"/rest/v1/{collection}",
            action=action,
            json_data=dict(payload),
            headers={"Prefer": "return=representation"},
        )
        return self._single(response, action)

    async def update(
        self,
        collection: str,
        record_id: str,
        payload: Mapping[str, Any],
    ) -> Record:
        action = f"Update of {collection} {record_id}"
        response = await self._request(
            "PATCH",
            f"/rest/v1/{collection}",
            action=action,
            params=[("id", f"eq.{record_id}")],
            json_data=dict(payload),
            headers={"Prefer": "return=representation"},
        )
        return self._single(response, action)

    async def upsert(
        self,
        collection: str,
        payload: Mapping[str, Any],
        *,
        on_conflict: str,
    ) -> Record:
        action = f"Upsert into {collection}"
        response = await self._request(
            "POST",
            f"/rest/v1/{collection}",
            action=action,
            params=[("on_conflict", on_conflict)],
            json_data=dict(payload),
            headers={"Prefer": "return=representation,resolution=merge-duplicates"},
        )
        return self._single(response, action)

    async def delete(self, collection: str, record_id: str) -> None:
        action = f"Delete from {collection} {record_id}"
        response = await self._request(
            "DELETE",
            f"/rest/v1/{collection}",
            action=action,
            params=[("id", f"eq.{record_id}")],
            headers={"Prefer": "return=representation"},
        )
        if not response.json():
            raise RecordNotFoundError(f"{action} matched no record")

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> str:
        headers = {"x-upsert": "true" if upsert else "false"}
        if content_type:
            headers["Content-Type"] = content_type

        try:
            await self._request(
                "POST",
                f"/storage/v1/object/{bucket}/{path}",
                action=f"Upload to {bucket}/{path}",
                content=data,
                headers=headers,
            )
        except BackendError as exc:
            raise StorageError(str(exc)) from exc

        return f"{self.config.base_url}/storage/v1/object/public/{bucket}/{path}"

    async def subscribe(
        self,
        collection: str,
        filters: Sequence[Filter],
        handler: ChangeHandler,
    ) -> ChangePoller:
        poller = ChangePoller(
            self,
            Query(collection, tuple(filters)),
            handler,
            interval=self.config.poll_interval_seconds,
        )
        await poller.start()
        return poller

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        if self._parent is not None:
            return

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


__all__ = [
    "RestBackend",
    "RestBackendConfig",
    "encode_filter",
    "encode_query",
    "load_rest_config",
    "raise_for_response",
]
