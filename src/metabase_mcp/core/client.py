"""Thin async HTTP client for the Metabase REST API.

Wraps a single shared ``httpx.AsyncClient`` so that authentication headers set
by the session manager apply to every request. HTTP failures surface as raw
``httpx`` exceptions (``raise_for_status``); mapping them onto the gateway
taxonomy is the error normalizer's job.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from metabase_mcp.config.server import DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

USER_AGENT = "metabase-mcp"


def _clean_params(params: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    """Drop ``None`` values so optional query parameters are simply omitted."""
    if not params:
        return None
    cleaned = {key: value for key, value in params.items() if value is not None}
    return cleaned or None


def _decode(response: httpx.Response) -> Any:
    """Decode a successful response body: JSON when possible, text otherwise."""
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class MetabaseClient:
    """Async JSON client bound to one Metabase base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=timeout,
            transport=transport,
        )

    @property
    def headers(self) -> httpx.Headers:
        """Default headers sent with every request."""
        return self._http.headers

    def set_default_header(self, name: str, value: str) -> None:
        self._http.headers[name] = value

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded body.

        Raises:
            httpx.HTTPStatusError: non-2xx response
            httpx.TransportError: connection, read or timeout failure
        """
        method = method.upper()
        response = await self._http.request(
            method,
            path,
            params=_clean_params(params),
            json=json,
            files=files,
        )
        logger.debug("%s %s -> %d", method, path, response.status_code)
        response.raise_for_status()
        return _decode(response)

    async def get(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        return await self.request("POST", path, params=params, json=json, files=files)

    async def put(self, path: str, json: Any = None, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("PUT", path, params=params, json=json)

    async def delete(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("DELETE", path, params=params)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MetabaseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
