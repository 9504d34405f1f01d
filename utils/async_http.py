"""Shared asynchronous HTTP client utilities."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 20.0
DEFAULT_TOTAL_TIMEOUT = 30.0


class AsyncHTTP:
    """Wrapper around :class:`httpx.AsyncClient` with shared timeouts.

    Retries are applied one level up by :class:`utils.invoker.ResilientInvoker`
    so that each API client can classify failures its own way.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        total_timeout = timeout or DEFAULT_TOTAL_TIMEOUT
        self._client = httpx.AsyncClient(
            base_url=base_url or "",
            headers=dict(headers or {}),
            timeout=httpx.Timeout(
                total_timeout,
                connect=min(DEFAULT_CONNECT_TIMEOUT, total_timeout),
                read=min(DEFAULT_READ_TIMEOUT, total_timeout),
            ),
            follow_redirects=follow_redirects,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        logger.debug("AsyncHTTP request", extra={"method": method, "url": url})
        kwargs: dict[str, Any] = {
            "params": params,
            "json": json,
            "data": data,
            "headers": headers,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await self._client.request(method, url, **kwargs)
        logger.debug(
            "AsyncHTTP response",
            extra={"method": method, "url": url, "status": response.status_code},
        )
        return response

    async def get(self, url: str, **kw: Any) -> httpx.Response:
        return await self.request("GET", url, **kw)

    async def post(self, url: str, **kw: Any) -> httpx.Response:
        return await self.request("POST", url, **kw)

    async def patch(self, url: str, **kw: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kw)

    async def delete(self, url: str, **kw: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kw)
