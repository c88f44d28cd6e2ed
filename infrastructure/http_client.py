"""Shared async HTTP client for outbound provider calls (mail API)."""

import time
from typing import Any, Optional

import httpx

from shared.logging import get_logger

log = get_logger(__name__)

DEFAULT_USER_AGENT = "usergate/1.0"


class HttpClient:
    """Thin async wrapper around httpx.AsyncClient.

    Every request carries the service User-Agent and is logged at debug level
    with its status and duration. Transport errors propagate to the caller.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        started = time.perf_counter()
        response = await self._client.post(url, **kwargs)
        log.debug(
            "http_request",
            method="POST",
            url=url,
            status_code=response.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
