"""Async JSON-over-HTTP adapter that speaks the pipeline's failure vocabulary."""

from __future__ import annotations

import json
from typing import Any

import httpx

from memeforge import __version__
from memeforge._log import get_logger
from memeforge.errors import NetworkFailure, ServiceFailure
from memeforge.services._retry import RetryPolicy, call_with_retries

logger = get_logger("services.http")

_USER_AGENT = f"memeforge/{__version__}"
_TRANSIENT_STATUS_CODES = {429, 502, 503, 504}


def _describe_status(service: str, status: int) -> str:
    if status in (401, 403):
        return f"{service} rejected the credentials"
    if status == 404:
        return f"{service} does not know the requested resource"
    if 400 <= status < 500:
        return f"{service} rejected the request"
    return f"{service} reported an internal error"


class ServiceAdapter:
    """Call one HTTP service and normalize its responses and failures.

    Each attempt opens its own ``httpx.AsyncClient``; a cancelled call
    closes it on the way out. Transport problems raise
    :class:`NetworkFailure` and are retried per *retry*; rejections raise
    :class:`ServiceFailure` immediately. Status codes and headers never
    appear in the raised messages.
    """

    def __init__(
        self,
        base_url: str,
        *,
        name: str = "service",
        timeout: float = 15.0,
        retry: RetryPolicy | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._name = name
        self._timeout = timeout
        self._retry = retry or RetryPolicy()
        self._headers = {"User-Agent": _USER_AGENT, **(headers or {})}
        self._transport = transport

    @property
    def name(self) -> str:
        return self._name

    async def call(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        url = f"{self._base_url}/{endpoint.lstrip('/')}"

        async def attempt() -> Any:
            return await self._send(method.upper(), url, params, data, json_body)

        return await call_with_retries(
            attempt, self._retry, label=f"{self._name} {method.upper()} {endpoint}"
        )

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        data: dict[str, Any] | None,
        json_body: Any,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, url, params=params, data=data, json=json_body
                )
        except httpx.TimeoutException as e:
            logger.debug("%s timed out: %s", url, e)
            raise NetworkFailure("network timeout") from e
        except httpx.TransportError as e:
            logger.debug("%s transport error: %s", url, e)
            raise NetworkFailure(f"{self._name} is unreachable") from e

        status = response.status_code
        if status in _TRANSIENT_STATUS_CODES:
            logger.debug("%s answered HTTP %d", url, status)
            raise NetworkFailure(f"{self._name} is temporarily unavailable")
        if status >= 400:
            logger.debug("%s answered HTTP %d: %s", url, status, response.text[:200])
            raise ServiceFailure(_describe_status(self._name, status))

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise NetworkFailure(f"{self._name} returned a malformed response") from e
