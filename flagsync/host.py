"""
FlagSync — Backend host.

The single generic capability the core depends on: fetch a relative resource
path with a method, an optional JSON body and optional headers, and get back
parsed JSON.  Every failure is raised as ``TransportError``; there are no
retries here.

Usage::

    host = BackendHost()
    projects = await host.fetch("admin/projects?fields=id,name")
    await host.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from flagsync import config
from flagsync.domain.errors import TransportError
from flagsync.metrics import record_transport_error

logger = logging.getLogger(__name__)


class BackendHost:
    """Async HTTP client for the backend REST API.

    Instantiate once per process; the internal httpx.AsyncClient is
    lazily created and reused across calls.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url if base_url is not None else config.BACKEND_URL
        self._token = token if token is not None else config.BACKEND_TOKEN
        self._timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        self._transport = transport
        self._limit = asyncio.Semaphore(
            max(1, max_concurrency or config.MAX_CONCURRENT_REQUESTS)
        )
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _default_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _client_get(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._default_headers(),
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body.

        Returns ``None`` for an empty 2xx body.  Raises ``TransportError`` on
        network failure, non-2xx status, or an undecodable body.
        """
        client = await self._client_get()
        async with self._limit:
            try:
                resp = await client.request(method, path, json=body, headers=headers)
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                logger.error("Backend HTTP error %s for %s %s", status, method, path)
                record_transport_error()
                raise TransportError(status, exc.response.text or str(exc)) from exc
            except httpx.HTTPError as exc:
                logger.error("Backend request %s %s failed: %s", method, path, exc)
                record_transport_error()
                raise TransportError(None, str(exc) or type(exc).__name__) from exc

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            record_transport_error()
            raise TransportError(resp.status_code, f"invalid JSON from {path}: {exc}") from exc

    async def close(self) -> None:
        """Cleanly close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
