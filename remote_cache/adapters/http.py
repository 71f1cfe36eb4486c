"""HTTP resolver.

Resolves cache keys against a remote JSON source over HTTP. It encapsulates
transport concerns (base URL, headers, timeouts, retries) so that a cache can
be pointed at a remote service with nothing more than an endpoint.

Notes
-----
- A "not found" status (404 by default) resolves to ``None``. The cache
  stores that like any other value.
- Any other non-2xx status raises ``httpx.HTTPStatusError``, which the cache
  treats as a resolver failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable
from typing import Any, Iterable, Optional
from urllib.parse import quote

import httpx

from .. import __version__

logger = logging.getLogger(__name__)


class HttpResolver:
    """Resolver fetching ``GET {endpoint}{path_template}`` for each key.

    Parameters
    ----------
    endpoint: str
        Base URL of the remote source (e.g., "http://localhost:8080").
    path_template: str
        Request path with a ``{key}`` placeholder. Defaults to ``"/{key}"``.
    api_key: Optional[str]
        Optional bearer token for authenticating requests.
    timeout: float
        Request timeout in seconds for each HTTP attempt.
    max_retries: int
        Retries for connect errors and read timeouts.
    backoff_initial_ms: int
        Delay before the first retry, in milliseconds.
    backoff_multiplier: float
        Delay multiplier applied per attempt.
    not_found_statuses: Iterable[int]
        Status codes that resolve to ``None`` instead of raising.
    client: Optional[httpx.AsyncClient]
        Pre-built client to use instead of creating one.

    Attributes
    ----------
    _client: httpx.AsyncClient
        Shared async client configured with base URL, timeout, and headers.
    """

    def __init__(
        self,
        endpoint: str,
        path_template: str = "/{key}",
        api_key: Optional[str] = None,
        timeout: float = 30,
        *,
        max_retries: int = 1,
        backoff_initial_ms: int = 200,
        backoff_multiplier: float = 2.0,
        not_found_statuses: Iterable[int] = (404,),
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=endpoint, timeout=timeout, headers=self._headers(api_key)
        )
        self._path_template = path_template
        self._max_retries = max(0, int(max_retries))
        self._backoff_initial_ms = max(0, int(backoff_initial_ms))
        self._backoff_multiplier = max(1.0, float(backoff_multiplier))
        self._not_found = frozenset(not_found_statuses)
        self._timeout_seconds = timeout
        logger.info(
            "remote_cache.http.init",
            extra={"endpoint": endpoint, "timeout_seconds": timeout},
        )

    def inject_http_client_for_testing(self, client: Any) -> None:
        """Replace underlying HTTP client (testing only).

        This allows unit tests to provide a mock compatible with ``get()``.
        """
        self._client = client

    def path_for(self, key: Hashable) -> str:
        """Return the request path for ``key``, percent-encoded as one segment."""
        return self._path_template.format(key=quote(str(key), safe=""))

    async def __call__(self, key: Hashable) -> Any:
        """Fetch and decode the JSON document for ``key``.

        Returns
        -------
        Any
            Parsed JSON body, or ``None`` for a not-found status.

        Raises
        ------
        httpx.HTTPError
            On transport errors after retries or non-2xx responses.
        ValueError
            If the response body is not valid JSON.
        """
        path = self.path_for(key)
        logger.debug("remote_cache.http.get", extra={"key": key, "path": path})
        attempt = 0
        last_exc: Optional[Exception] = None
        while attempt <= self._max_retries:
            try:
                resp = await self._client.get(path)
                if resp.status_code in self._not_found:
                    logger.debug(
                        "remote_cache.http.not_found",
                        extra={"key": key, "status": resp.status_code},
                    )
                    return None
                resp.raise_for_status()
                break
            except (httpx.ReadTimeout, httpx.ConnectError) as exc:
                last_exc = exc
                logger.warning(
                    "remote_cache.http.retry",
                    extra={
                        "path": path,
                        "attempt": attempt + 1,
                        "max_retries": self._max_retries,
                        "timeout_seconds": self._timeout_seconds,
                        "error": str(exc),
                    },
                )
                if attempt < self._max_retries:
                    delay = (self._backoff_initial_ms / 1000.0) * (
                        self._backoff_multiplier**attempt
                    )
                    await asyncio.sleep(delay)
                attempt += 1
                continue
            except httpx.HTTPStatusError as exc:
                body_preview = ""
                text = exc.response.text
                if text:
                    body_preview = text if len(text) <= 500 else text[:500] + "..."
                logger.error(
                    "remote_cache.http.status_error",
                    extra={
                        "path": path,
                        "status": exc.response.status_code,
                        "body_preview": body_preview,
                    },
                )
                raise
        else:
            if last_exc is not None:
                raise last_exc
            raise RuntimeError(
                "HttpResolver request failed after retries without exception"
            )
        data = resp.json()
        logger.debug(
            "remote_cache.http.response",
            extra={"path": path, "status_code": resp.status_code},
        )
        return data

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpResolver":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @staticmethod
    def _headers(api_key: Optional[str]) -> dict:
        """Build default headers.

        Parameters
        ----------
        api_key: Optional[str]
            Bearer token to attach as an Authorization header.

        Returns
        -------
        dict
            A dictionary of HTTP headers suitable for JSON requests.
        """
        headers = {
            "Accept": "application/json",
            "User-Agent": f"remote-cache/{__version__}",
        }
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers
