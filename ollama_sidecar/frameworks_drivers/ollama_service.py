import time
from typing import AsyncIterator, Callable, Optional

import httpx

from ollama_sidecar.frameworks_drivers.routes import Route
from ollama_sidecar.shared.errors import TransportError
from ollama_sidecar.shared.logger import Logger

logger = Logger.get(__name__)


class OllamaService:
    """
    HTTP access to the server. Translates every httpx failure, and every
    non-success status, into TransportError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 300.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(
            read=self.timeout,
            connect=self.connect_timeout,
            write=self.connect_timeout,
            pool=self.connect_timeout,
        )
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self.transport)

    async def stream(
        self,
        route: Route,
        payload: dict,
        on_open: Optional[Callable[[], None]] = None,
    ) -> AsyncIterator[bytes]:
        """
        Send one request and yield the response body as it arrives.

        ``on_open`` runs once, after a success status was received and before
        the first chunk is yielded. Closing the generator closes the
        connection.
        """
        url = f"{self.base_url}{route.path}"
        logger.debug(f"Opening stream: {route.method} {url}")
        start_time = time.time()
        async with self._client() as client:
            try:
                async with client.stream(route.method, route.path, json=payload) as response:
                    if response.is_error:
                        body = await response.aread()
                        logger.error(f"{url} answered {response.status_code}: {body[:200]!r}")
                        raise TransportError(
                            f"{route.method} {route.path} failed with status {response.status_code}",
                            status_code=response.status_code,
                        )
                    if on_open is not None:
                        on_open()
                    async for chunk in response.aiter_bytes():
                        yield chunk
            except httpx.HTTPError as e:
                elapsed = time.time() - start_time
                logger.error(f"Stream from {url} failed after {elapsed:.2f}s: {e!r}")
                raise TransportError(f"{route.method} {route.path} stream failed: {e}") from e
        logger.debug(f"Stream from {url} completed in {time.time() - start_time:.2f}s")

    async def request(self, route: Route, payload: Optional[dict] = None) -> bytes:
        """Send one request and return the raw response body."""
        url = f"{self.base_url}{route.path}"
        start_time = time.time()
        async with self._client() as client:
            try:
                response = await client.request(route.method, route.path, json=payload)
                elapsed = time.time() - start_time
                logger.debug(f"{route.method} {url} status: {response.status_code}, elapsed: {elapsed:.2f}s")
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error from {url}: {e}")
                raise TransportError(
                    f"{route.method} {route.path} failed with status {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                elapsed = time.time() - start_time
                logger.error(f"Request to {url} failed after {elapsed:.2f}s: {e!r}")
                raise TransportError(f"{route.method} {route.path} failed: {e}") from e
        return response.content
