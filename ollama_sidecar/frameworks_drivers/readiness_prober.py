import asyncio
import math
from typing import Optional

from ollama_sidecar.frameworks_drivers.routes import Route
from ollama_sidecar.shared.errors import ApiNotReachable
from ollama_sidecar.shared.health_checker import HealthChecker
from ollama_sidecar.shared.logger import Logger

logger = Logger.get(__name__)


class ReadinessProber:
    """
    Answers whether the server accepts requests, and waits for it to do so.
    """

    def __init__(self, base_url: str, probe_timeout: float = 1.0, ready_timeout: float = 5.0, poll_interval: float = 0.5):
        self.base_url = base_url.rstrip("/")
        self.probe_timeout = probe_timeout
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval

    async def probe(self) -> bool:
        """Issue one bodiless HEAD request against the server root. Never retries."""
        return await HealthChecker.check_http_endpoint(
            f"{self.base_url}{Route.ROOT.path}", Route.ROOT.method, self.probe_timeout,
        )

    async def wait_until_ready(self, timeout: Optional[float] = None, poll_interval: Optional[float] = None) -> None:
        """
        Probe until the server answers or the deadline passes.

        At most ``ceil(timeout / poll_interval)`` probes are issued. Sleeping
        between probes yields to the event loop, and cancelling the awaiting
        task stops the loop before the next probe.

        Raises:
            ApiNotReachable: if no probe succeeded before the deadline.
        """
        timeout = self.ready_timeout if timeout is None else timeout
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        max_attempts = max(1, math.ceil(round(timeout / poll_interval, 6)))

        for attempt in range(1, max_attempts + 1):
            if await self.probe():
                elapsed_ms = (loop.time() - started) * 1000
                logger.debug(f"API is reachable after waiting {elapsed_ms:.0f} ms ({attempt} probe(s))")
                return
            remaining = deadline - loop.time()
            if attempt == max_attempts or remaining <= 0:
                break
            await asyncio.sleep(min(poll_interval, remaining))

        logger.error(f"Failed to reach API at {self.base_url} within {timeout:.1f} seconds")
        raise ApiNotReachable(self.base_url, timeout)
