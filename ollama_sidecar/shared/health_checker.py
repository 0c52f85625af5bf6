import asyncio
from typing import Any, Optional

import requests

from ollama_sidecar.shared.logger import Logger

logger = Logger.get(__name__)


class HealthChecker:
    """
    Utility class for performing liveness checks on the server and its process.
    """

    @staticmethod
    async def check_http_endpoint(url: str, method: str = "HEAD", timeout: float = 1.0) -> bool:
        """
        Check if an HTTP endpoint answers with a 2xx status code.

        Args:
            url: The full URL to request
            method: The HTTP method; the request never carries a body
            timeout: Request timeout in seconds

        Returns:
            True if the endpoint responds with a 2xx status, False on any other
            status or on any network error.
        """
        try:
            response = await asyncio.to_thread(
                requests.request, method, url, timeout=timeout,
            )
        except requests.RequestException as e:
            logger.debug(f"Health check failed for {url}: {e}")
            return False

        if 200 <= response.status_code < 300:
            logger.debug(f"Health check passed for {url}")
            return True
        logger.warning(f"Health check failed for {url}: status {response.status_code}")
        return False

    @staticmethod
    def check_process_running(process: Optional[Any]) -> bool:
        """
        Check if a spawned server process is still running.

        Args:
            process: An ``asyncio.subprocess.Process`` (or anything exposing
                ``returncode``), or None.

        Returns:
            True if the process has not exited, False otherwise
        """
        if process is None:
            return False

        if process.returncode is not None:
            logger.warning(f"Process has terminated with return code {process.returncode}")
            return False

        return True
