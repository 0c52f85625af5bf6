from __future__ import annotations

import shutil
import subprocess
from typing import Optional

import psutil

from ollama_sidecar.shared.logger import Logger
from ollama_sidecar.shared.protocols import PortBindingDTO

logger = Logger.get(__name__)


class PortPidResolver:
    """
    Finds the process currently listening on a TCP port.

    Every lookup queries the OS again; nothing is cached. A failed query is
    reported as "unknown" (None), the same as a free port.
    """

    def __init__(self, lsof_timeout: float = 2.0):
        self.lsof_timeout = lsof_timeout

    def resolve_pid(self, port: int) -> Optional[int]:
        """
        Return the pid listening on ``port``, or None if nothing is bound or
        the lookup itself failed.
        """
        try:
            return self._resolve_with_psutil(port)
        except psutil.AccessDenied:
            # macOS only lists other users' sockets to root.
            logger.debug(f"psutil denied connection listing, falling back to lsof for port {port}")
            return self._resolve_with_lsof(port)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Could not resolve pid for port {port}: {e}")
            return None

    def binding(self, port: int) -> PortBindingDTO:
        return {"port": port, "pid": self.resolve_pid(port)}

    @staticmethod
    def _resolve_with_psutil(port: int) -> Optional[int]:
        for conn in psutil.net_connections(kind="tcp"):
            if conn.status != psutil.CONN_LISTEN or not conn.laddr:
                continue
            if conn.laddr.port == port and conn.pid:
                return conn.pid
        return None

    def _resolve_with_lsof(self, port: int) -> Optional[int]:
        lsof = shutil.which("lsof")
        if not lsof:
            return None
        try:
            result = subprocess.run(
                [lsof, "-nP", f"-iTCP:{port}", "-sTCP:LISTEN", "-t"],
                check=False,
                capture_output=True,
                text=True,
                timeout=self.lsof_timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"lsof lookup failed for port {port}: {e}")
            return None

        for line in result.stdout.splitlines():
            line = line.strip()
            if line.isdigit():
                return int(line)
        return None
