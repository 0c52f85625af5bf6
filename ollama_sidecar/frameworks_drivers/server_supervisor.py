from __future__ import annotations

import asyncio
from typing import Optional

from ollama_sidecar.entities.activity_state import ActivityState
from ollama_sidecar.shared.errors import ApiNotReachable
from ollama_sidecar.shared.logger import Logger
from ollama_sidecar.shared.protocols import ProcessControllerProtocol, ReadinessProberProtocol
from ollama_sidecar.use_cases.restart_policy import RestartPolicy

logger = Logger.get(__name__)


class ServerSupervisor:
    """
    Brings the server to a ready state before a call.

    The whole check, kill, launch and wait sequence runs under one lock, so at
    most one restart is in progress per supervisor. Share one supervisor per
    port. Callers that arrive during a restart wait for it and reuse its
    outcome instead of restarting again.
    """

    def __init__(
        self,
        controller: Optional[ProcessControllerProtocol],
        prober: ReadinessProberProtocol,
        activity: ActivityState,
        policy: RestartPolicy,
        ready_timeout: float = 5.0,
        poll_interval: float = 0.5,
    ):
        self.controller = controller
        self.prober = prober
        self.activity = activity
        self.policy = policy
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self.lock = asyncio.Lock()
        self._completed_restarts = 0
        self._last_restart_model: Optional[str] = None

    @property
    def manages_process(self) -> bool:
        return self.controller is not None

    async def ensure_ready(self, model: Optional[str] = None) -> None:
        """
        Make sure the server answers, restarting it first if the restart
        policy asks for it. The policy is only consulted when ``model`` is
        given, i.e. for inference calls.

        A caller that queued behind a restart which completed for the same
        model (or a manual restart) takes that restart as its own and does
        not restart again. Activity is never recorded here; only a
        successfully opened inference stream does that.

        Raises:
            ApiNotReachable: if the server does not answer within the ready timeout.
            BinaryNotFound: if a launch was needed and the executable is missing.
        """
        seen_restarts = self._completed_restarts
        async with self.lock:
            if self.controller is not None:
                reason = None
                if model is not None and not self._restarted_for(model, seen_restarts):
                    reason = self.policy.restart_reason(model, self.activity)
                if reason is not None:
                    logger.info(f"Restarting server because {reason}")
                    await self.controller.launch(force=True)
                    await self._wait_until_ready()
                    self._mark_restart(model)
                    return
                if not await asyncio.to_thread(self.controller.is_running):
                    logger.info("Server is not running, launching it")
                    await self.controller.launch()

            await self._wait_until_ready()

    async def restart(self, min_interval: float = 0.0) -> bool:
        """
        Force a restart when the last inference is at least ``min_interval``
        seconds old (or none was recorded), then wait for readiness.

        Returns:
            True if a restart was performed.
        """
        async with self.lock:
            if self.controller is None:
                logger.warning("Restart requested but process management is disabled")
                return False
            idle = self.activity.idle_seconds()
            if idle is not None and idle < min_interval:
                logger.debug(f"Skipping restart, last inference was {idle:.0f}s ago")
                return False
            logger.info("Restarting server")
            await self.controller.launch(force=True)
            await self._wait_until_ready()
            self._mark_restart(None)
            return True

    def _mark_restart(self, model: Optional[str]) -> None:
        self._completed_restarts += 1
        self._last_restart_model = model

    def _restarted_for(self, model: str, seen_restarts: int) -> bool:
        """True if a restart for ``model`` (or a manual one) completed while this caller waited."""
        if self._completed_restarts == seen_restarts:
            return False
        return self._last_restart_model in (None, model)

    async def _wait_until_ready(self) -> None:
        try:
            await self.prober.wait_until_ready(self.ready_timeout, self.poll_interval)
        except ApiNotReachable:
            handle = getattr(self.controller, "handle", None)
            if handle is not None and not handle.is_alive():
                logger.error(
                    f"Server process {handle.pid} exited with status {handle.returncode}. "
                    f"Last output:\n{handle.recent_output()}",
                )
            raise
