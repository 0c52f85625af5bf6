from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Optional, Sequence

import psutil

from ollama_sidecar.frameworks_drivers.config import BinaryConfig
from ollama_sidecar.frameworks_drivers.port_resolver import PortPidResolver
from ollama_sidecar.frameworks_drivers.process_handle import ProcessHandle
from ollama_sidecar.shared.errors import BinaryNotFound, OrphanCleanupFailure
from ollama_sidecar.shared.logger import Logger
from ollama_sidecar.shared.protocols import PortResolverProtocol, ReadinessProberProtocol

logger = Logger.get(__name__)


class ProcessController:

    """
    Starts, detects and stops the server process bound to a fixed port.

    At most one ProcessHandle is held at a time. The controller never signals
    its own process, whatever the port lookup reports.
    """

    def __init__(
        self,
        binary: BinaryConfig,
        prober: ReadinessProberProtocol,
        host: str = "127.0.0.1",
        port: int = 11434,
        resolver: Optional[PortResolverProtocol] = None,
        port_release_timeout: float = 2.0,
        terminate_timeout: float = 5.0,
        kill_orphans_on_restart: bool = True,
    ):
        self.binary = binary
        self.prober = prober
        self.host = host
        self.port = port
        self.resolver = resolver or PortPidResolver()
        self.port_release_timeout = port_release_timeout
        self.terminate_timeout = terminate_timeout
        self.kill_orphans_on_restart = kill_orphans_on_restart
        self.handle: Optional[ProcessHandle] = None

    def is_running(self, port: Optional[int] = None) -> bool:
        """True iff some process is listening on the port."""
        port = self.port if port is None else port
        return self.resolver.resolve_pid(port) is not None

    def kill(self, port: Optional[int] = None) -> bool:
        """
        Force-kill whatever listens on the port.

        Returns:
            True once the kill signal has been sent. False when nothing listens
            on the port, when the listener is this very process, or when the
            signal could not be delivered.
        """
        port = self.port if port is None else port
        pid = self.resolver.resolve_pid(port)
        if pid is None:
            logger.debug(f"No process found on port {port}")
            return False

        if pid == os.getpid():
            logger.debug("Not killing our own process")
            return False

        logger.debug(f"Killing process {pid} on port {port}")
        try:
            psutil.Process(pid).kill()
        except psutil.NoSuchProcess:
            logger.debug(f"Process {pid} exited before it could be killed")
            return False
        except psutil.Error as e:
            logger.error(f"Failed to kill process {pid}: {e}")
            return False
        return True

    def kill_orphans(self) -> int:
        """
        Kill every process named like the server binary, not only the one on
        the port. Best effort: failures are logged and the count of processes
        signalled is returned.
        """
        try:
            return self._sweep_orphans()
        except OrphanCleanupFailure as e:
            logger.warning(f"Orphan cleanup failed: {e}")
            return 0

    def _sweep_orphans(self) -> int:
        own_pid = os.getpid()
        try:
            candidates = list(psutil.process_iter(["pid", "name", "exe"]))
        except psutil.Error as e:
            raise OrphanCleanupFailure(f"could not list processes: {e}") from e

        killed = 0
        for proc in candidates:
            if proc.pid == own_pid or not self._matches_binary(proc.info):
                continue
            try:
                proc.kill()
                killed += 1
            except psutil.NoSuchProcess:
                continue
            except psutil.Error as e:
                logger.warning(f"Could not kill orphaned {self.executable_name} process {proc.pid}: {e}")

        if killed:
            logger.info(f"Killed {killed} orphaned {self.executable_name} process(es)")
        return killed

    @property
    def executable_name(self) -> str:
        """File name of the server executable; an explicit path wins over ``binary.name``."""
        if self.binary.path:
            return Path(self.binary.path).name
        return self.binary.name

    def _matches_binary(self, info: dict) -> bool:
        name = self.executable_name
        if info.get("name") == name:
            return True
        exe = info.get("exe")
        return bool(exe) and os.path.basename(exe) == name

    def terminate(self) -> bool:
        """Kill the port occupant and, if configured, sweep orphaned server processes."""
        killed = self.kill()
        if self.kill_orphans_on_restart:
            killed = self.kill_orphans() > 0 or killed
        return killed

    def locate_binary(self) -> str:
        """
        Find the server executable: explicit path, then the bundled-resource
        directory, then PATH.
        """
        searched: list[str] = []
        if self.binary.path:
            searched.append(self.binary.path)
            if Path(self.binary.path).is_file():
                return self.binary.path
        if self.binary.resource_dir:
            candidate = Path(self.binary.resource_dir) / self.binary.name
            searched.append(str(candidate))
            if candidate.is_file():
                return str(candidate)
        found = shutil.which(self.binary.name)
        if found:
            return found
        searched.append("PATH")
        logger.error(f"Failed to locate {self.binary.name} binary")
        raise BinaryNotFound(self.binary.name, searched)

    async def launch(
        self,
        args: Optional[Sequence[str]] = None,
        force: bool = False,
        clear_port: bool = True,
    ) -> Optional[ProcessHandle]:
        """
        Spawn the server and return as soon as the process exists.

        Without ``force`` this is a no-op when the server already answers on
        the port. With ``force`` the current occupant (and any orphans) is
        killed first. Otherwise a non-answering occupant is killed unless
        ``clear_port`` is False. Readiness is not awaited here.

        Raises:
            BinaryNotFound: if the executable cannot be located.
            OSError: if the process cannot be spawned.
        """
        args = list(self.binary.args if args is None else args)

        if not force and await self.prober.probe():
            logger.debug(f"Server is already running on port {self.port}, not launching")
            return self.handle

        if force:
            cleared = await asyncio.to_thread(self.terminate)
        elif clear_port:
            cleared = await asyncio.to_thread(self.kill)
        else:
            cleared = False
        if cleared:
            await self._await_port_release()

        binary_path = self.locate_binary()
        await self._retire_handle()

        env = os.environ.copy()
        env["OLLAMA_HOST"] = f"{self.host}:{self.port}"
        env.update(self.binary.env)

        logger.info(f"Starting {binary_path} {' '.join(args)} on port {self.port}")
        try:
            process = await asyncio.create_subprocess_exec(
                binary_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(f"Failed to start process: {e}")
            raise

        handle = ProcessHandle(process=process, port=self.port, args=[binary_path, *args])
        handle.reader_tasks = [
            asyncio.create_task(self._pump_stream(process.stdout, "stdout", handle)),
            asyncio.create_task(self._pump_stream(process.stderr, "stderr", handle)),
        ]
        handle.waiter_task = asyncio.create_task(self._watch_exit(handle))
        self.handle = handle
        logger.debug(f"Started {self.binary.name} with PID {handle.pid}")
        return handle

    async def _await_port_release(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.port_release_timeout
        while await asyncio.to_thread(self.is_running) and loop.time() < deadline:
            await asyncio.sleep(0.1)
        if await asyncio.to_thread(self.is_running):
            logger.warning(f"Port {self.port} still in use after {self.port_release_timeout:.1f}s")

    async def _pump_stream(self, stream: Optional[asyncio.StreamReader], label: str, handle: ProcessHandle) -> None:
        """Continuously read one child pipe so the child never blocks on a full buffer."""
        if stream is None:
            return
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Line longer than the stream limit; take what is buffered.
                line = await stream.read(65536)
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            handle.output_tail.append(f"{label}: {text}")
            logger.debug(f"[{self.binary.name} {label}] {text}")

    async def _watch_exit(self, handle: ProcessHandle) -> None:
        returncode = await handle.process.wait()
        logger.debug(f"Process {handle.pid} terminated with status: {returncode}")

    async def _retire_handle(self) -> None:
        """Stop the previously launched process, if any, and its reader tasks."""
        handle = self.handle
        if handle is None:
            return
        self.handle = None
        if handle.is_alive():
            logger.warning(f"Killing previously launched process {handle.pid}")
            try:
                handle.process.kill()
            except ProcessLookupError:
                pass
        await self._cancel_tasks(handle)

    @staticmethod
    async def _cancel_tasks(handle: ProcessHandle) -> None:
        tasks = list(handle.reader_tasks)
        if handle.waiter_task is not None:
            tasks.append(handle.waiter_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop the launched process: terminate, wait, then kill if it lingers."""
        handle = self.handle
        if handle is None:
            return
        self.handle = None
        if handle.is_alive():
            try:
                handle.process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(handle.process.wait(), timeout=self.terminate_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Process {handle.pid} did not exit after {self.terminate_timeout:.1f}s, killing")
                handle.process.kill()
                await handle.process.wait()
        await self._cancel_tasks(handle)
        logger.info(f"{self.binary.name} process {handle.pid} stopped")
