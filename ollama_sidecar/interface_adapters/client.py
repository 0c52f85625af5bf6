from __future__ import annotations

from typing import Any, AsyncIterator, Optional, Type, TypeVar, Union

import httpx

from ollama_sidecar.entities.activity_state import ActivityState
from ollama_sidecar.entities.api_requests import (
    ApiRequest,
    ChatRequestData,
    CopyModelRequestData,
    DeleteModelRequestData,
    GenerateRequestData,
    ModelInfoRequestData,
    PullModelRequestData,
)
from ollama_sidecar.entities.api_responses import (
    ChatResponse,
    GenerateResponse,
    ModelInfoResponse,
    ModelPullResponse,
    ModelResponse,
)
from ollama_sidecar.frameworks_drivers.config import Config
from ollama_sidecar.frameworks_drivers.ollama_service import OllamaService
from ollama_sidecar.frameworks_drivers.process_controller import ProcessController
from ollama_sidecar.frameworks_drivers.readiness_prober import ReadinessProber
from ollama_sidecar.frameworks_drivers.server_supervisor import ServerSupervisor
from ollama_sidecar.shared.logger import Logger
from ollama_sidecar.shared.protocols import PortResolverProtocol
from ollama_sidecar.use_cases.manage_models import ManageModels
from ollama_sidecar.use_cases.restart_policy import DEFAULT_IDLE_THRESHOLD, RestartPolicy
from ollama_sidecar.use_cases.stream_inference import StreamInference

logger = Logger.get(__name__)

RequestT = TypeVar("RequestT", bound=ApiRequest)


class OllamaSidecarClient:
    """
    Client for a locally hosted Ollama server that it also supervises.

    Construct one instance per server and share it; every call made through
    the same instance shares the process controller, the restart lock and the
    activity record. Streaming methods return async generators; close them (or
    use ``contextlib.aclosing``) to abandon a stream early.

    Usage::

        async with OllamaSidecarClient(Config.from_env()) as client:
            async for part in client.chat({"model": "llama3", "messages": [...]}):
                print(part.message.content, end="")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        activity: Optional[ActivityState] = None,
        resolver: Optional[PortResolverProtocol] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or Config()
        self.activity = activity or ActivityState()
        server = self.config.server
        supervisor_config = self.config.supervisor

        self.prober = ReadinessProber(
            server.base_url,
            probe_timeout=supervisor_config.probe_timeout,
            ready_timeout=supervisor_config.ready_timeout,
            poll_interval=supervisor_config.poll_interval,
        )
        self.controller: Optional[ProcessController] = None
        if supervisor_config.manage_process:
            self.controller = ProcessController(
                self.config.binary,
                self.prober,
                host=server.host,
                port=server.port,
                resolver=resolver,
                port_release_timeout=supervisor_config.port_release_timeout,
                terminate_timeout=supervisor_config.terminate_timeout,
                kill_orphans_on_restart=supervisor_config.kill_orphans_on_restart,
            )
        self.supervisor = ServerSupervisor(
            self.controller,
            self.prober,
            self.activity,
            RestartPolicy(supervisor_config.idle_restart_threshold),
            ready_timeout=supervisor_config.ready_timeout,
            poll_interval=supervisor_config.poll_interval,
        )
        self.service = OllamaService(
            server.base_url,
            timeout=server.timeout,
            connect_timeout=server.connect_timeout,
            transport=transport,
        )
        self.stream_inference = StreamInference(self.service, self.supervisor, self.activity)
        self.manage_models = ManageModels(self.service, self.supervisor)

    @property
    def base_url(self) -> str:
        return self.config.server.base_url

    async def __aenter__(self) -> "OllamaSidecarClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    async def reachable(self) -> bool:
        """Single reachability probe; never raises."""
        return await self.prober.probe()

    async def start(self) -> None:
        """Launch the server if nothing listens on its port, then wait until it answers."""
        await self.supervisor.ensure_ready()

    async def wait_for_api(self, restart: bool = False) -> None:
        """Optionally force a restart, then wait for the server to answer."""
        if restart:
            await self.supervisor.restart(min_interval=0.0)
        else:
            await self.supervisor.ensure_ready()

    async def restart(self, min_interval: float = DEFAULT_IDLE_THRESHOLD) -> bool:
        """Restart the server if the last inference is older than ``min_interval`` seconds."""
        return await self.supervisor.restart(min_interval=min_interval)

    def terminate(self) -> bool:
        """Kill the process on the server port and sweep orphaned server processes."""
        if self.controller is None:
            logger.warning("Terminate requested but process management is disabled")
            return False
        return self.controller.terminate()

    async def shutdown(self) -> None:
        """Stop the server process this client launched, if any."""
        if self.controller is not None:
            await self.controller.shutdown()

    def chat(self, data: Union[ChatRequestData, dict]) -> AsyncIterator[ChatResponse]:
        return self.stream_inference.chat(self._coerce(data, ChatRequestData))

    def generate(self, data: Union[GenerateRequestData, dict]) -> AsyncIterator[GenerateResponse]:
        return self.stream_inference.generate(self._coerce(data, GenerateRequestData))

    def pull_model(self, data: Union[PullModelRequestData, dict]) -> AsyncIterator[ModelPullResponse]:
        return self.stream_inference.pull_model(self._coerce(data, PullModelRequestData))

    async def models(self) -> ModelResponse:
        return await self.manage_models.models()

    async def model_info(self, data: Union[ModelInfoRequestData, dict]) -> ModelInfoResponse:
        return await self.manage_models.model_info(self._coerce(data, ModelInfoRequestData))

    async def copy_model(self, data: Union[CopyModelRequestData, dict]) -> None:
        await self.manage_models.copy_model(self._coerce(data, CopyModelRequestData))

    async def delete_model(self, data: Union[DeleteModelRequestData, dict]) -> None:
        await self.manage_models.delete_model(self._coerce(data, DeleteModelRequestData))

    def status(self) -> dict[str, Any]:
        """
        Snapshot of the supervised server.

        Returns:
            Dict with the base URL, the current port binding, the launched
            process (if any) and the recorded inference activity.
        """
        handle = self.controller.handle if self.controller is not None else None
        binding = None
        if self.controller is not None:
            binding = self.controller.resolver.binding(self.config.server.port)
        return {
            "base_url": self.base_url,
            "manage_process": self.controller is not None,
            "binding": binding,
            "launched_pid": handle.pid if handle is not None else None,
            "launched_alive": handle.is_alive() if handle is not None else False,
            "last_inference_time": self.activity.last_inference_time,
            "last_inference_model": self.activity.last_inference_model,
        }

    @staticmethod
    def _coerce(data: Union[RequestT, dict], request_type: Type[RequestT]) -> RequestT:
        """Validate a plain dict into the request model; model instances pass through."""
        if isinstance(data, request_type):
            return data
        if not isinstance(data, dict):
            raise TypeError(f"Expected {request_type.__name__} or dict, got {type(data).__name__}")
        return request_type.model_validate(data)
