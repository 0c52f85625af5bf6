from ollama_sidecar.entities.api_requests import CopyModelRequestData, DeleteModelRequestData, ModelInfoRequestData
from ollama_sidecar.entities.api_responses import ModelInfoResponse, ModelResponse
from ollama_sidecar.frameworks_drivers.routes import Route
from ollama_sidecar.shared.protocols import OllamaServiceProtocol, SupervisorProtocol
from ollama_sidecar.use_cases.stream_inference import decode_frame


class ManageModels:
    """Request/response calls: list, inspect, copy and delete models."""

    def __init__(self, service: OllamaServiceProtocol, supervisor: SupervisorProtocol):
        self.service = service
        self.supervisor = supervisor

    async def models(self) -> ModelResponse:
        await self.supervisor.ensure_ready()
        body = await self.service.request(Route.MODELS)
        return decode_frame(body, ModelResponse)

    async def model_info(self, data: ModelInfoRequestData) -> ModelInfoResponse:
        await self.supervisor.ensure_ready()
        body = await self.service.request(Route.MODEL_INFO, data.to_payload())
        return decode_frame(body, ModelInfoResponse)

    async def copy_model(self, data: CopyModelRequestData) -> None:
        await self.supervisor.ensure_ready()
        await self.service.request(Route.COPY_MODEL, data.to_payload())

    async def delete_model(self, data: DeleteModelRequestData) -> None:
        await self.supervisor.ensure_ready()
        await self.service.request(Route.DELETE_MODEL, data.to_payload())
