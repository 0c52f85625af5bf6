"""
Streaming calls against the server.

Each call moves through: restart check, readiness wait, streaming, then
completion or failure. Frames are decoded and handed to the caller one at a
time, in the order they were extracted, through an async generator. The
generator ends when the server closes the stream; any error ends it by
raising, once. Closing the generator early closes the HTTP connection.
"""
import functools
from contextlib import aclosing
from typing import AsyncIterator, Optional, Type, TypeVar

from pydantic import ValidationError

from ollama_sidecar.entities.activity_state import ActivityState
from ollama_sidecar.entities.api_requests import ChatRequestData, GenerateRequestData, PullModelRequestData
from ollama_sidecar.entities.api_responses import ChatResponse, GenerateResponse, ModelPullResponse, ResponseFrame
from ollama_sidecar.frameworks_drivers.routes import Route
from ollama_sidecar.shared.error_utils import ErrorUtils
from ollama_sidecar.shared.errors import DecodeError
from ollama_sidecar.shared.frame_extractor import FrameBuffer
from ollama_sidecar.shared.logger import Logger
from ollama_sidecar.shared.protocols import OllamaServiceProtocol, SupervisorProtocol

logger = Logger.get(__name__)

FrameT = TypeVar("FrameT", bound=ResponseFrame)


class StreamInference:
    def __init__(self, service: OllamaServiceProtocol, supervisor: SupervisorProtocol, activity: ActivityState):
        self.service = service
        self.supervisor = supervisor
        self.activity = activity

    def chat(self, data: ChatRequestData) -> AsyncIterator[ChatResponse]:
        return self._stream(Route.CHAT, data.to_payload(), ChatResponse, inference_model=data.model)

    def generate(self, data: GenerateRequestData) -> AsyncIterator[GenerateResponse]:
        return self._stream(Route.GENERATE, data.to_payload(), GenerateResponse, inference_model=data.model)

    def pull_model(self, data: PullModelRequestData) -> AsyncIterator[ModelPullResponse]:
        return self._stream(Route.PULL_MODEL, data.to_payload(), ModelPullResponse)

    async def _stream(
        self,
        route: Route,
        payload: dict,
        response_type: Type[FrameT],
        inference_model: Optional[str] = None,
    ) -> AsyncIterator[FrameT]:
        await self.supervisor.ensure_ready(inference_model)

        on_open = None
        if inference_model is not None:
            on_open = functools.partial(self.activity.record, inference_model)

        buffer = FrameBuffer()
        frames = 0
        try:
            async with aclosing(self.service.stream(route, payload, on_open=on_open)) as chunks:
                async for chunk in chunks:
                    buffer.append(chunk)
                    for frame in buffer.drain():
                        frames += 1
                        yield decode_frame(frame, response_type)
        finally:
            leftover = buffer.pending().strip()
            if leftover:
                logger.debug(f"Discarding {len(leftover)} unextracted bytes from {route.path}")
            buffer.clear()
        logger.debug(f"{route.path} stream completed after {frames} frame(s)")


def decode_frame(frame: bytes, response_type: Type[FrameT]) -> FrameT:
    """Decode one extracted frame, raising DecodeError that keeps the raw bytes."""
    try:
        return response_type.model_validate_json(frame)
    except ValidationError as e:
        logger.error(f"FAILURE decoding {response_type.__name__}: {ErrorUtils.preview(frame)}")
        raise DecodeError(frame, response_type.__name__, str(e)) from e
