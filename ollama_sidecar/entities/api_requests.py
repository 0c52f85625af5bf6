from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiRequest(BaseModel):
    """Base for request bodies; unset optional fields are left out of the JSON."""

    model_config = ConfigDict(protected_namespaces=())

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"] = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Message content")
    images: Optional[List[str]] = Field(None, description="Base64-encoded images")


class Options(BaseModel):
    """Sampling and runtime options understood by the server."""

    mirostat: Optional[int] = None
    mirostat_eta: Optional[float] = None
    mirostat_tau: Optional[float] = None
    num_ctx: Optional[int] = None
    num_gqa: Optional[int] = None
    num_gpu: Optional[int] = None
    num_thread: Optional[int] = None
    repeat_last_n: Optional[int] = None
    repeat_penalty: Optional[float] = None
    temperature: Optional[float] = None
    seed: Optional[int] = None
    stop: Optional[str] = None
    tfs_z: Optional[float] = None
    num_predict: Optional[int] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None


class ChatRequestData(ApiRequest):
    model: str = Field(..., min_length=1, description="Name of the model to use")
    messages: List[ChatMessage] = Field(..., description="Chat history used as the prompt")
    format: Optional[Literal["json"]] = None
    options: Optional[Options] = None
    template: Optional[str] = None
    stream: bool = Field(True, description="Whether to stream the response")


class GenerateRequestData(ApiRequest):
    model: str = Field(..., min_length=1, description="Name of the model to use")
    prompt: str = Field(..., description="Prompt to generate a response for")
    images: Optional[List[str]] = None
    system: Optional[str] = None
    template: Optional[str] = None
    context: Optional[List[int]] = Field(None, description="Context returned by a previous generate call")
    format: Optional[Literal["json"]] = None
    options: Optional[Options] = None
    raw: Optional[bool] = None
    stream: bool = True


class PullModelRequestData(ApiRequest):
    name: str = Field(..., min_length=1)
    insecure: Optional[bool] = None
    stream: Optional[bool] = None


class CopyModelRequestData(ApiRequest):
    source: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)


class DeleteModelRequestData(ApiRequest):
    name: str = Field(..., min_length=1)


class ModelInfoRequestData(ApiRequest):
    name: str = Field(..., min_length=1)
