from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResponseFrame(BaseModel):
    """Base for decoded server payloads. Immutable; unknown keys are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore", protected_namespaces=())


class Message(ResponseFrame):
    role: str
    content: str = ""
    images: Optional[List[str]] = None


class ChatResponse(ResponseFrame):
    model: str
    created_at: str
    message: Optional[Message] = None
    done: bool
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None


class GenerateResponse(ResponseFrame):
    model: str
    created_at: str
    response: str
    done: bool
    context: Optional[List[int]] = None
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None


class ModelPullResponse(ResponseFrame):
    status: str
    digest: Optional[str] = None
    total: Optional[int] = None
    completed: Optional[int] = None


class ModelDetails(ResponseFrame):
    format: Optional[str] = None
    family: Optional[str] = None
    families: Optional[List[str]] = None
    parameter_size: Optional[str] = None
    quantization_level: Optional[str] = None


class ModelSummary(ResponseFrame):
    name: str
    digest: str
    size: int
    modified_at: str
    details: Optional[ModelDetails] = None


class ModelResponse(ResponseFrame):
    models: List[ModelSummary] = Field(default_factory=list)


class ModelInfoResponse(ResponseFrame):
    modelfile: str = ""
    parameters: Optional[str] = None
    template: Optional[str] = None
    details: Optional[ModelDetails] = None
