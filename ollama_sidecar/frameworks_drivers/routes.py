from enum import Enum


class Route(Enum):
    """Server endpoints as (method, path) pairs."""

    ROOT = ("HEAD", "/")
    MODELS = ("GET", "/api/tags")
    MODEL_INFO = ("POST", "/api/show")
    GENERATE = ("POST", "/api/generate")
    CHAT = ("POST", "/api/chat")
    COPY_MODEL = ("POST", "/api/copy")
    PULL_MODEL = ("POST", "/api/pull")
    DELETE_MODEL = ("DELETE", "/api/delete")

    @property
    def method(self) -> str:
        return self.value[0]

    @property
    def path(self) -> str:
        return self.value[1]
