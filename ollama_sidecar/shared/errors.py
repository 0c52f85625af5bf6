from __future__ import annotations


class OllamaSidecarError(Exception):
    """Base class for every error raised by the sidecar client."""


class ApiNotReachable(OllamaSidecarError):
    """Readiness of the server could not be confirmed within the timeout."""

    def __init__(self, base_url: str, timeout: float, detail: str | None = None):
        self.base_url = base_url
        self.timeout = timeout
        message = f"The API at {base_url} could not be reached within {timeout:.1f}s"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class BinaryNotFound(OllamaSidecarError):
    """The server executable could not be located."""

    def __init__(self, name: str, searched: list[str]):
        self.name = name
        self.searched = searched
        locations = ", ".join(searched) if searched else "PATH"
        super().__init__(f"Server binary '{name}' not found (searched: {locations})")


class TransportError(OllamaSidecarError):
    """Network-layer failure, or a non-success HTTP status, during a call."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class DecodeError(OllamaSidecarError):
    """A fully extracted frame does not match the expected response shape."""

    def __init__(self, frame: bytes, response_type: str, reason: str):
        self.frame = frame
        self.response_type = response_type
        super().__init__(f"Could not decode {response_type} frame: {reason}")


class OrphanCleanupFailure(OllamaSidecarError):
    """The sweep for leftover server processes failed. Logged, never surfaced."""
