from typing import Any, AsyncIterator, Callable, Optional, Protocol, Sequence, TypedDict


class PortBindingDTO(TypedDict):
    port: int
    pid: Optional[int]


class PortResolverProtocol(Protocol):
    def resolve_pid(self, port: int) -> Optional[int]: ...

    def binding(self, port: int) -> PortBindingDTO: ...


class ReadinessProberProtocol(Protocol):
    async def probe(self) -> bool: ...

    async def wait_until_ready(self, timeout: Optional[float] = None, poll_interval: Optional[float] = None) -> None: ...


class ProcessControllerProtocol(Protocol):
    def is_running(self, port: Optional[int] = None) -> bool: ...

    def kill(self, port: Optional[int] = None) -> bool: ...

    def kill_orphans(self) -> int: ...

    async def launch(self, args: Optional[Sequence[str]] = None, force: bool = False, clear_port: bool = True) -> Any: ...

    async def shutdown(self) -> None: ...


class OllamaServiceProtocol(Protocol):
    def stream(
        self,
        route: Any,
        payload: dict,
        on_open: Optional[Callable[[], None]] = None,
    ) -> AsyncIterator[bytes]: ...

    async def request(self, route: Any, payload: Optional[dict] = None) -> bytes: ...


class SupervisorProtocol(Protocol):
    async def ensure_ready(self, model: Optional[str] = None) -> None: ...
