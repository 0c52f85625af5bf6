import json
import os
from pathlib import Path
from typing import Dict, List
from urllib.parse import urlsplit

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Configuration for the address of the inference server.

    Attributes:
        host: Host the server listens on.
        port: Fixed TCP port the server binds.
        timeout: Read timeout for API calls and streams in seconds.
        connect_timeout: Connect, write and pool timeout in seconds.
    """

    host: str = Field("127.0.0.1", description="Host the server listens on")
    port: int = Field(11434, ge=1, le=65535, description="Fixed TCP port the server binds")
    timeout: float = Field(300.0, gt=0, description="Read timeout for API calls and streams in seconds")
    connect_timeout: float = Field(10.0, gt=0, description="Connect, write and pool timeout in seconds")

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


class BinaryConfig(BaseModel):
    """Configuration for locating and invoking the server executable.

    Attributes:
        name: Executable name, also used to find orphaned server processes.
        path: Explicit path to the executable.
        resource_dir: Bundled-resource directory searched before PATH.
        args: Arguments passed to the executable.
        env: Extra environment variables for the server process.
    """

    name: str = Field("ollama", min_length=1, description="Executable name, also used to find orphaned server processes")
    path: str | None = Field(None, description="Explicit path to the executable")
    resource_dir: str | None = Field(None, description="Bundled-resource directory searched before PATH")
    args: List[str] = Field(default_factory=lambda: ["serve"], description="Arguments passed to the executable")
    env: Dict[str, str] = Field(default_factory=dict, description="Extra environment variables for the server process")


class SupervisorConfig(BaseModel):
    """Configuration for process supervision and readiness waiting.

    Attributes:
        manage_process: Whether this client spawns and kills the server at all.
        idle_restart_threshold: Idle seconds after which the server is recycled before inference.
        ready_timeout: Seconds to wait for the server to answer before failing a call.
        poll_interval: Seconds between readiness probes.
        probe_timeout: Timeout of a single readiness probe in seconds.
        port_release_timeout: Seconds to wait for a killed occupant to free the port.
        terminate_timeout: Seconds to wait for a graceful stop before killing.
        kill_orphans_on_restart: Whether forced restarts also sweep stray server processes.
    """

    manage_process: bool = Field(True, description="Whether this client spawns and kills the server at all")
    idle_restart_threshold: float = Field(90.0, ge=0, description="Idle seconds after which the server is recycled before inference")
    ready_timeout: float = Field(5.0, gt=0, description="Seconds to wait for the server to answer before failing a call")
    poll_interval: float = Field(0.5, gt=0, description="Seconds between readiness probes")
    probe_timeout: float = Field(1.0, gt=0, description="Timeout of a single readiness probe in seconds")
    port_release_timeout: float = Field(2.0, ge=0, description="Seconds to wait for a killed occupant to free the port")
    terminate_timeout: float = Field(5.0, ge=0, description="Seconds to wait for a graceful stop before killing")
    kill_orphans_on_restart: bool = Field(True, description="Whether forced restarts also sweep stray server processes")


class Config(BaseModel):
    """Main configuration class.

    Attributes:
        server: Address and HTTP timeouts of the inference server.
        binary: How to find and start the server executable.
        supervisor: Restart policy and readiness settings.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    binary: BinaryConfig = Field(default_factory=BinaryConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)

    @classmethod
    def load(cls, config_path: str = "ollama_sidecar.json") -> "Config":
        """Load and validate configuration from JSON file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path) as f:
            data = json.load(f)

        return cls(**data)

    @classmethod
    def from_env(cls) -> "Config":
        """Build the default configuration, overridden by OLLAMA_HOST and OLLAMA_SIDECAR_BINARY."""
        config = cls()
        host_value = os.environ.get("OLLAMA_HOST")
        if host_value:
            if "://" not in host_value:
                host_value = f"http://{host_value}"
            parts = urlsplit(host_value)
            server = {"host": parts.hostname or config.server.host}
            if parts.port is not None:
                server["port"] = parts.port
            config.server = ServerConfig(**{**config.server.model_dump(), **server})
        binary_path = os.environ.get("OLLAMA_SIDECAR_BINARY")
        if binary_path:
            config.binary = config.binary.model_copy(update={"path": binary_path})
        return config
