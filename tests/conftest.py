"""
Test configuration and fixtures for ollama sidecar tests.
"""
import json
import shutil
import tempfile
from pathlib import Path

import httpx
import pytest

from ollama_sidecar.entities.activity_state import ActivityState
from ollama_sidecar.frameworks_drivers.config import Config


def pytest_configure(config):
    """Configure pytest warnings."""
    config.addinivalue_line("filterwarnings", "ignore::PendingDeprecationWarning")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "server": {"host": "127.0.0.1", "port": 11500, "timeout": 120},
        "binary": {"name": "ollama", "resource_dir": "/opt/app/Resources", "args": ["serve"], "env": {"OLLAMA_KEEP_ALIVE": "5m"}},
        "supervisor": {"idle_restart_threshold": 60, "ready_timeout": 3, "poll_interval": 0.25},
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Create a temporary config file."""
    config_path = temp_dir / "ollama_sidecar.json"
    with open(config_path, "w") as f:
        json.dump(sample_config_data, f, indent=2)
    return str(config_path)


@pytest.fixture
def minimal_config_data():
    """Minimal configuration data with defaults."""
    return {}


@pytest.fixture
def invalid_config_data():
    """Invalid configuration data for error testing."""
    return {
        "server": {"port": 70000},  # Invalid: above 65535
        "supervisor": {"poll_interval": 0},  # Invalid: must be > 0
    }


@pytest.fixture
def unmanaged_config():
    """Config for a server this client never spawns, with short waits."""
    return Config(
        server={"host": "127.0.0.1", "port": 11434},
        supervisor={"manage_process": False, "ready_timeout": 0.2, "poll_interval": 0.05},
    )


@pytest.fixture
def activity():
    return ActivityState()


@pytest.fixture
def fake_executable(temp_dir):
    """An executable file standing in for the bundled server binary."""
    path = temp_dir / "ollama"
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


def chunked_response(chunks, status_code=200, error=None):
    """Build a streamed httpx response delivering ``chunks`` exactly as given."""

    async def body():
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error

    return httpx.Response(status_code, content=body())


@pytest.fixture
def recorded_requests():
    return []


@pytest.fixture
def make_transport(recorded_requests):
    """Factory for a MockTransport that answers every request with the given chunks."""

    def factory(chunks, status_code=200, error=None):
        def handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return chunked_response(chunks, status_code=status_code, error=error)

        return httpx.MockTransport(handler)

    return factory
