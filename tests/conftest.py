"""
Pytest configuration and fixtures for langbox tests.
"""

import os
from pathlib import Path

import pytest
from hypothesis import Verbosity, settings

from langbox.core.config import build_registry
from langbox.core.logging import setup_logging
from langbox.sandbox.base import ExecutionResult

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,  # Disable deadline for filesystem-heavy properties
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


SAMPLE_PROFILES = {
    "python": {"command": "python {file}", "extensions": ["py"], "image": "python:3.12-slim"},
    "go": {
        "command": "go run {file}",
        "extensions": ["go"],
        "image": "golang",
        "cpu": 1.0,
        "memory": "512m",
        "timeout": 30,
    },
    "node": {"command": "node {file}", "extensions": ["js", "mjs"], "image": "node:20-slim"},
}


class FakeRuntime:
    """In-memory stand-in for ContainerRuntime."""

    def __init__(self, binary="docker", available=True, images=None):
        self.binary = binary
        self.available = available
        self.images = set(images or ())
        self.pulled: list[str] = []
        self.killed: list[str] = []

    def check_health(self, timeout_seconds=2.5):
        if self.available:
            return True, f"{self.binary} daemon ready (server test)"
        return False, f"{self.binary} daemon unavailable"

    def is_available(self):
        return self.available

    def list_images(self):
        return set(self.images)

    def pull_image(self, image):
        self.pulled.append(image)
        self.images.add(image)

    def kill_container(self, name):
        self.killed.append(name)
        return True


class FakeExecutor:
    """Records invocations instead of starting processes."""

    def __init__(self, output="hello\n", error=None):
        self.output = output
        self.error = error
        self.calls = []

    def run(self, invocation, timeout_seconds):
        self.calls.append((invocation, timeout_seconds))
        if self.error is not None:
            raise self.error
        return ExecutionResult(output=self.output, exit_code=0, duration=0.01)


@pytest.fixture
def sample_registry():
    return build_registry(SAMPLE_PROFILES)


@pytest.fixture
def write_config(tmp_path):
    """Write a profile file and return its path."""

    def _write(text: str, name: str = "langbox.yaml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fake_runtime():
    return FakeRuntime(images={"python:3.12-slim", "golang:latest", "node:20-slim"})


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture(autouse=True)
def _reset_log_sinks():
    yield
    setup_logging(log_path=None, log_to_console=False)
