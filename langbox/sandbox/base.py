"""
Base types for sandboxed execution.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ExecutionRequest:
    """One caller request to run a file."""

    file: str | Path
    args: tuple[str, ...] = ()
    language: str = ""
    timeout: int | None = None
    container_name: str | None = None


@dataclass(frozen=True, slots=True)
class SandboxInvocation:
    """Fully assembled command line for the container runtime."""

    argv: tuple[str, ...]
    container_name: str | None = None

    @property
    def runtime(self) -> str:
        return self.argv[0]


@dataclass(slots=True)
class ExecutionResult:
    """Normalized execution response."""

    output: str
    exit_code: int
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0
