"""
langbox - run source files in language sandboxes.

Picks a container profile from the file extension (or an explicit language
name), mounts the working directory, applies CPU/memory limits, disables
networking and runs the file under a hard timeout.
"""

__version__ = "0.1.0"

from .core import (
    ConfigError,
    ConfigStore,
    ExecutionError,
    ExecutionTimeoutError,
    LangboxError,
    LanguageProfile,
    PathError,
    PathGuard,
    ProfileRegistry,
    RuntimeUnavailableError,
    Settings,
    UnknownExtensionError,
    UnknownLanguageError,
    setup_logging,
)
from .dispatcher import Dispatcher
from .sandbox import ExecutionRequest, ExecutionResult

__all__ = [
    "ConfigError",
    "ConfigStore",
    "Dispatcher",
    "ExecutionError",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionTimeoutError",
    "LangboxError",
    "LanguageProfile",
    "PathError",
    "PathGuard",
    "ProfileRegistry",
    "RuntimeUnavailableError",
    "Settings",
    "UnknownExtensionError",
    "UnknownLanguageError",
    "setup_logging",
]
