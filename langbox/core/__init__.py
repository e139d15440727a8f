"""
Core functionality for langbox.
"""

from .config import (
    ConfigStore,
    LanguageProfile,
    ProfileRegistry,
    Settings,
    build_registry,
)
from .exceptions import (
    ConfigError,
    ExecutionError,
    ExecutionTimeoutError,
    LangboxError,
    PathError,
    RuntimeUnavailableError,
    UnknownExtensionError,
    UnknownLanguageError,
    format_error_message,
)
from .logging import LogEvent, get_logger, setup_logging
from .paths import PathGuard

__all__ = [
    "ConfigError",
    "ConfigStore",
    "ExecutionError",
    "ExecutionTimeoutError",
    "LangboxError",
    "LanguageProfile",
    "LogEvent",
    "PathError",
    "PathGuard",
    "ProfileRegistry",
    "RuntimeUnavailableError",
    "Settings",
    "UnknownExtensionError",
    "UnknownLanguageError",
    "build_registry",
    "format_error_message",
    "get_logger",
    "setup_logging",
]
