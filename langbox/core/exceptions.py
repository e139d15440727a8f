"""
Custom exceptions for langbox.

Provides specific exception types for better error handling and user feedback.
Every error carries a structured ``context`` dict that is written to the
execution log before the error reaches the caller.
"""

from typing import Any


class LangboxError(Exception):
    """Base exception for langbox errors."""

    user_message: str = "langbox could not complete the request."
    recovery_hint: str | None = None

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})


class ConfigError(LangboxError):
    """Missing, unreadable or invalid language profile configuration."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, context)
        self.user_message = f"Configuration error: {message}"
        self.recovery_hint = "Check the profile file (or CONFIG_PATH) and try again."


class PathError(LangboxError):
    """File is missing or resolves outside the working directory."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, context)
        self.user_message = message
        self.recovery_hint = "Only files inside the current working directory can be run."


class UnknownLanguageError(LangboxError):
    """No profile is registered under the requested language name."""

    def __init__(self, language: str, known_languages: list[str]):
        super().__init__(
            f"Unknown language: {language}",
            {"language": language, "known_languages": list(known_languages)},
        )
        self.language = language
        self.known_languages = list(known_languages)
        self.user_message = f"Language '{language}' is not configured."
        self.recovery_hint = f"Known languages: {', '.join(known_languages) or '(none)'}"


class UnknownExtensionError(LangboxError):
    """No profile claims the file extension."""

    def __init__(self, extension: str, known_extensions: list[str]):
        super().__init__(
            f"No language registered for extension '{extension}'",
            {"extension": extension, "known_extensions": list(known_extensions)},
        )
        self.extension = extension
        self.known_extensions = list(known_extensions)
        self.user_message = f"No language handles '.{extension}' files."
        self.recovery_hint = (
            f"Registered extensions: {', '.join(known_extensions) or '(none)'}. "
            "Use --language to pick one explicitly."
        )


class RuntimeUnavailableError(LangboxError):
    """Container runtime is unreachable or an image pull failed."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, context)
        self.user_message = f"Container runtime unavailable: {message}"
        self.recovery_hint = "Start the container daemon (or check network access) and retry."


# Execution Errors


class ExecutionError(LangboxError):
    """Subprocess failed to start or the runtime exited non-zero."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        exit_code: int | None = None,
        output: str = "",
    ):
        super().__init__(message, context)
        self.exit_code = exit_code
        self.output = output
        self.user_message = f"Execution failed: {message}"
        self.recovery_hint = None


class ExecutionTimeoutError(ExecutionError):
    """Execution exceeded its wall-clock timeout and was killed."""

    def __init__(self, timeout: int, context: dict[str, Any] | None = None):
        super().__init__(f"Execution exceeded {timeout}s timeout", context)
        self.timeout = timeout
        self.user_message = f"Execution took longer than {timeout} seconds and was stopped."
        self.recovery_hint = f"Try increasing the timeout: --timeout {timeout * 2}"


def format_error_message(error: Exception) -> str:
    """
    Format an error message for display to user.

    Args:
        error: Exception to format

    Returns:
        Formatted error message with recovery hints
    """
    if isinstance(error, LangboxError):
        message = error.user_message
        if error.recovery_hint:
            message += f"\n\n{error.recovery_hint}"
        return message
    return str(error)
