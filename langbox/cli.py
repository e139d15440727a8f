"""
Command-line front-end for langbox.

    langbox run main.go
    langbox run --language python script.txt -- --verbose
    langbox languages
    langbox doctor
"""

import argparse
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.config import Settings
from .core.exceptions import (
    ConfigError,
    ExecutionError,
    ExecutionTimeoutError,
    LangboxError,
    format_error_message,
)
from .core.logging import setup_logging
from .dispatcher import Dispatcher
from .doctor import run_doctor
from .sandbox.base import ExecutionRequest

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_TIMEOUT = 124

_STATUS_STYLES = {"pass": "green", "warn": "yellow", "fail": "red"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="langbox",
        description="Run a source file in a resource-limited container picked by its language.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a file in its language sandbox")
    run.add_argument("-l", "--language", help="Language profile to use instead of the extension")
    run.add_argument("-t", "--timeout", type=int, help="Override the profile timeout (seconds)")
    run.add_argument("file", help="File inside the current directory")
    run.add_argument("args", nargs=argparse.REMAINDER, help="Arguments passed to the program")

    subparsers.add_parser("languages", help="List configured language profiles")
    subparsers.add_parser("doctor", help="Check the container runtime and profiles")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()
    err_console = Console(stderr=True)

    settings = Settings.from_env()
    try:
        setup_logging(settings)
    except OSError as exc:
        _print_error(
            err_console,
            ConfigError(
                f"Cannot write the log file {settings.log_path}: {exc}",
                {"log_path": str(settings.log_path)},
            ),
        )
        return EXIT_CONFIG

    try:
        dispatcher = Dispatcher.from_settings(settings)
    except ConfigError as exc:
        _print_error(err_console, exc)
        return EXIT_CONFIG

    if args.command == "languages":
        console.print(_languages_table(dispatcher))
        return EXIT_OK
    if args.command == "doctor":
        checks = run_doctor(dispatcher.registry, dispatcher.runtime)
        console.print(_doctor_table(checks))
        return EXIT_FAILURE if any(check.status == "fail" for check in checks) else EXIT_OK
    return _run(dispatcher, args, err_console)


def _run(dispatcher: Dispatcher, args: argparse.Namespace, err_console: Console) -> int:
    program_args = list(args.args)
    if program_args and program_args[0] == "--":
        program_args = program_args[1:]

    try:
        if args.language:
            result = dispatcher.run_by_language(
                args.language,
                ExecutionRequest(
                    file=args.file,
                    args=tuple(program_args),
                    language=args.language,
                    timeout=args.timeout,
                ),
            )
        else:
            result = dispatcher.run_by_extension(args.file, program_args, timeout=args.timeout)
    except ExecutionTimeoutError as exc:
        _print_error(err_console, exc)
        return EXIT_TIMEOUT
    except ExecutionError as exc:
        sys.stdout.write(exc.output)
        sys.stdout.flush()
        _print_error(err_console, exc)
        return _exit_status(exc.exit_code)
    except ConfigError as exc:
        _print_error(err_console, exc)
        return EXIT_CONFIG
    except LangboxError as exc:
        _print_error(err_console, exc)
        return EXIT_FAILURE

    sys.stdout.write(result.output)
    sys.stdout.flush()
    return EXIT_OK


def _exit_status(exit_code: int | None) -> int:
    if not exit_code:
        return EXIT_FAILURE
    if exit_code < 0:
        # Negative status: the client was killed by that signal.
        return 128 - exit_code
    return exit_code


def _print_error(err_console: Console, exc: Exception) -> None:
    err_console.print(escape(format_error_message(exc)), style="red", highlight=False)


def _languages_table(dispatcher: Dispatcher) -> Table:
    table = Table(title="Language profiles")
    table.add_column("Language", style="cyan")
    table.add_column("Extensions")
    table.add_column("Image")
    table.add_column("Command")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Timeout", justify="right")
    for name, profile in dispatcher.registry.items():
        command = profile.command
        if not isinstance(command, str):
            command = " ".join(command)
        table.add_row(
            name,
            ", ".join(profile.extensions),
            profile.image,
            escape(command),
            str(profile.cpu),
            profile.memory,
            f"{profile.timeout}s",
        )
    return table


def _doctor_table(checks) -> Table:
    table = Table(title="langbox doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")
    table.add_column("Recommendation")
    for check in checks:
        style = _STATUS_STYLES.get(check.status, "white")
        table.add_row(
            check.name,
            f"[{style}]{check.status}[/{style}]",
            escape(check.detail),
            escape(check.recommendation or ""),
        )
    return table


if __name__ == "__main__":
    sys.exit(main())
