"""
Dispatches source files to their language sandbox.

``Dispatcher`` composes the profile registry, path guard, image provisioner,
resource limiter, invocation builder and bounded executor. It is the single
entry point front-ends call, either with an explicit language name or with
a file whose extension selects the language.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from .core.config import ConfigStore, LanguageProfile, ProfileRegistry, Settings
from .core.exceptions import (
    ConfigError,
    LangboxError,
    PathError,
    RuntimeUnavailableError,
    UnknownExtensionError,
    UnknownLanguageError,
)
from .core.logging import get_logger
from .core.paths import PathGuard
from .sandbox.base import ExecutionRequest, ExecutionResult
from .sandbox.executor import BoundedExecutor
from .sandbox.images import ImageProvisioner
from .sandbox.invocation import SandboxInvocationBuilder
from .sandbox.limits import ResourceLimiter
from .sandbox.runtime import ContainerRuntime

logger = get_logger(__name__)

_CONTAINER_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]+")


class Dispatcher:
    """Runs files in per-language sandboxes."""

    def __init__(
        self,
        registry: ProfileRegistry,
        *,
        runtime: ContainerRuntime | None = None,
        workdir: Path | None = None,
        provisioner: ImageProvisioner | None = None,
        limiter: ResourceLimiter | None = None,
        builder: SandboxInvocationBuilder | None = None,
        executor: BoundedExecutor | None = None,
    ):
        self.registry = registry
        self.runtime = runtime or ContainerRuntime()
        self.path_guard = PathGuard(workdir)
        self.provisioner = provisioner or ImageProvisioner(self.runtime)
        self.limiter = limiter or ResourceLimiter()
        self.builder = builder or SandboxInvocationBuilder(
            self.path_guard.root, runtime_binary=self.runtime.binary
        )
        self.executor = executor or BoundedExecutor(self.runtime)

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, workdir: Path | None = None
    ) -> Dispatcher:
        """
        Load profiles and build a dispatcher.

        Raises:
            ConfigError: if the profile source cannot be loaded.
        """
        settings = settings or Settings.from_env(cwd=workdir)
        registry = ConfigStore(settings.config_path).load()
        return cls(
            registry,
            runtime=ContainerRuntime(settings.container_runtime),
            workdir=workdir,
        )

    @property
    def workdir(self) -> Path:
        return self.path_guard.root

    def runtime_available(self) -> bool:
        return self.runtime.is_available()

    def run_by_language(self, language: str, request: ExecutionRequest) -> ExecutionResult:
        """
        Run ``request.file`` with the profile registered as ``language``.

        Raises:
            RuntimeUnavailableError: runtime unreachable or image pull failed.
            UnknownLanguageError: no profile named ``language``.
            PathError: file missing, blank or outside the working directory.
            ExecutionTimeoutError: the run exceeded its timeout.
            ExecutionError: the run could not start or exited non-zero.
        """
        try:
            return self._run(language, request)
        except LangboxError as exc:
            self._log_failure(exc, language=language, file=str(request.file))
            raise

    def run_by_extension(
        self,
        path: str | Path,
        args: Sequence[str] = (),
        timeout: int | None = None,
    ) -> ExecutionResult:
        """
        Pick the language from the file extension and run the file.

        The first profile in declaration order that claims the extension wins.

        Raises:
            UnknownExtensionError: no profile claims the extension.
            Anything ``run_by_language`` raises.
        """
        try:
            host_file = self.path_guard.resolve(path)
            profile = self.profile_for_extension(host_file)
        except LangboxError as exc:
            self._log_failure(exc, file=str(path))
            raise

        request = ExecutionRequest(
            file=host_file, args=tuple(args), language=profile.name, timeout=timeout
        )
        return self.run_by_language(profile.name, request)

    def profile_for_extension(self, path: Path) -> LanguageProfile:
        extension = path.suffix.lstrip(".").lower()
        profile = self.registry.find_by_extension(extension) if extension else None
        if profile is None:
            raise UnknownExtensionError(extension, self.registry.extensions())
        logger.debug(
            f"Extension '{extension}' maps to {profile.name}",
            extra={"context": {"extension": extension, "language": profile.name}},
        )
        return profile

    def _run(self, language: str, request: ExecutionRequest) -> ExecutionResult:
        if not self.runtime_available():
            raise RuntimeUnavailableError(
                f"{self.runtime.binary} is not reachable", {"runtime": self.runtime.binary}
            )

        profile = self.registry.get(language)
        if profile is None:
            raise UnknownLanguageError(language, self.registry.names())

        if request.file is None or not str(request.file).strip():
            raise PathError("No file given to run", {"language": language})
        host_file = self.path_guard.resolve(request.file)

        self.provisioner.ensure(profile.image)
        limits = self.limiter.derive(profile)

        timeout = profile.timeout if request.timeout is None else request.timeout
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigError(
                f"Timeout must be a positive integer (seconds): {timeout!r}",
                {"language": language, "timeout": str(timeout)},
            )

        resolved = replace(
            request,
            language=profile.name,
            file=host_file,
            container_name=request.container_name or self._container_name(profile),
        )
        invocation = self.builder.build(profile, resolved, limits)

        logger.info(
            f"Running {self.path_guard.relative(host_file)} as {profile.name}",
            extra={
                "context": {
                    "language": profile.name,
                    "file": str(host_file),
                    "image": profile.image,
                    "cpu": limits.cpu,
                    "memory": limits.memory,
                    "timeout": timeout,
                    "container": resolved.container_name,
                }
            },
        )
        return self.executor.run(invocation, timeout)

    @staticmethod
    def _container_name(profile: LanguageProfile) -> str:
        slug = _CONTAINER_NAME_UNSAFE.sub("-", profile.name).strip("-.") or "run"
        return f"langbox-{slug}-{uuid.uuid4().hex[:12]}"

    @staticmethod
    def _log_failure(exc: LangboxError, **context) -> None:
        logger.error(
            f"{type(exc).__name__}: {exc}",
            extra={"context": {**context, **exc.context, "error": type(exc).__name__}},
        )
