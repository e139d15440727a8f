"""
Builds the container runtime command line for a sandboxed run.
"""

from pathlib import Path, PurePosixPath

from ..core.config import DEFAULT_CONTAINER_RUNTIME, FILE_PLACEHOLDER, LanguageProfile
from .base import ExecutionRequest, SandboxInvocation
from .limits import ResourceLimits


class SandboxInvocationBuilder:
    """
    Assembles ``<runtime> run ...`` argument vectors.

    ``build`` does no I/O: identical inputs always produce an identical
    invocation.

    Commands given as a string are split on whitespace after ``{file}`` is
    substituted, so a single argument cannot contain a space. Profiles that
    need that declare ``command`` as a list instead.
    """

    def __init__(
        self,
        workdir: Path,
        runtime_binary: str = DEFAULT_CONTAINER_RUNTIME,
        read_only: bool = False,
    ):
        self.workdir = Path(workdir)
        self.runtime_binary = runtime_binary
        # Read-only root filesystem with a tmpfs /tmp. Off by default.
        self.read_only = read_only

    def build(
        self,
        profile: LanguageProfile,
        request: ExecutionRequest,
        limits: ResourceLimits,
    ) -> SandboxInvocation:
        mount = profile.mount_path
        argv: list[str] = [self.runtime_binary, "run", "--rm"]
        if request.container_name:
            argv.extend(["--name", request.container_name])

        argv.extend(["--volume", f"{self.workdir}:{mount}"])
        argv.extend(["--workdir", mount])
        argv.extend(["--cpus", limits.cpu_flag, "--memory", limits.memory])
        argv.extend(["--network", "none"])
        if self.read_only:
            argv.extend(["--read-only", "--tmpfs", "/tmp"])

        argv.append(profile.image)
        argv.extend(self.command_tokens(profile, self.container_path(profile, request.file)))
        argv.extend(str(arg) for arg in request.args)

        return SandboxInvocation(argv=tuple(argv), container_name=request.container_name)

    def container_path(self, profile: LanguageProfile, host_file: str | Path) -> str:
        """Path of ``host_file`` as seen from inside the container."""
        relative = Path(host_file).relative_to(self.workdir)
        return str(PurePosixPath(profile.mount_path, *relative.parts))

    @staticmethod
    def command_tokens(profile: LanguageProfile, container_file: str) -> list[str]:
        if isinstance(profile.command, str):
            return profile.command.replace(FILE_PLACEHOLDER, container_file).split()
        return [token.replace(FILE_PLACEHOLDER, container_file) for token in profile.command]
