"""
Container runtime boundary.

Wraps the handful of CLI calls langbox needs from a Docker-compatible
runtime: version query, image list, image pull and container kill.
"""

import subprocess

from ..core.config import DEFAULT_CONTAINER_RUNTIME
from ..core.exceptions import RuntimeUnavailableError
from ..core.logging import get_logger

logger = get_logger(__name__)


class ContainerRuntime:
    """Thin client for a Docker-compatible container CLI."""

    def __init__(
        self,
        binary: str = DEFAULT_CONTAINER_RUNTIME,
        query_timeout_seconds: float = 10.0,
        pull_timeout_seconds: float = 900.0,
    ):
        self.binary = binary
        self.query_timeout_seconds = query_timeout_seconds
        self.pull_timeout_seconds = pull_timeout_seconds

    def check_health(self, timeout_seconds: float = 2.5) -> tuple[bool, str]:
        """Return (healthy, detail) for runtime availability."""
        try:
            result = subprocess.run(
                [self.binary, "version", "--format", "{{.Server.Version}}"],
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
                check=False,
            )
        except FileNotFoundError:
            return False, f"{self.binary} CLI not found"
        except subprocess.TimeoutExpired:
            return False, f"{self.binary} check timed out"
        except OSError as exc:
            return False, f"{self.binary} could not be started: {exc}"

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip() or f"{self.binary} daemon unavailable"
            return False, detail

        version = result.stdout.strip() or "unknown"
        return True, f"{self.binary} daemon ready (server {version})"

    def is_available(self) -> bool:
        available, detail = self.check_health()
        logger.debug(
            f"Runtime availability: {detail}",
            extra={"context": {"runtime": self.binary, "available": available}},
        )
        return available

    def list_images(self) -> set[str]:
        """
        Return locally available image references.

        Each image contributes ``repository:tag`` and, when it has one,
        ``repository@digest``. Untagged or digest-less halves are skipped.

        Raises:
            RuntimeUnavailableError: if the runtime cannot be queried.
        """
        result = self._run(
            [
                "images",
                "--digests",
                "--format",
                "{{.Repository}}:{{.Tag}}\t{{.Repository}}@{{.Digest}}",
            ],
            timeout=self.query_timeout_seconds,
        )
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip() or "image list failed"
            raise RuntimeUnavailableError(
                f"Cannot list images: {detail}",
                {"runtime": self.binary, "returncode": result.returncode},
            )

        images: set[str] = set()
        for line in result.stdout.splitlines():
            for reference in line.split("\t"):
                reference = reference.strip()
                if reference and "<none>" not in reference:
                    images.add(reference)
        return images

    def pull_image(self, image: str) -> None:
        """
        Pull ``image``.

        Raises:
            RuntimeUnavailableError: if the pull exits non-zero or times out.
        """
        result = self._run(["pull", image], timeout=self.pull_timeout_seconds)
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip() or "pull failed"
            raise RuntimeUnavailableError(
                f"Failed to pull image {image}: {detail}",
                {"runtime": self.binary, "image": image, "returncode": result.returncode},
            )

    def kill_container(self, name: str) -> bool:
        """Kill a running container by name. Returns True if the runtime accepted it."""
        try:
            result = subprocess.run(
                [self.binary, "kill", name],
                capture_output=True,
                text=True,
                timeout=self.query_timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning(
                f"Could not kill container {name}: {exc}",
                extra={"context": {"runtime": self.binary, "container": name}},
            )
            return False
        return result.returncode == 0

    def _run(self, args: list[str], timeout: float) -> subprocess.CompletedProcess:
        cmd = [self.binary, *args]
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailableError(
                f"{self.binary} CLI not found", {"runtime": self.binary}
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise RuntimeUnavailableError(
                f"'{' '.join(cmd)}' timed out after {timeout}s",
                {"runtime": self.binary, "timeout": timeout},
            ) from exc
        except OSError as exc:
            raise RuntimeUnavailableError(
                f"{self.binary} could not be started: {exc}", {"runtime": self.binary}
            ) from exc
