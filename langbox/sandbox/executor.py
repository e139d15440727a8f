"""
Timeout-bounded execution of sandbox invocations.
"""

import subprocess
import time

from ..core.exceptions import ExecutionError, ExecutionTimeoutError
from ..core.logging import get_logger
from .base import ExecutionResult, SandboxInvocation
from .runtime import ContainerRuntime

logger = get_logger(__name__)


class BoundedExecutor:
    """
    Runs an invocation as a subprocess under a hard wall-clock timeout.

    stdout and stderr are captured separately and returned concatenated
    (stdout first). Nothing is returned until the process has exited. On
    timeout the runtime client is terminated, then killed if it does not
    exit within ``kill_grace_seconds``; a named container is also killed
    through ``runtime`` so it does not outlive its client.
    """

    def __init__(
        self,
        runtime: ContainerRuntime | None = None,
        kill_grace_seconds: float = 2.0,
    ):
        self.runtime = runtime
        self.kill_grace_seconds = kill_grace_seconds

    def run(self, invocation: SandboxInvocation, timeout_seconds: int) -> ExecutionResult:
        """
        Execute ``invocation`` and return its combined output.

        Raises:
            ExecutionTimeoutError: if the process outlives ``timeout_seconds``.
            ExecutionError: if the process cannot start or exits non-zero.
        """
        context = {
            "argv": list(invocation.argv),
            "container": invocation.container_name,
            "timeout": timeout_seconds,
        }
        logger.debug(f"Starting {' '.join(invocation.argv)}", extra={"context": context})

        started = time.monotonic()
        try:
            process = subprocess.Popen(
                list(invocation.argv),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise ExecutionError(
                f"Failed to start {invocation.runtime}: {exc}", context
            ) from exc

        try:
            stdout, stderr = process.communicate(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            self._terminate(process)
            if invocation.container_name and self.runtime is not None:
                self.runtime.kill_container(invocation.container_name)
            logger.debug(
                f"Timed out after {timeout_seconds}s; process killed",
                extra={"context": {**context, "state": "timeout"}},
            )
            raise ExecutionTimeoutError(timeout_seconds, context)

        duration = time.monotonic() - started
        output = (stdout or "") + (stderr or "")
        exit_code = process.returncode
        state = "succeeded" if exit_code == 0 else "failed"
        logger.debug(
            f"Execution {state} with status {exit_code} in {duration:.2f}s",
            extra={
                "context": {
                    **context,
                    "state": state,
                    "exit_code": exit_code,
                    "duration": round(duration, 3),
                }
            },
        )

        if exit_code != 0:
            raise ExecutionError(
                f"{invocation.runtime} exited with status {exit_code}",
                {**context, "exit_code": exit_code},
                exit_code=exit_code,
                output=output,
            )
        return ExecutionResult(output=output, exit_code=exit_code, duration=duration)

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=self.kill_grace_seconds)
            except subprocess.TimeoutExpired:
                # Force kill if needed
                process.kill()
        # Reap the process and close its pipes.
        process.communicate()
