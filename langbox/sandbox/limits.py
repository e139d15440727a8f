"""
Resource limits applied to sandboxed runs.
"""

from dataclasses import dataclass

from ..core.config import (
    CPU_RECOMMENDED_RANGE,
    DEFAULT_CPU,
    LanguageProfile,
    cpu_in_recommended_range,
    is_valid_cpu,
    validate_memory,
)
from ..core.exceptions import ConfigError
from ..core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResourceLimits:
    """CPU share and memory ceiling for one container."""

    cpu: float
    memory: str

    @property
    def cpu_flag(self) -> str:
        return str(float(self.cpu))


class ResourceLimiter:
    """Derives limits from a validated profile."""

    def derive(self, profile: LanguageProfile) -> ResourceLimits:
        """
        Compute the limits for ``profile``.

        Unset fields fall back to defaults. The memory pattern is checked
        again in case the profile was altered after load.

        Raises:
            ConfigError: if cpu or memory is no longer valid.
        """
        cpu = DEFAULT_CPU if profile.cpu is None else profile.cpu
        if not is_valid_cpu(cpu):
            raise ConfigError(
                f"Profile '{profile.name}' cpu must be a positive number: {cpu!r}",
                {"language": profile.name, "field": "cpu", "value": str(cpu)},
            )
        memory = validate_memory(profile.name, profile.memory)

        if not cpu_in_recommended_range(float(cpu)):
            low, high = CPU_RECOMMENDED_RANGE
            logger.warning(
                f"cpu {cpu} for '{profile.name}' is outside [{low}, {high}]",
                extra={"context": {"language": profile.name, "cpu": cpu}},
            )

        return ResourceLimits(cpu=float(cpu), memory=memory)
