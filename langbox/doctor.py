"""
Diagnostics for the local langbox setup.
"""

import shutil
from dataclasses import dataclass

from .core.config import ProfileRegistry, cpu_in_recommended_range
from .core.exceptions import RuntimeUnavailableError
from .sandbox.runtime import ContainerRuntime


@dataclass(slots=True)
class DoctorCheck:
    """Detailed doctor check for sandbox diagnostics."""

    name: str
    status: str  # pass | warn | fail
    detail: str
    recommendation: str | None = None


def run_doctor(registry: ProfileRegistry, runtime: ContainerRuntime) -> list[DoctorCheck]:
    """Run diagnostics for the runtime and the loaded profiles."""
    checks: list[DoctorCheck] = []

    if registry:
        checks.append(
            DoctorCheck(
                name="profiles",
                status="pass",
                detail=f"{len(registry)} language(s): {', '.join(registry.names())}",
            )
        )
    else:
        checks.append(
            DoctorCheck(
                name="profiles",
                status="fail",
                detail="No language profiles loaded.",
                recommendation="Point CONFIG_PATH at a profile file.",
            )
        )

    duplicates = registry.duplicate_extensions()
    if duplicates:
        detail = "; ".join(f".{ext}: {', '.join(names)}" for ext, names in duplicates.items())
        checks.append(
            DoctorCheck(
                name="extensions",
                status="warn",
                detail=f"Extensions claimed by several languages: {detail}",
                recommendation="The first declared language wins; remove the extra claims.",
            )
        )
    else:
        checks.append(
            DoctorCheck(name="extensions", status="pass", detail="Every extension has one owner.")
        )

    off_range = [
        name for name, profile in registry.items() if not cpu_in_recommended_range(profile.cpu)
    ]
    if off_range:
        checks.append(
            DoctorCheck(
                name="cpu_limits",
                status="warn",
                detail=f"cpu outside the recommended range for: {', '.join(off_range)}",
                recommendation="Use a cpu value between 0.1 and 8.0.",
            )
        )

    cli_path = shutil.which(runtime.binary)
    if not cli_path:
        checks.append(
            DoctorCheck(
                name="runtime_cli",
                status="fail",
                detail=f"{runtime.binary} CLI not found on PATH.",
                recommendation=f"Install {runtime.binary} or set CONTAINER_RUNTIME.",
            )
        )
        return checks
    checks.append(
        DoctorCheck(
            name="runtime_cli",
            status="pass",
            detail=f"{runtime.binary} CLI found at {cli_path}.",
        )
    )

    healthy, detail = runtime.check_health()
    checks.append(
        DoctorCheck(
            name="runtime_daemon",
            status="pass" if healthy else "fail",
            detail=detail,
            recommendation=None if healthy else f"Start the {runtime.binary} daemon and retry.",
        )
    )
    if not healthy:
        return checks

    try:
        local_images = runtime.list_images()
    except RuntimeUnavailableError as exc:
        checks.append(DoctorCheck(name="images", status="fail", detail=str(exc)))
        return checks

    for name, profile in registry.items():
        if profile.image in local_images:
            checks.append(
                DoctorCheck(
                    name=f"image:{name}",
                    status="pass",
                    detail=f"Image '{profile.image}' is available locally.",
                )
            )
        else:
            checks.append(
                DoctorCheck(
                    name=f"image:{name}",
                    status="warn",
                    detail=f"Image '{profile.image}' is not present locally.",
                    recommendation="It will be pulled on first run.",
                )
            )
    return checks
