"""
Path resolution for files handed to the sandbox.

Only files inside the working directory tree may be mounted and executed.
"""

from pathlib import Path

from .exceptions import PathError
from .logging import get_logger

logger = get_logger(__name__)


class PathGuard:
    """Resolves user-supplied paths and keeps them inside ``root``."""

    def __init__(self, root: Path | None = None):
        self.root = (root or Path.cwd()).resolve()

    def resolve(self, path: str | Path) -> Path:
        """
        Resolve ``path`` to an absolute path inside the working directory.

        Relative paths are taken relative to the guard's root. Symlinks are
        followed before the containment check.

        Raises:
            PathError: if the path is blank, missing, unresolvable, not a
                regular file or outside the working directory tree.
        """
        raw = str(path).strip()
        if not raw:
            raise PathError("No file path given", {"path": raw})

        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate

        try:
            resolved = candidate.resolve(strict=True)
        except FileNotFoundError as exc:
            raise PathError(f"File not found: {raw}", {"path": raw}) from exc
        except (OSError, RuntimeError) as exc:
            raise PathError(
                f"Cannot resolve path: {raw}: {exc}", {"path": raw}
            ) from exc

        if not resolved.is_relative_to(self.root):
            raise PathError(
                f"Path '{raw}' resolves outside the working directory {self.root}",
                {"path": raw, "resolved": str(resolved), "root": str(self.root)},
            )
        if not resolved.is_file():
            raise PathError(f"Not a file: {raw}", {"path": raw, "resolved": str(resolved)})

        logger.debug(
            f"Resolved {raw} -> {resolved}",
            extra={"context": {"path": raw, "resolved": str(resolved)}},
        )
        return resolved

    def relative(self, resolved: Path) -> Path:
        """Path of an already-resolved file relative to the root."""
        return resolved.relative_to(self.root)
