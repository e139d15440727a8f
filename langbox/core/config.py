"""
Configuration management for langbox.

Language profiles are loaded once from a YAML or JSON mapping of
``language name -> profile fields`` and exposed as an immutable
``ProfileRegistry``. A single invalid profile aborts the whole load.
"""

import json
import math
import os
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_MOUNT_PATH = "/app"
DEFAULT_CPU = 0.5
DEFAULT_MEMORY = "256m"
DEFAULT_TIMEOUT_SECONDS = 300
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_CONTAINER_RUNTIME = "docker"
CPU_RECOMMENDED_RANGE = (0.1, 8.0)

MEMORY_PATTERN = re.compile(r"^\d+[kmgKMG]?$", re.ASCII)
EXTENSION_PATTERN = re.compile(r"^[a-z0-9]+$")
FILE_PLACEHOLDER = "{file}"

PROJECT_CONFIG_FILENAME = "langbox.yaml"
BUNDLED_CONFIG_PATH = Path(__file__).resolve().parent.parent / "data" / "languages.yaml"
DEFAULT_LOG_PATH = Path("~/.langbox/langbox.log")


def _as_bool_env(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def normalize_image(image: str) -> str:
    """Append the default tag to an image reference that has neither tag nor digest."""
    image = image.strip()
    if "@" in image:
        return image
    last_segment = image.rsplit("/", 1)[-1]
    if ":" in last_segment:
        return image
    return f"{image}:{DEFAULT_IMAGE_TAG}"


def is_valid_cpu(value: Any) -> bool:
    """True for a finite, positive int or float (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value) and value > 0
    except OverflowError:
        return False


def cpu_in_recommended_range(cpu: float) -> bool:
    low, high = CPU_RECOMMENDED_RANGE
    return low <= cpu <= high


@dataclass(frozen=True, slots=True)
class LanguageProfile:
    """How to run one language inside a sandbox."""

    name: str
    image: str
    command: str | tuple[str, ...]
    extensions: tuple[str, ...]
    mount_path: str = DEFAULT_MOUNT_PATH
    cpu: float = DEFAULT_CPU
    memory: str = DEFAULT_MEMORY
    timeout: int = DEFAULT_TIMEOUT_SECONDS

    def handles(self, extension: str) -> bool:
        return extension.lower() in self.extensions


class ProfileRegistry(Mapping):
    """Read-only, declaration-ordered mapping of language name to profile."""

    def __init__(self, profiles: Mapping[str, LanguageProfile] | None = None):
        self._profiles = MappingProxyType(dict(profiles or {}))

    def __getitem__(self, name: str) -> LanguageProfile:
        return self._profiles[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileRegistry({list(self._profiles)!r})"

    def names(self) -> list[str]:
        return list(self._profiles)

    def extensions(self) -> list[str]:
        """Every registered extension, in declaration order, without repeats."""
        seen: list[str] = []
        for profile in self._profiles.values():
            for ext in profile.extensions:
                if ext not in seen:
                    seen.append(ext)
        return seen

    def find_by_extension(self, extension: str) -> LanguageProfile | None:
        """First profile (in declaration order) claiming ``extension``."""
        normalized = extension.lstrip(".").lower()
        for profile in self._profiles.values():
            if profile.handles(normalized):
                return profile
        return None

    def duplicate_extensions(self) -> dict[str, list[str]]:
        """Extensions claimed by more than one profile, mapped to the claimants."""
        owners: dict[str, list[str]] = {}
        for profile in self._profiles.values():
            for ext in profile.extensions:
                owners.setdefault(ext, []).append(profile.name)
        return {ext: names for ext, names in owners.items() if len(names) > 1}


@dataclass
class Settings:
    """Process settings resolved from environment variables."""

    config_path: Path
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_PATH.expanduser())
    log_to_console: bool = False
    container_runtime: str = DEFAULT_CONTAINER_RUNTIME

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> "Settings":
        env = os.environ if environ is None else environ
        base = cwd or Path.cwd()

        raw_config = (env.get("CONFIG_PATH") or "").strip()
        if raw_config:
            config_path = Path(raw_config).expanduser()
        elif (base / PROJECT_CONFIG_FILENAME).exists():
            config_path = base / PROJECT_CONFIG_FILENAME
        else:
            config_path = BUNDLED_CONFIG_PATH

        raw_log = (env.get("LOG_PATH") or "").strip()
        log_path = Path(raw_log).expanduser() if raw_log else DEFAULT_LOG_PATH.expanduser()

        runtime = (env.get("CONTAINER_RUNTIME") or "").strip() or DEFAULT_CONTAINER_RUNTIME

        return cls(
            config_path=config_path,
            log_path=log_path,
            log_to_console=_as_bool_env(env.get("LOG_TO_CONSOLE"), False),
            container_runtime=runtime,
        )


class ConfigStore:
    """Loads and validates language profiles from a declarative source."""

    def __init__(self, source: Path):
        self.source = Path(source)

    def load(self) -> ProfileRegistry:
        """
        Load the profile registry.

        Raises:
            ConfigError: when the source is missing, unreadable, empty or
                any profile fails validation. No partial registry is returned.
        """
        try:
            data = self._read_source()
            registry = build_registry(data)
        except ConfigError as exc:
            logger.error(
                f"Failed to load language profiles: {exc}",
                extra={"context": {"source": str(self.source), **exc.context}},
            )
            raise

        logger.info(
            f"Loaded {len(registry)} language profile(s): {', '.join(registry.names())}",
            extra={
                "context": {
                    "source": str(self.source),
                    "count": len(registry),
                    "languages": registry.names(),
                }
            },
        )
        return registry

    def _read_source(self) -> Any:
        path = self.source
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Configuration file is unreadable: {path}: {exc}") from exc
        if not text.strip():
            raise ConfigError(f"Configuration file is empty: {path}")

        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigError(f"Configuration file could not be parsed: {exc}") from exc

        if not data:
            raise ConfigError(f"Configuration file defines no languages: {path}")
        return data


def build_registry(data: Any) -> ProfileRegistry:
    """Validate a raw ``name -> fields`` mapping and build the registry."""
    if not isinstance(data, dict):
        raise ConfigError(
            "Configuration must be a mapping of language name to profile",
            {"type": type(data).__name__},
        )

    profiles: dict[str, LanguageProfile] = {}
    for raw_name, raw_profile in data.items():
        name = str(raw_name).strip()
        if not name:
            raise ConfigError("Language name must not be blank")
        profiles[name] = parse_profile(name, raw_profile)

    registry = ProfileRegistry(profiles)
    for ext, owners in registry.duplicate_extensions().items():
        logger.warning(
            f"Extension '{ext}' is claimed by {', '.join(owners)}; '{owners[0]}' wins",
            extra={"context": {"extension": ext, "languages": owners}},
        )
    return registry


def parse_profile(name: str, raw: Any) -> LanguageProfile:
    """Validate and normalize a single profile."""
    if not isinstance(raw, dict):
        raise ConfigError(f"Profile '{name}' must be a mapping", {"language": name})

    command = _parse_command(name, raw.get("command"))
    extensions = _parse_extensions(name, raw.get("extensions"))

    image = raw.get("image") or name
    if not isinstance(image, str) or not image.strip():
        raise ConfigError(f"Profile '{name}' has an invalid image", {"language": name})

    mount_path = str(raw.get("mount_path") or DEFAULT_MOUNT_PATH).strip()
    if not mount_path.startswith("/"):
        raise ConfigError(
            f"Profile '{name}' mount_path must be an absolute path: {mount_path}",
            {"language": name, "field": "mount_path"},
        )
    if len(mount_path) > 1:
        mount_path = mount_path.rstrip("/")

    cpu = _parse_cpu(name, raw.get("cpu"))
    memory = validate_memory(name, raw.get("memory"))
    timeout = _parse_timeout(name, raw.get("timeout"))

    return LanguageProfile(
        name=name,
        image=normalize_image(image),
        command=command,
        extensions=extensions,
        mount_path=mount_path,
        cpu=cpu,
        memory=memory,
        timeout=timeout,
    )


def validate_memory(name: str, value: Any) -> str:
    """Return the normalized memory limit or raise ``ConfigError``."""
    if value is None:
        return DEFAULT_MEMORY
    if isinstance(value, bool):
        memory = ""
    else:
        memory = str(value).strip()
    if not MEMORY_PATTERN.fullmatch(memory):
        raise ConfigError(
            f"Profile '{name}' memory must look like 256m, 1g or 512000: {value!r}",
            {"language": name, "field": "memory", "value": str(value)},
        )
    return memory


def _parse_command(name: str, value: Any) -> str | tuple[str, ...]:
    if isinstance(value, str) and value.strip():
        command: str | tuple[str, ...] = value.strip()
        has_placeholder = FILE_PLACEHOLDER in command
    elif isinstance(value, list) and value and all(
        isinstance(token, str) and token for token in value
    ):
        command = tuple(value)
        has_placeholder = any(FILE_PLACEHOLDER in token for token in command)
    else:
        raise ConfigError(
            f"Profile '{name}' is missing 'command'",
            {"language": name, "field": "command"},
        )

    if not has_placeholder:
        logger.warning(
            f"Profile '{name}' command has no {FILE_PLACEHOLDER} placeholder",
            extra={"context": {"language": name}},
        )
    return command


def _parse_extensions(name: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not value:
        raise ConfigError(
            f"Profile '{name}' must declare at least one extension",
            {"language": name, "field": "extensions"},
        )

    extensions: list[str] = []
    for item in value:
        ext = str(item).strip().lower()
        if not EXTENSION_PATTERN.fullmatch(ext):
            raise ConfigError(
                f"Profile '{name}' has an invalid extension {item!r} "
                "(letters and digits only, no dot)",
                {"language": name, "field": "extensions", "value": str(item)},
            )
        if ext not in extensions:
            extensions.append(ext)
    return tuple(extensions)


def _parse_cpu(name: str, value: Any) -> float:
    if value is None:
        return DEFAULT_CPU
    if not is_valid_cpu(value):
        raise ConfigError(
            f"Profile '{name}' cpu must be a positive number: {value!r}",
            {"language": name, "field": "cpu", "value": str(value)},
        )
    cpu = float(value)
    if not cpu_in_recommended_range(cpu):
        low, high = CPU_RECOMMENDED_RANGE
        logger.warning(
            f"Profile '{name}' cpu {cpu} is outside the recommended range [{low}, {high}]",
            extra={"context": {"language": name, "cpu": cpu}},
        )
    return cpu


def _parse_timeout(name: str, value: Any) -> int:
    if value is None:
        return DEFAULT_TIMEOUT_SECONDS
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(
            f"Profile '{name}' timeout must be a positive integer (seconds): {value!r}",
            {"language": name, "field": "timeout", "value": str(value)},
        )
    return value
