"""Configuration loading and management for Hookwise.

Configuration sources are merged in priority order (lowest to highest):
    1. Defaults (defined in EnhancerConfig)
    2. Global config (~/.hookwise.toml)
    3. Project config (./hookwise.toml)
    4. Explicit config file
    5. Persisted preferences (see preferences.py)
    6. Environment variables (HOOKWISE_* prefix)
    7. Explicit overrides (CLI flags)

Example:
    >>> config = load_config(mode="auto", timeout_seconds=10)
    >>> config.mode
    'auto'
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, get_args, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError
from .logging_config import get_logger

logger = get_logger(__name__)

Mode = Literal["interactive", "auto", "preview", "skip", "ask"]
DefaultAction = Literal["skip", "apply"]

MODES = get_args(Mode)
DEFAULT_ACTIONS = get_args(DefaultAction)

MIN_FILE_SIZE = 1024
MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass(frozen=True)
class EnhancerConfig:
    """Settings for one enhancement run.

    Attributes:
        Decision control:
            mode: interactive, auto, preview, skip, or ask (prompt once per run)
            timeout_seconds: How long an interactive prompt waits for input
            default_action: What a timed-out prompt resolves to (skip or apply)

        Analyzers:
            analyzers: Analyzer names in priority order (first wins overlaps).
                Empty means every analyzer found in analyzer_dir.
            analyzer_dir: Directory holding ``<name>-hook.*`` scripts
            commands: Analyzer name -> argv, overriding discovery
            analyzer_timeout_seconds: Time limit for one analyzer on one file

        Files:
            max_file_size: Files larger than this (bytes) are skipped
            workers: Files analyzed concurrently

        Storage:
            backup_dir: Where pre-mutation backups are written
            preferences_file: Persisted key=value preferences
            log_file: Optional action log
    """

    mode: Mode = "interactive"
    timeout_seconds: int = 30
    default_action: DefaultAction = "skip"

    analyzers: List[str] = field(default_factory=list)
    analyzer_dir: str = "tools/git-hooks"
    commands: Dict[str, List[str]] = field(default_factory=dict)
    analyzer_timeout_seconds: int = 30

    max_file_size: int = 1024 * 1024
    workers: int = 1

    backup_dir: str = ".hookwise/backups"
    preferences_file: str = ".hookwise/preferences.conf"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.mode not in MODES:
            raise InvalidConfigError("mode", self.mode, f"must be one of: {', '.join(MODES)}")
        if self.default_action not in DEFAULT_ACTIONS:
            raise InvalidConfigError(
                "default_action", self.default_action, "must be 'skip' or 'apply'"
            )

        if not 5 <= self.timeout_seconds <= 300:
            raise InvalidConfigError(
                "timeout_seconds", self.timeout_seconds, "must be between 5 and 300 seconds"
            )
        if not 1 <= self.analyzer_timeout_seconds <= 300:
            raise InvalidConfigError(
                "analyzer_timeout_seconds",
                self.analyzer_timeout_seconds,
                "must be between 1 and 300 seconds",
            )

        if not MIN_FILE_SIZE <= self.max_file_size <= MAX_FILE_SIZE:
            raise InvalidConfigError(
                "max_file_size", self.max_file_size, "must be between 1KB and 10MB"
            )
        if self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")

        if len(set(self.analyzers)) != len(self.analyzers):
            raise InvalidConfigError("analyzers", self.analyzers, "names must be unique")
        for name, argv in self.commands.items():
            if not argv or not all(isinstance(a, str) for a in argv):
                raise InvalidConfigError(f"commands.{name}", argv, "must be a non-empty list of strings")


def load_config(
    config_file: Optional[Path] = None,
    preferences: Optional[Mapping[str, str]] = None,
    root_dir: Optional[Path] = None,
    **overrides,
) -> EnhancerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        root_dir: Directory searched for hookwise.toml (default: cwd)
        preferences: Persisted preferences (string values)
        **overrides: Direct overrides (typically from CLI flags); None values
            are ignored

    Returns:
        Validated EnhancerConfig instance

    Raises:
        ConfigurationError: If a config source is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".hookwise.toml"
    if global_config.exists():
        merged.update(_load_toml_source(global_config, "global config"))

    project_config = (root_dir or Path.cwd()) / "hookwise.toml"
    if project_config.exists():
        merged.update(_load_toml_source(project_config, "project config"))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_source(config_file, "config file"))

    if preferences:
        known = {k: v for k, v in preferences.items() if k in EnhancerConfig.__dataclass_fields__}
        ignored = sorted(set(preferences) - set(known))
        if ignored:
            logger.debug("Ignoring unknown preference key(s): %s", ", ".join(ignored))
        merged.update(_parse_string_values(known, source="preference"))

    merged.update(_load_env_vars())

    merged.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(merged) - set(EnhancerConfig.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration key(s): {', '.join(sorted(unknown))}",
            details={"key": sorted(unknown)[0]},
        )

    try:
        return EnhancerConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_toml_source(path: Path, label: str) -> dict:
    try:
        data = _load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid {label} '{path}': {e}")
    # Accept both a flat file and a [hookwise] table
    return dict(data.get("hookwise", data))


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from HOOKWISE_* environment variables.

    Supported environment variables:
        HOOKWISE_MODE: interactive/auto/preview/skip/ask
        HOOKWISE_TIMEOUT_SECONDS: int
        HOOKWISE_DEFAULT_ACTION: skip/apply
        HOOKWISE_ANALYZERS: comma-separated names
        HOOKWISE_ANALYZER_DIR: path
        HOOKWISE_ANALYZER_TIMEOUT_SECONDS: int
        HOOKWISE_MAX_FILE_SIZE: int (bytes)
        HOOKWISE_WORKERS: int
        HOOKWISE_BACKUP_DIR, HOOKWISE_PREFERENCES_FILE, HOOKWISE_LOG_FILE: path

    HOOK_MODE is honored as a legacy alias of HOOKWISE_MODE.
    """
    raw: dict[str, str] = {}
    legacy_mode = os.environ.get("HOOK_MODE")
    if legacy_mode:
        raw["mode"] = legacy_mode

    for field_name in EnhancerConfig.__dataclass_fields__:
        env_value = os.environ.get(f"HOOKWISE_{field_name.upper()}")
        if env_value is not None:
            raw[field_name] = env_value

    return _parse_string_values(raw, source="environment variable")


def _parse_string_values(raw: Mapping[str, str], source: str) -> dict[str, Any]:
    """Parse string settings (env vars, preferences) to field types.

    Unknown keys are left for load_config to reject.
    """
    type_hints = get_type_hints(EnhancerConfig)
    result: dict[str, Any] = {}
    for key, value in raw.items():
        type_hint = type_hints.get(key)
        if type_hint is None:
            result[key] = value
            continue
        try:
            parsed = _parse_value(value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(key, value, f"invalid {source}: {e}")
        if parsed is not None:
            result[key] = parsed
    return result


def _parse_value(value: str, type_hint: Any) -> Any:
    """Parse a string to the correct type.

    Returns None for types that can't be expressed as a single string.
    """
    origin = getattr(type_hint, "__origin__", None)
    args = getattr(type_hint, "__args__", ())

    # Optional[X] is Union[X, None]
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if value == "":
            return None
        type_hint = non_none_types[0]
        origin = getattr(type_hint, "__origin__", None)

    if origin is list:
        return [part.strip() for part in value.split(",") if part.strip()]
    if origin is dict:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore

    with open(path, "rb") as f:
        return tomllib.load(f)
