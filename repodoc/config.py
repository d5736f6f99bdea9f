"""Configuration loading for repodoc (.repodoc.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .adapters import adapter_names

CONFIG_FILENAME = ".repodoc.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed or holds invalid values."""


@dataclass(frozen=True)
class ScanRule:
    """Glob pattern with an include or exclude effect."""

    pattern: str
    effect: str = "exclude"

    def __post_init__(self) -> None:
        if self.effect not in {"include", "exclude"}:
            raise ValueError(f"Unknown rule effect '{self.effect}' for pattern '{self.pattern}'")

    @property
    def include(self) -> bool:
        return self.effect == "include"


@dataclass
class ScanConfig:
    """Repository scanner settings."""

    rules: List[ScanRule] = field(default_factory=list)
    respect_gitignore: bool = True
    max_file_bytes: int = 1024 * 1024
    read_timeout: float = 5.0
    workers: Optional[int] = None


@dataclass
class ExtractConfig:
    """Abstraction extraction settings."""

    adapters: List[str] = field(default_factory=list)
    max_abstractions: int = 15
    min_abstractions: int = 5
    workers: Optional[int] = None


@dataclass
class ValidateConfig:
    """Cross-reference validation policy."""

    auto_repair: bool = False
    repair_threshold: float = 0.6


@dataclass
class OutputConfig:
    """Where and how documentation is written."""

    directory: str = "docs"
    project_name: Optional[str] = None


@dataclass
class RepoDocConfig:
    """Represents the settings defined in .repodoc.yml."""

    root: Path
    scan: ScanConfig = field(default_factory=ScanConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    validate: ValidateConfig = field(default_factory=ValidateConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    deadline: Optional[float] = None


def load_config(config_path: Path) -> RepoDocConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return RepoDocConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    scan = ScanConfig()
    scan_data = _as_dict(data.get("scan"))
    if scan_data:
        scan.rules = _parse_rules(scan_data.get("rules"))
        respect = _as_bool(scan_data.get("respect_gitignore"))
        if respect is not None:
            scan.respect_gitignore = respect
        scan.max_file_bytes = _as_int(scan_data.get("max_file_bytes")) or scan.max_file_bytes
        scan.read_timeout = _as_float(scan_data.get("read_timeout")) or scan.read_timeout
        scan.workers = _as_int(scan_data.get("workers"))
    _check_workers("scan.workers", scan.workers)

    extract = ExtractConfig()
    extract_data = _as_dict(data.get("extract"))
    if extract_data:
        extract.adapters = _as_str_list(extract_data.get("adapters"))
        extract.max_abstractions = _as_int(extract_data.get("max_abstractions")) or extract.max_abstractions
        min_abstractions = _as_int(extract_data.get("min_abstractions"))
        if min_abstractions is not None:
            extract.min_abstractions = min_abstractions
        extract.workers = _as_int(extract_data.get("workers"))
    if extract.max_abstractions < 1:
        raise ConfigError("extract.max_abstractions must be at least 1")
    if extract.min_abstractions < 0:
        raise ConfigError("extract.min_abstractions must not be negative")
    _check_workers("extract.workers", extract.workers)
    unknown = sorted({name.lower() for name in extract.adapters} - set(adapter_names()))
    if unknown:
        raise ConfigError(
            f"extract.adapters names unknown adapter(s): {', '.join(unknown)} "
            f"(available: {', '.join(adapter_names())})"
        )

    validate = ValidateConfig()
    validate_data = _as_dict(data.get("validate"))
    if validate_data:
        auto_repair = _as_bool(validate_data.get("auto_repair"))
        if auto_repair is not None:
            validate.auto_repair = auto_repair
        threshold = _as_float(validate_data.get("repair_threshold"))
        if threshold is not None:
            validate.repair_threshold = threshold
    if not 0.0 <= validate.repair_threshold <= 1.0:
        raise ConfigError("validate.repair_threshold must be between 0 and 1")

    output = OutputConfig()
    output_data = _as_dict(data.get("output"))
    if output_data:
        output.directory = _as_str(output_data.get("directory")) or output.directory
        output.project_name = _as_str(output_data.get("project_name"))

    return RepoDocConfig(
        root=root,
        scan=scan,
        extract=extract,
        validate=validate,
        output=output,
        deadline=_as_float(data.get("deadline")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _check_workers(key: str, value: Optional[int]) -> None:
    if value is not None and value < 1:
        raise ConfigError(f"{key} must be at least 1")


def _parse_rules(value: Any) -> List[ScanRule]:
    rules: List[ScanRule] = []
    if value is None:
        return rules
    if not isinstance(value, list):
        raise ConfigError("scan.rules must be a list")
    for entry in value:
        if isinstance(entry, str):
            pattern = entry.strip()
            if pattern.startswith("!"):
                rules.append(ScanRule(pattern=pattern[1:], effect="include"))
            elif pattern:
                rules.append(ScanRule(pattern=pattern, effect="exclude"))
            continue
        if isinstance(entry, dict):
            pattern = _as_str(entry.get("pattern"))
            effect = (_as_str(entry.get("effect")) or "exclude").lower()
            if not pattern:
                raise ConfigError("scan.rules entries require a pattern")
            try:
                rules.append(ScanRule(pattern=pattern, effect=effect))
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
            continue
        raise ConfigError(f"Unsupported scan rule entry: {entry!r}")
    return rules


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ExtractConfig",
    "OutputConfig",
    "RepoDocConfig",
    "ScanConfig",
    "ScanRule",
    "ValidateConfig",
    "load_config",
]
