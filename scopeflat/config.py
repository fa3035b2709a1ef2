"""Configuration loading for scopeflat (.scopeflat.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .models import TargetSpec

CONFIG_FILENAME = ".scopeflat.yml"

DEFAULT_DESCRIBE_COMMAND = ("swift", "package", "describe", "--type", "json")


@dataclass
class ManifestToolConfig:
    """How to invoke the package description tool."""

    command: List[str] = field(default_factory=lambda: list(DEFAULT_DESCRIBE_COMMAND))
    timeout: Optional[float] = None


@dataclass
class ScopeFlatConfig:
    """Represents the settings defined in .scopeflat.yml."""

    root: Path
    targets: List[TargetSpec] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    destination: Optional[str] = None
    manifest: ManifestToolConfig = field(default_factory=ManifestToolConfig)
    source_suffixes: List[str] = field(default_factory=lambda: [".swift"])


def load_config(config_path: Path) -> ScopeFlatConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ScopeFlatConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    manifest = ManifestToolConfig()
    manifest_data = _as_dict(data.get("manifest"))
    if manifest_data:
        command = manifest_data.get("command")
        if isinstance(command, str):
            manifest.command = command.split()
        elif command is not None:
            manifest.command = _as_str_list(command)
        if not manifest.command:
            raise ConfigError("manifest.command must not be empty")
        manifest.timeout = _as_float(manifest_data.get("timeout"))

    suffixes = _as_str_list(data.get("source_suffixes"))
    normalized_suffixes = [
        suffix if suffix.startswith(".") else f".{suffix}" for suffix in suffixes
    ]

    return ScopeFlatConfig(
        root=root,
        targets=parse_targets(data.get("targets")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        destination=_as_str(data.get("destination")),
        manifest=manifest,
        source_suffixes=normalized_suffixes or [".swift"],
    )


def parse_targets(value: Any) -> List[TargetSpec]:
    """Accept ``{name: folder}`` mappings or lists of names / ``{name, entry}`` items."""
    if value is None:
        return []
    targets: List[TargetSpec] = []
    if isinstance(value, dict):
        for name, folder in value.items():
            targets.append(_make_target(name, folder))
        return targets
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str):
                targets.append(parse_target_option(item))
            elif isinstance(item, dict):
                targets.append(_make_target(item.get("name"), item.get("entry", item.get("entry_folder"))))
            else:
                raise ConfigError(f"Unsupported target entry: {item!r}")
        return targets
    raise ConfigError("targets must be a mapping or a list")


def parse_target_option(raw: str) -> TargetSpec:
    """Parse ``name`` or ``name=folder`` as given on the command line."""
    name, sep, folder = raw.partition("=")
    return _make_target(name, folder if sep else None)


def _make_target(name: Any, folder: Any) -> TargetSpec:
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("Target name must be a non-empty string")
    name = name.strip()
    if folder is None or (isinstance(folder, str) and not folder.strip()):
        folder = name
    if not isinstance(folder, str):
        raise ConfigError(f"Entry folder for target {name!r} must be a string")
    return TargetSpec(name=name, entry_folder=folder.strip())


def merge_targets(configured: Sequence[TargetSpec], overrides: Sequence[TargetSpec]) -> List[TargetSpec]:
    """Overlay command-line targets on configured ones, keyed by name."""
    merged: Dict[str, TargetSpec] = {target.name: target for target in configured}
    for target in overrides:
        merged[target.name] = target
    return [merged[name] for name in sorted(merged)]


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
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


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


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ManifestToolConfig",
    "ScopeFlatConfig",
    "load_config",
    "merge_targets",
    "parse_target_option",
    "parse_targets",
]
