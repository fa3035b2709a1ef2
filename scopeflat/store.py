"""Control directory layout and atomic artifact persistence."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

from .errors import ParseError
from .models import FlattenMap, SnapshotModel

CONTROL_DIR_NAME = ".scopeflat"
SNAPSHOT_RELPATH = f"{CONTROL_DIR_NAME}/snapshot/snapshot.json"
FLATTEN_MAP_RELPATH = f"{CONTROL_DIR_NAME}/flattened/flatten.map.json"
MANIFEST_CACHE_RELPATH = f"{CONTROL_DIR_NAME}/cache/manifests.json"


def control_dir(repo_root: Path) -> Path:
    return repo_root / CONTROL_DIR_NAME


def snapshot_path(repo_root: Path) -> Path:
    return repo_root / SNAPSHOT_RELPATH


def flatten_map_path(repo_root: Path) -> Path:
    return repo_root / FLATTEN_MAP_RELPATH


def manifest_cache_path(repo_root: Path) -> Path:
    return repo_root / MANIFEST_CACHE_RELPATH


def dump_json(payload: Mapping[str, Any]) -> str:
    """Serialize with the canonical artifact formatting."""
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


def write_json_atomic(path: Path, payload: Mapping[str, Any]) -> None:
    """Write JSON so readers observe either the old file or the complete new one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(dump_json(payload))
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_json(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"{path} is not valid JSON: {exc}") from exc


def write_snapshot(repo_root: Path, snapshot: SnapshotModel) -> Path:
    path = snapshot_path(repo_root)
    write_json_atomic(path, snapshot.to_dict())
    return path


def load_snapshot(repo_root: Path) -> SnapshotModel:
    path = snapshot_path(repo_root)
    if not path.exists():
        raise FileNotFoundError(f"No snapshot found at {path}. Run `scopeflat snapshot` first.")
    return SnapshotModel.from_dict(read_json(path))


def write_flatten_map(repo_root: Path, flatten_map: FlattenMap) -> Path:
    path = flatten_map_path(repo_root)
    write_json_atomic(path, flatten_map.to_dict())
    return path


def load_flatten_map(repo_root: Path) -> FlattenMap:
    path = flatten_map_path(repo_root)
    if not path.exists():
        raise FileNotFoundError(f"No flatten map found at {path}. Run `scopeflat flatten` first.")
    return FlattenMap.from_dict(read_json(path))


__all__ = [
    "CONTROL_DIR_NAME",
    "FLATTEN_MAP_RELPATH",
    "MANIFEST_CACHE_RELPATH",
    "SNAPSHOT_RELPATH",
    "control_dir",
    "dump_json",
    "flatten_map_path",
    "load_flatten_map",
    "load_snapshot",
    "manifest_cache_path",
    "read_json",
    "snapshot_path",
    "write_flatten_map",
    "write_json_atomic",
    "write_snapshot",
]
