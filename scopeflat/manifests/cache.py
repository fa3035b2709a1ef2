"""Persistent cache for package description output."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..logging import get_logger
from ..store import write_json_atomic

_CACHE_VERSION = 1


def cache_key(package_name: str, fingerprint: str) -> str:
    return f"{package_name}@{fingerprint}"


class ManifestCache:
    """Stores raw manifest descriptions keyed by package name and manifest hash."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._dirty = False
        self.hits = 0
        self.misses = 0
        self.logger = get_logger("manifests.cache")
        if self._path is not None:
            self._load(self._path)

    def get(self, package_name: str, *, fingerprint: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(cache_key(package_name, fingerprint))
        description = entry.get("description") if entry else None
        if not isinstance(description, dict):
            self.misses += 1
            return None
        self.hits += 1
        return description

    def store(self, package_name: str, *, fingerprint: str, description: Dict[str, Any]) -> None:
        self._entries[cache_key(package_name, fingerprint)] = {
            "package": package_name,
            "fingerprint": fingerprint,
            "description": description,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def prune(self, keys_to_keep: Iterable[str]) -> None:
        keep = set(keys_to_keep)
        removed = [key for key in self._entries if key not in keep]
        if removed:
            for key in removed:
                self._entries.pop(key, None)
            self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _CACHE_VERSION,
            "entries": self._entries,
        }
        write_json_atomic(self._path, payload)
        self._dirty = False

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Ignoring unreadable manifest cache %s: %s", path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid_entries: Dict[str, Dict[str, object]] = {}
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            if "fingerprint" not in raw or not isinstance(raw.get("description"), dict):
                continue
            valid_entries[key] = raw
        self._entries = valid_entries
        self._dirty = False


__all__ = ["ManifestCache", "cache_key"]
