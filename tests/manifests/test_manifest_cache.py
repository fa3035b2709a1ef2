"""Tests for the manifest description cache."""

from __future__ import annotations

import json
from pathlib import Path

from scopeflat.manifests import ManifestCache


def test_manifest_cache_round_trip(tmp_path: Path) -> None:
    cache_path = tmp_path / "manifests.json"
    cache = ManifestCache(cache_path)
    description = {"targets": [], "products": [{"name": "Core", "targets": ["Core"]}]}
    cache.store("Core", fingerprint="fp-abc", description=description)
    cache.persist()

    loaded = ManifestCache(cache_path)

    assert loaded.get("Core", fingerprint="fp-abc") == description
    assert loaded.hits == 1


def test_manifest_cache_invalidates_on_fingerprint_change(tmp_path: Path) -> None:
    cache = ManifestCache(tmp_path / "manifests.json")
    cache.store("Core", fingerprint="fp", description={"targets": []})

    assert cache.get("Core", fingerprint="fp") is not None
    assert cache.get("Core", fingerprint="fp-changed") is None
    assert cache.get("Other", fingerprint="fp") is None
    assert (cache.hits, cache.misses) == (1, 2)


def test_manifest_cache_prune_removes_unused(tmp_path: Path) -> None:
    cache = ManifestCache(tmp_path / "manifests.json")
    cache.store("A", fingerprint="fp", description={})
    cache.store("B", fingerprint="fp", description={})

    cache.prune(["A@fp"])
    cache.persist()

    reloaded = ManifestCache(tmp_path / "manifests.json")
    assert reloaded.get("A", fingerprint="fp") == {}
    assert reloaded.get("B", fingerprint="fp") is None
    assert len(reloaded) == 1


def test_manifest_cache_ignores_other_versions(tmp_path: Path) -> None:
    cache_path = tmp_path / "manifests.json"
    cache_path.write_text(
        json.dumps({"version": 0, "entries": {"A@fp": {"fingerprint": "fp", "description": {}}}}),
        encoding="utf-8",
    )

    assert len(ManifestCache(cache_path)) == 0


def test_manifest_cache_tolerates_corrupt_file(tmp_path: Path) -> None:
    cache_path = tmp_path / "manifests.json"
    cache_path.write_text("{oops", encoding="utf-8")

    cache = ManifestCache(cache_path)

    assert len(cache) == 0
    assert cache.get("A", fingerprint="fp") is None
