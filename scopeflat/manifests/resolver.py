"""Map module and product names to the repository files that implement them."""

from __future__ import annotations

import bisect
import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Set

from ..errors import ParseError
from ..logging import get_logger
from ..models import ModuleFileSet, PackageManifest, RepoFile, normalize_path
from .cache import ManifestCache, cache_key
from .describe import ManifestDescriber

EXPORTED_TARGET_TYPES = frozenset({"library", "regular"})


@dataclass
class ModuleIndex:
    """Read-only view of module/product membership for one snapshot run."""

    modules: ModuleFileSet = field(default_factory=dict)
    providers: Mapping[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def get(self, name: str) -> Optional[FrozenSet[RepoFile]]:
        return self.modules.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.modules


def hash_manifest(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ManifestResolver:
    """Resolves package descriptions into a module-to-files index."""

    def __init__(self, describer: ManifestDescriber, cache: ManifestCache | None = None) -> None:
        self.describer = describer
        self.cache = cache or ManifestCache(None)
        self.logger = get_logger("manifests")

    def resolve(
        self,
        repo_root: Path,
        packages: Sequence[PackageManifest],
        files: Sequence[RepoFile],
    ) -> ModuleIndex:
        inventory = _Inventory(files)
        modules: Dict[str, FrozenSet[RepoFile]] = {}
        providers: Dict[str, str] = {}
        warnings: List[str] = []
        used_keys: List[str] = []

        for package in sorted(packages, key=lambda item: (item.name, item.root_path)):
            description = self._describe(repo_root, package, used_keys)
            local = self._package_modules(repo_root, package, description, inventory)
            for name, members in local.items():
                if name in modules:
                    message = (
                        f"Module {name!r} from package {package.name} ({package.root_path or '.'}) "
                        f"ignored; already provided by package {providers[name]}"
                    )
                    self.logger.warning(message)
                    warnings.append(message)
                    continue
                modules[name] = members
                providers[name] = package.name

        self.cache.prune(used_keys)
        self.logger.debug(
            "Resolved %d modules from %d packages (cache hits=%d, misses=%d)",
            len(modules),
            len(packages),
            self.cache.hits,
            self.cache.misses,
        )
        return ModuleIndex(modules=modules, providers=providers, warnings=warnings)

    def _describe(self, repo_root: Path, package: PackageManifest, used_keys: List[str]) -> Dict[str, Any]:
        fingerprint = hash_manifest(repo_root / package.manifest_path)
        used_keys.append(cache_key(package.name, fingerprint))
        cached = self.cache.get(package.name, fingerprint=fingerprint)
        if cached is not None:
            self.logger.debug("Manifest cache hit for %s", package.name)
            return cached
        description = self.describer.describe(repo_root / package.root_path)
        self.cache.store(package.name, fingerprint=fingerprint, description=description)
        return description

    def _package_modules(
        self,
        repo_root: Path,
        package: PackageManifest,
        description: Mapping[str, Any],
        inventory: "_Inventory",
    ) -> Dict[str, FrozenSet[RepoFile]]:
        targets = description.get("targets", [])
        products = description.get("products", [])
        if not isinstance(targets, list) or not isinstance(products, list):
            raise ParseError(f"Description of {package.name} must list targets and products")

        target_files: Dict[str, FrozenSet[RepoFile]] = {}
        for raw in targets:
            if not isinstance(raw, dict):
                raise ParseError(f"Malformed target entry in {package.name}: {raw!r}")
            name = raw.get("name")
            if not isinstance(name, str) or not name:
                raise ParseError(f"Target without a name in {package.name}")
            if raw.get("type") not in EXPORTED_TARGET_TYPES:
                continue
            target_files[name] = self._target_members(repo_root, package, raw, inventory)

        local: Dict[str, FrozenSet[RepoFile]] = {}
        for raw in products:
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                raise ParseError(f"Malformed product entry in {package.name}: {raw!r}")
            member_targets = raw.get("targets", [])
            if not isinstance(member_targets, list):
                raise ParseError(f"Product {raw['name']} in {package.name} must list targets")
            exported = [target for target in member_targets if target in target_files]
            if not exported:
                continue
            union: Set[RepoFile] = set()
            for target in exported:
                union.update(target_files[target])
            local.setdefault(raw["name"], frozenset(union))

        # Library targets are importable by module name even when no product names them.
        for name, members in target_files.items():
            local.setdefault(name, members)
        return local

    def _target_members(
        self,
        repo_root: Path,
        package: PackageManifest,
        target: Mapping[str, Any],
        inventory: "_Inventory",
    ) -> FrozenSet[RepoFile]:
        base = _resolve_entry(repo_root, package.root_path, target.get("path") or "")
        if base is None:
            return frozenset()
        members: Set[RepoFile] = set()
        entries: List[object] = list(target.get("sources") or [])
        entries.extend(target.get("resources") or [])
        for entry in entries:
            if isinstance(entry, dict):
                entry = entry.get("path")
            if not isinstance(entry, str) or not entry:
                continue
            resolved = _resolve_entry(repo_root, base, entry)
            if resolved is None:
                continue
            members.update(inventory.expand(resolved))
        return frozenset(members)


class _Inventory:
    """Path lookup over scanned files, with directory expansion."""

    def __init__(self, files: Sequence[RepoFile]) -> None:
        self._by_path = {file.path: file for file in files}
        self._paths = sorted(self._by_path)

    def expand(self, path: str) -> List[RepoFile]:
        exact = self._by_path.get(path)
        if exact is not None:
            return [exact]
        prefix = f"{path}/" if path else ""
        start = bisect.bisect_left(self._paths, prefix)
        matches: List[RepoFile] = []
        for candidate in self._paths[start:]:
            if not candidate.startswith(prefix):
                break
            matches.append(self._by_path[candidate])
        return matches


def _resolve_entry(repo_root: Path, base: str, entry: str) -> Optional[str]:
    """Return ``entry`` as a repo-relative path, or None when it lies outside the repo."""
    if os.path.isabs(entry):
        for root in (repo_root, repo_root.resolve()):
            for candidate in (Path(entry), Path(os.path.realpath(entry))):
                try:
                    return normalize_path(candidate.relative_to(root).as_posix())
                except ValueError:
                    continue
        return None
    joined = normalize_path(f"{base}/{entry}" if base else entry)
    if joined == ".." or joined.startswith("../"):
        return None
    return joined


__all__ = ["EXPORTED_TARGET_TYPES", "ManifestResolver", "ModuleIndex", "hash_manifest"]
