"""Per-target import closure over repository files and package modules."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Sequence, Set

from .imports import ImportGraph
from .logging import get_logger
from .manifests import ModuleIndex
from .models import FileKind, RepoFile, TargetSnapshot, TargetSpec, is_under


def local_module_prefixes(module: str, entry_folder: str) -> List[str]:
    """Folder prefixes that may hold a repo-local module; best effort only."""
    candidates = [module, f"Sources/{module}"]
    if entry_folder:
        candidates.append(f"{entry_folder}/{module}")
    seen: List[str] = []
    for candidate in candidates:
        if candidate not in seen:
            seen.append(candidate)
    return seen


@dataclass
class ClosureResult:
    snapshot: TargetSnapshot
    warnings: List[str]


class ClosureResolver:
    """Computes the files reachable from a target's entry folder."""

    def __init__(
        self,
        files: Sequence[RepoFile],
        imports: ImportGraph,
        modules: ModuleIndex,
    ) -> None:
        self.imports = imports
        self.modules = modules
        self.logger = get_logger("closure")
        self._sources = [
            file
            for file in sorted(files)
            if file.is_repo_owned and file.kind is FileKind.SOURCE
        ]
        self._resources = [
            file for file in sorted(files) if file.is_repo_owned and file.kind is FileKind.RESOURCE
        ]

    def resolve(self, target: TargetSpec) -> ClosureResult:
        entry = target.entry_folder
        seeds = [file for file in self._sources if is_under(file.path, entry)]
        included: Set[RepoFile] = {
            file for file in self._resources if is_under(file.path, entry)
        }
        worklist: Deque[RepoFile] = deque(seeds)
        visited: Set[str] = set()
        expanded: Set[str] = set()
        unresolved: Set[str] = set()

        while worklist:
            file = worklist.popleft()
            if file.path in visited:
                continue
            visited.add(file.path)
            included.add(file)

            for module in sorted(self.imports.modules_for(file.path)):
                if module in expanded:
                    continue
                expanded.add(module)

                members = self.modules.get(module)
                if members is not None:
                    # Package modules are opaque: their files are not walked for imports.
                    included.update(members)
                    continue

                prefixes = local_module_prefixes(module, entry)
                matches = [
                    candidate
                    for candidate in self._sources
                    if any(is_under(candidate.path, prefix) for prefix in prefixes)
                ]
                if not matches:
                    unresolved.add(module)
                    continue
                worklist.extend(candidate for candidate in matches if candidate.path not in visited)

        warnings: List[str] = []
        if not seeds:
            warnings.append(f"Target {target.name}: no source files under {entry or '.'}")
        if unresolved:
            warnings.append(
                f"Target {target.name}: unresolved modules {', '.join(sorted(unresolved))}"
            )
        for warning in warnings:
            self.logger.debug(warning)

        snapshot = TargetSnapshot(
            name=target.name,
            entry_folder=entry,
            files=tuple(included),
            unresolved_modules=tuple(unresolved),
        )
        self.logger.debug("Target %s closure has %d files", target.name, len(snapshot.files))
        return ClosureResult(snapshot=snapshot, warnings=warnings)


__all__ = ["ClosureResolver", "ClosureResult", "local_module_prefixes"]
