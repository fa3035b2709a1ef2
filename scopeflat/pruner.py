"""Scope-safe removal of files that are no longer part of a flatten map."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Set, Tuple

from .logging import get_logger
from .models import FlattenMap, is_under, normalize_path
from .prompts import DecisionProvider


@dataclass
class PruneReport:
    """Outcome of a prune run; paths are destination-relative."""

    orphans: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    removed_directories: List[str] = field(default_factory=list)
    deleted: bool = False
    dry_run: bool = False
    aborted: bool = False


def expected_files(flatten_map: FlattenMap) -> Set[str]:
    return {
        normalize_path(file.flattened_path) for target in flatten_map.targets for file in target.files
    }


def prune_roots(flatten_map: FlattenMap) -> List[str]:
    return sorted({normalize_path(target.name) for target in flatten_map.targets} - {""})


def _in_scope(rel_path: str, roots: Sequence[str]) -> bool:
    return any(is_under(rel_path, root) for root in roots)


def _may_contain_root(rel_dir: str, roots: Sequence[str]) -> bool:
    return any(is_under(root, rel_dir) or is_under(rel_dir, root) for root in roots)


class Pruner:
    """Deletes orphaned files beneath each target root of a destination."""

    def __init__(self, decisions: DecisionProvider) -> None:
        self.decisions = decisions
        self.logger = get_logger("prune")

    def find_orphans(self, flatten_map: FlattenMap, destination: Path) -> Tuple[List[str], List[str]]:
        """Return ``(orphans, missing)`` for the destination tree."""
        expected = expected_files(flatten_map)
        roots = prune_roots(flatten_map)
        present: Set[str] = set()
        orphans: List[str] = []

        if destination.is_dir():
            for dirpath, dirnames, filenames in os.walk(destination, followlinks=False):
                current = Path(dirpath)
                rel_dir = current.relative_to(destination).as_posix() if current != destination else ""
                dirnames[:] = sorted(
                    name
                    for name in dirnames
                    if not name.startswith(".") and _may_contain_root(_join(rel_dir, name), roots)
                )
                for filename in sorted(filenames):
                    if filename.startswith("."):
                        continue
                    rel_path = normalize_path(_join(rel_dir, filename))
                    if not _in_scope(rel_path, roots):
                        continue
                    try:
                        mode = (current / filename).lstat().st_mode
                    except FileNotFoundError:
                        continue
                    if not stat.S_ISREG(mode):
                        continue
                    present.add(rel_path)
                    if rel_path not in expected:
                        orphans.append(rel_path)

        missing = sorted(expected - present)
        return sorted(orphans), missing

    def prune(
        self,
        flatten_map: FlattenMap,
        destination: Path,
        *,
        dry_run: bool = False,
        force: bool = False,
    ) -> PruneReport:
        orphans, missing = self.find_orphans(flatten_map, destination)
        report = PruneReport(orphans=orphans, missing=missing, dry_run=dry_run)
        if not orphans or dry_run:
            return report

        if not force and not self.decisions.confirm(
            f"This will REMOVE {len(orphans)} file(s) not defined by the flatten plan. Continue?"
        ):
            report.aborted = True
            return report

        for rel_path in orphans:
            self.logger.debug("Removing %s", rel_path)
            (destination / rel_path).unlink()
        report.deleted = True
        report.removed_directories = self._remove_empty_directories(destination, prune_roots(flatten_map))
        return report

    def _remove_empty_directories(self, destination: Path, roots: Sequence[str]) -> List[str]:
        removed: List[str] = []
        for dirpath, _dirnames, _filenames in os.walk(destination, topdown=False, followlinks=False):
            current = Path(dirpath)
            if current == destination:
                continue
            rel_dir = current.relative_to(destination).as_posix()
            if not _in_scope(rel_dir, roots) or current.is_symlink():
                continue
            try:
                if any(current.iterdir()):
                    continue
                current.rmdir()
            except OSError as exc:
                self.logger.debug("Could not remove %s: %s", current, exc)
                continue
            removed.append(rel_dir)
        return removed


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


__all__ = ["PruneReport", "Pruner", "expected_files", "prune_roots"]
