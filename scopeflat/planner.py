"""Deterministic flatten planning and plan execution."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .logging import get_logger
from .models import (
    FileKind,
    FlattenedFile,
    FlattenMap,
    FlattenTarget,
    Owner,
    PackageOwner,
    RepoFile,
    RepoOwner,
    SnapshotModel,
    TargetSnapshot,
)
from .prompts import DecisionProvider

_KIND_BUCKETS: Dict[FileKind, str] = {
    FileKind.SOURCE: "Sources",
    FileKind.RESOURCE: "Resources",
}


def owner_bucket(owner: Owner) -> str:
    if isinstance(owner, RepoOwner):
        return "Repo"
    if isinstance(owner, PackageOwner):
        return f"Packages/{owner.name}"
    raise TypeError(f"Unknown owner variant: {owner!r}")


def flattened_path(target_name: str, file: RepoFile) -> str:
    """Return ``<target>/<kind bucket>/<owner bucket>/<original path>``."""
    bucket = _KIND_BUCKETS.get(file.kind)
    if bucket is None:
        raise ValueError(f"{file.kind.value} files are not flattened: {file.path}")
    return f"{target_name}/{bucket}/{owner_bucket(file.owner)}/{file.path}"


def participates(file: RepoFile) -> bool:
    return file.kind in _KIND_BUCKETS


class FlattenPlanner:
    """Maps each target closure to destination-relative paths."""

    def plan_target(self, target: TargetSnapshot) -> FlattenTarget:
        files: List[FlattenedFile] = []
        seen: Dict[str, str] = {}
        for file in target.files:
            if not participates(file):
                continue
            destination = flattened_path(target.name, file)
            if destination in seen:
                raise AssertionError(
                    f"Flattened path collision in {target.name}: {seen[destination]} and {file.path}"
                )
            seen[destination] = file.path
            files.append(
                FlattenedFile(
                    original_path=file.path,
                    flattened_path=destination,
                    kind=file.kind,
                    owner=file.owner,
                )
            )
        files.sort(key=lambda item: item.flattened_path)
        return FlattenTarget(name=target.name, files=tuple(files))

    def plan(self, snapshot: SnapshotModel, destination: Optional[str], *, created_at: str) -> FlattenMap:
        targets = sorted(snapshot.targets, key=lambda target: target.name)
        return FlattenMap(
            created_at=created_at,
            destination=destination,
            targets=tuple(self.plan_target(target) for target in targets),
        )


@dataclass
class CopyReport:
    """Outcome of applying a flatten map to a destination."""

    copied: List[str] = field(default_factory=list)
    overwritten: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    missing_sources: List[str] = field(default_factory=list)
    cleaned_roots: List[str] = field(default_factory=list)
    aborted: bool = False


class FlattenCopier:
    """Copies planned files from the repository into the destination tree."""

    def __init__(self, decisions: DecisionProvider) -> None:
        self.decisions = decisions
        self.logger = get_logger("flatten")

    def apply(
        self,
        flatten_map: FlattenMap,
        repo_root: Path,
        destination: Path,
        *,
        overwrite: bool = False,
        clean: bool = False,
        force: bool = False,
    ) -> CopyReport:
        report = CopyReport()
        target_roots = [destination / target.name for target in flatten_map.targets]

        if clean:
            existing = [root for root in target_roots if root.exists()]
            if existing and not force and not self.decisions.confirm(
                f"Remove {len(existing)} existing target folder(s) under {destination} before copying?"
            ):
                report.aborted = True
                return report
            for root in existing:
                self.logger.debug("Cleaning %s", root)
                shutil.rmtree(root)
                report.cleaned_roots.append(root.name)

        planned = list(_iter_files(flatten_map))
        conflicts = [item for item in planned if (destination / item.flattened_path).exists()]
        if overwrite and conflicts and not force and not self.decisions.confirm(
            f"Overwrite {len(conflicts)} existing file(s) under {destination}?"
        ):
            report.aborted = True
            return report

        for item in planned:
            source = repo_root / item.original_path
            target = destination / item.flattened_path
            if not source.is_file():
                self.logger.warning("Planned file missing from repository: %s", item.original_path)
                report.missing_sources.append(item.original_path)
                continue
            if target.exists():
                if not overwrite:
                    report.skipped.append(item.flattened_path)
                    continue
                report.overwritten.append(item.flattened_path)
            else:
                report.copied.append(item.flattened_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            self.logger.debug("Copied %s -> %s", item.original_path, item.flattened_path)
        return report


def _iter_files(flatten_map: FlattenMap) -> Iterable[FlattenedFile]:
    for target in flatten_map.targets:
        yield from target.files


__all__ = [
    "CopyReport",
    "FlattenCopier",
    "FlattenPlanner",
    "flattened_path",
    "owner_bucket",
    "participates",
]
