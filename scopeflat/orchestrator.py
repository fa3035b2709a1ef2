"""Pipeline orchestration for snapshot, flatten, prune and sync runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

from .closure import ClosureResolver
from .config import ScopeFlatConfig, load_config, merge_targets
from .errors import ValidationError
from .git import Git
from .imports import ImportIndexer
from .logging import get_logger
from .manifests import ManifestCache, ManifestDescriber, ManifestResolver
from .models import FileKind, FlattenMap, SnapshotModel, TargetSpec
from .planner import CopyReport, FlattenCopier, FlattenPlanner
from .project_file import ProjectFileResolver
from .prompts import ConsolePrompt, DecisionProvider
from .pruner import Pruner, PruneReport
from .repo_scanner import RepoScanner, ScanResult
from .store import (
    CONTROL_DIR_NAME,
    load_flatten_map,
    load_snapshot,
    manifest_cache_path,
    write_flatten_map,
    write_snapshot,
)


@dataclass
class SnapshotOutcome:
    """Result of a snapshot run."""

    snapshot: SnapshotModel
    path: Path


@dataclass
class FlattenOutcome:
    """Result of a flatten run; ``copy`` is None for plan-only runs."""

    flatten_map: FlattenMap
    path: Path
    copy: Optional[CopyReport] = None


@dataclass
class SyncOutcome:
    flatten: FlattenOutcome
    prune: Optional[PruneReport] = None
    warnings: List[str] = field(default_factory=list)


class Orchestrator:
    """Coordinates the scopeflat stages against one repository."""

    def __init__(
        self,
        git: Git | None = None,
        describer: ManifestDescriber | None = None,
        decisions: DecisionProvider | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.git = git or Git()
        self._describer = describer
        self.decisions = decisions or ConsolePrompt()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Stages

    def run_snapshot(self, path: str | Path = ".", targets: Sequence[TargetSpec] = ()) -> SnapshotOutcome:
        """Scan the repository, resolve target closures and persist snapshot.json."""
        repo_root = self._repo_root(path)
        self.logger.info("Starting snapshot run for %s", repo_root)
        self.git.ensure_clean(repo_root, ignored_prefixes=(CONTROL_DIR_NAME,))
        commit = self.git.commit_hash(repo_root)

        config = load_config(repo_root)
        specs = merge_targets(config.targets, targets)
        self._validate_targets(repo_root, specs)
        if not specs:
            self.logger.warning("No targets configured; snapshot will only record the inventory")

        scan = RepoScanner(
            exclude_paths=config.exclude_paths,
            source_suffixes=frozenset(config.source_suffixes),
        ).scan(repo_root)
        warnings: List[str] = list(scan.warnings)

        cache = ManifestCache(manifest_cache_path(repo_root))
        resolver = ManifestResolver(self._resolve_describer(config), cache)
        modules = resolver.resolve(repo_root, scan.packages, scan.files)
        warnings.extend(modules.warnings)

        warnings.extend(self._project_membership(repo_root, scan))

        imports = ImportIndexer().index(repo_root, scan.files)
        warnings.extend(imports.warnings)

        closure = ClosureResolver(scan.files, imports, modules)
        snapshots = []
        for spec in specs:
            result = closure.resolve(spec)
            snapshots.append(result.snapshot)
            warnings.extend(result.warnings)

        snapshot = SnapshotModel(
            timestamp=self._timestamp(),
            commit_hash=commit,
            repo_root=str(repo_root),
            packages=list(scan.packages),
            targets=snapshots,
            files=list(scan.files),
            warnings=sorted(set(warnings)),
        )
        cache.persist()
        snapshot_file = write_snapshot(repo_root, snapshot)
        self.logger.debug("Snapshot written to %s", snapshot_file)
        return SnapshotOutcome(snapshot=snapshot, path=snapshot_file)

    def run_flatten(
        self,
        path: str | Path = ".",
        destination: str | Path | None = None,
        *,
        overwrite: bool = False,
        clean: bool = False,
        force: bool = False,
    ) -> FlattenOutcome:
        """Plan the flatten map from the last snapshot and optionally copy files."""
        repo_root = self._repo_root(path)
        snapshot = load_snapshot(repo_root)
        config = load_config(repo_root)

        raw_destination = destination if destination is not None else config.destination
        dest_path = self._resolve_destination(repo_root, raw_destination) if raw_destination else None

        flatten_map = FlattenPlanner().plan(
            snapshot,
            str(dest_path) if dest_path is not None else None,
            created_at=self._timestamp(),
        )
        map_file = write_flatten_map(repo_root, flatten_map)
        self.logger.debug("Flatten map written to %s", map_file)

        outcome = FlattenOutcome(flatten_map=flatten_map, path=map_file)
        if dest_path is None:
            self.logger.info("No destination given; flatten map written as a plan only")
            return outcome

        outcome.copy = FlattenCopier(self.decisions).apply(
            flatten_map,
            repo_root,
            dest_path,
            overwrite=overwrite,
            clean=clean,
            force=force,
        )
        return outcome

    def run_prune(
        self,
        path: str | Path = ".",
        destination: str | Path | None = None,
        *,
        dry_run: bool = False,
        force: bool = False,
    ) -> PruneReport:
        """Remove destination files that the persisted flatten map no longer lists."""
        if not destination:
            raise ValidationError("prune requires --destination")
        repo_root = self._repo_root(path)
        flatten_map = load_flatten_map(repo_root)
        dest_path = self._resolve_destination(repo_root, destination)
        if flatten_map.destination is not None and Path(flatten_map.destination) != dest_path:
            raise ValidationError(
                f"Destination {dest_path} does not match the flatten map destination {flatten_map.destination}"
            )
        return Pruner(self.decisions).prune(flatten_map, dest_path, dry_run=dry_run, force=force)

    def run_sync(
        self,
        path: str | Path = ".",
        destination: str | Path | None = None,
        *,
        overwrite: bool = False,
        clean: bool = False,
        force: bool = False,
        dry_run: bool = False,
    ) -> SyncOutcome:
        """Flatten into ``destination`` and prune whatever the plan no longer covers."""
        if not destination:
            raise ValidationError("sync requires --destination")
        flatten = self.run_flatten(path, destination, overwrite=overwrite, clean=clean, force=force)
        outcome = SyncOutcome(flatten=flatten)
        if flatten.copy is not None and flatten.copy.aborted:
            outcome.warnings.append("Flatten aborted; prune skipped")
            return outcome
        outcome.prune = self.run_prune(path, destination, dry_run=dry_run, force=force)
        return outcome

    # ------------------------------------------------------------------
    # Internals

    def _repo_root(self, path: str | Path) -> Path:
        start = Path(path).expanduser().resolve()
        if not start.is_dir():
            raise ValidationError(f"Repository path is not a directory: {path}")
        return self.git.repo_root(start).resolve()

    def _resolve_describer(self, config: ScopeFlatConfig) -> ManifestDescriber:
        if self._describer is not None:
            return self._describer
        return ManifestDescriber(config.manifest.command, timeout=config.manifest.timeout)

    def _validate_targets(self, repo_root: Path, specs: Sequence[TargetSpec]) -> None:
        for spec in specs:
            if not spec.name.strip():
                raise ValidationError("Target name must not be empty")
            if "/" in spec.name or spec.name in {".", ".."}:
                raise ValidationError(f"Target name {spec.name!r} must be a single path component")
            if spec.entry_folder == ".." or spec.entry_folder.startswith("../"):
                raise ValidationError(f"Entry folder for {spec.name} escapes the repository: {spec.entry_folder}")
            folder = repo_root / spec.entry_folder
            if not folder.exists():
                raise ValidationError(f"Entry folder for {spec.name} does not exist: {spec.entry_folder}")
            if not folder.is_dir():
                raise ValidationError(f"Entry folder for {spec.name} is not a directory: {spec.entry_folder}")

    def _project_membership(self, repo_root: Path, scan: ScanResult) -> List[str]:
        if not scan.project_files:
            return []
        resolver = ProjectFileResolver()
        warnings: List[str] = []
        compiled: Set[str] = set()
        for project_file in scan.project_files:
            membership = resolver.resolve(repo_root, project_file)
            compiled.update(membership.files)
            warnings.extend(membership.warnings)
        if not compiled:
            return warnings
        for file in scan.files:
            if file.is_repo_owned and file.kind is FileKind.SOURCE and file.path not in compiled:
                warnings.append(f"{file.path} is not compiled by any project")
        return warnings

    def _resolve_destination(self, repo_root: Path, destination: str | Path) -> Path:
        dest_path = Path(destination).expanduser().resolve()
        if dest_path == repo_root or repo_root.is_relative_to(dest_path):
            raise ValidationError(f"Destination {dest_path} must not contain the repository root")
        return dest_path

    def _timestamp(self) -> str:
        return self._clock().isoformat().replace("+00:00", "Z")


__all__ = ["FlattenOutcome", "Orchestrator", "SnapshotOutcome", "SyncOutcome"]
