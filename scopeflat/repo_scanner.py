"""Repository scanning and package discovery."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Sequence, Set, Tuple

from .classifier import (
    DEFAULT_SOURCE_SUFFIXES,
    PathClassifier,
    is_project_file,
    load_ignore_rules,
)
from .logging import get_logger
from .models import MANIFEST_FILENAME, PackageManifest, RepoFile


@dataclass
class ScanResult:
    """Everything learned from a single walk of the repository."""

    root: Path
    files: List[RepoFile]
    packages: List[PackageManifest]
    project_files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    classifier: PathClassifier | None = None


class RepoScanner:
    """Walks the repository once to classify files and locate manifests."""

    def __init__(
        self,
        *,
        exclude_paths: Sequence[str] = (),
        source_suffixes: FrozenSet[str] = DEFAULT_SOURCE_SUFFIXES,
    ) -> None:
        self.exclude_paths = list(exclude_paths)
        self.source_suffixes = frozenset(source_suffixes)
        self.logger = get_logger("scanner")

    def scan(self, root: str | Path) -> ScanResult:
        """Return the classified inventory of the repository at ``root``."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")
        # Surface an unreadable root as a hard failure before walking.
        os.listdir(root_path)

        classifier = PathClassifier(
            rules=load_ignore_rules(root_path, self.exclude_paths),
            source_suffixes=self.source_suffixes,
        )
        warnings: List[str] = []
        candidates: List[str] = []
        project_files: List[str] = []
        seen_dirs: Set[Tuple[int, int]] = set()

        def _on_error(exc: OSError) -> None:
            message = f"Skipped unreadable path {exc.filename}: {exc.strerror or exc}"
            self.logger.warning(message)
            warnings.append(message)

        for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error, followlinks=False):
            current_dir = Path(dirpath)
            try:
                dir_stat = current_dir.stat()
            except OSError as exc:
                _on_error(exc)
                dirnames[:] = []
                continue
            identity = (dir_stat.st_dev, dir_stat.st_ino)
            if identity in seen_dirs:
                dirnames[:] = []
                continue
            seen_dirs.add(identity)

            rel_dir = current_dir.relative_to(root_path).as_posix() if current_dir != root_path else ""

            # Register the package before pruning so its build folders are excluded.
            if MANIFEST_FILENAME in filenames and not classifier.is_excluded(
                _join(rel_dir, MANIFEST_FILENAME)
            ):
                name = current_dir.name or root_path.name
                classifier.add_package(rel_dir, name)
                self.logger.debug("Discovered package %s at %s", name, rel_dir or ".")

            dirnames[:] = sorted(
                name
                for name in dirnames
                if not classifier.is_excluded(_join(rel_dir, name), is_dir=True)
            )

            for filename in sorted(filenames):
                rel_path = _join(rel_dir, filename)
                if classifier.is_excluded(rel_path):
                    continue
                try:
                    mode = (current_dir / filename).lstat().st_mode
                except OSError as exc:
                    _on_error(exc)
                    continue
                if not stat.S_ISREG(mode):
                    continue
                if not os.access(current_dir / filename, os.R_OK):
                    message = f"Skipped unreadable file {rel_path}"
                    self.logger.warning(message)
                    warnings.append(message)
                    continue
                candidates.append(rel_path)
                if is_project_file(rel_path):
                    project_files.append(rel_path)

        files = sorted(
            file for file in (classifier.classify(path) for path in candidates) if file is not None
        )
        packages = sorted(
            (PackageManifest(name=name, root_path=root) for root, name in classifier.package_roots.items()),
            key=lambda package: (package.name, package.root_path),
        )
        self.logger.debug(
            "Scanned %d files, %d packages, %d project files",
            len(files),
            len(packages),
            len(project_files),
        )
        return ScanResult(
            root=root_path,
            files=files,
            packages=packages,
            project_files=sorted(project_files),
            warnings=warnings,
            classifier=classifier,
        )


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


__all__ = ["RepoScanner", "ScanResult"]
