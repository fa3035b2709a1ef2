"""Path exclusion, ownership and kind classification."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from .logging import get_logger
from .models import MANIFEST_FILENAME, REPO, FileKind, Owner, PackageOwner, RepoFile
from .store import CONTROL_DIR_NAME

_LOGGER = get_logger("classifier")

RESERVED_COMPONENTS: FrozenSet[str] = frozenset(
    {
        ".git",
        ".build",
        ".swiftpm",
        "DerivedData",
        "XCBuildData",
        "Pods",
        "Carthage",
        ".DS_Store",
        ".github",
        CONTROL_DIR_NAME,
    }
)

PROJECT_BUNDLE_SUFFIX = ".xcodeproj"
PROJECT_FILE_NAME = "project.pbxproj"

DEFAULT_SOURCE_SUFFIXES: FrozenSet[str] = frozenset({".swift"})

_TEST_DIRECTORIES = {"Tests", "tests", "Test", "test"}
_TEST_SUFFIXES = ("Tests", "Test")
_RESOURCE_DIRECTORIES = {"Resources"}
_RESOURCE_BUNDLE_SUFFIXES = (".xcassets", ".lproj")
_RESOURCE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".svg",
    ".pdf",
    ".ttf",
    ".otf",
    ".strings",
    ".stringsdict",
    ".xcstrings",
    ".json",
    ".plist",
    ".storyboard",
    ".xib",
}
_NON_SOURCE_FILENAMES = {MANIFEST_FILENAME}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .scopeflat.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False

        if self.anchored or self.has_slash:
            if self.directory_only and not is_dir:
                return rel_path.startswith(f"{self.pattern}/")
            if fnmatchcase(rel_path, self.pattern):
                return True
            return rel_path.startswith(f"{self.pattern}/")

        parts = rel_path.split("/")
        if self.directory_only:
            # A directory pattern also hides every file beneath that directory.
            candidates = parts if is_dir else parts[:-1]
        else:
            candidates = parts
        return any(fnmatchcase(part, self.pattern) for part in candidates)


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def parse_ignore_lines(lines: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def load_ignore_rules(root: Path, extra_patterns: Sequence[str] = ()) -> List[IgnoreRule]:
    """Return rules from the root .gitignore followed by configured exclusions."""
    gitignore = root / ".gitignore"
    rules: List[IgnoreRule] = []
    if gitignore.is_file():
        try:
            rules.extend(parse_ignore_lines(gitignore.read_text(encoding="utf-8").splitlines()))
        except (OSError, UnicodeDecodeError) as exc:
            _LOGGER.warning("Could not read %s: %s", gitignore, exc)
    rules.extend(parse_ignore_lines(extra_patterns))
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def has_reserved_component(rel_path: str) -> bool:
    return any(part in RESERVED_COMPONENTS for part in rel_path.split("/"))


def owning_package_root(rel_path: str, package_roots: Mapping[str, str]) -> Optional[str]:
    """Return the deepest package root containing ``rel_path``.

    A manifest at the repository root claims no files: everything outside a
    nested package stays repo-owned.
    """
    best: Optional[str] = None
    for root in package_roots:
        if not root or not rel_path.startswith(f"{root}/"):
            continue
        if best is None or len(root) > len(best):
            best = root
    return best


def owner_for(rel_path: str, package_roots: Mapping[str, str]) -> Owner:
    root = owning_package_root(rel_path, package_roots)
    if root is None:
        return REPO
    return PackageOwner(package_roots[root])


def classify_kind(rel_path: str, source_suffixes: FrozenSet[str] = DEFAULT_SOURCE_SUFFIXES) -> FileKind:
    parts = rel_path.split("/")
    name = parts[-1]
    directories = parts[:-1]
    suffix = posixpath.splitext(name)[1].lower()

    if suffix in source_suffixes and name not in _NON_SOURCE_FILENAMES:
        stem = name[: -len(suffix)]
        in_test_dir = any(
            part in _TEST_DIRECTORIES or part.endswith(_TEST_SUFFIXES) for part in directories
        )
        if in_test_dir or stem.endswith(_TEST_SUFFIXES):
            return FileKind.TEST
        return FileKind.SOURCE

    if any(
        part in _RESOURCE_DIRECTORIES or part.endswith(_RESOURCE_BUNDLE_SUFFIXES)
        for part in directories
    ):
        return FileKind.RESOURCE
    if suffix in _RESOURCE_EXTENSIONS:
        return FileKind.RESOURCE
    return FileKind.OTHER


@dataclass
class PathClassifier:
    """Decides exclusion, ownership and kind for repository-relative paths."""

    package_roots: Dict[str, str] = field(default_factory=dict)
    rules: Sequence[IgnoreRule] = ()
    source_suffixes: FrozenSet[str] = DEFAULT_SOURCE_SUFFIXES

    def add_package(self, root_path: str, name: str) -> None:
        parent = owning_package_root(root_path, self.package_roots) if root_path else None
        if parent is not None:
            _LOGGER.debug("Package %s at %s is nested inside %r", name, root_path, parent)
        self.package_roots[root_path] = name

    def is_excluded(self, rel_path: str, is_dir: bool = False) -> bool:
        if has_reserved_component(rel_path):
            return True
        if self._is_package_build_output(rel_path, is_dir):
            return True
        return should_ignore(rel_path, is_dir, self.rules)

    def classify(self, rel_path: str) -> Optional[RepoFile]:
        """Return the classified file, or None when the path is excluded."""
        if self.is_excluded(rel_path):
            return None
        return RepoFile(
            path=rel_path,
            owner=owner_for(rel_path, self.package_roots),
            kind=classify_kind(rel_path, self.source_suffixes),
        )

    def _is_package_build_output(self, rel_path: str, is_dir: bool) -> bool:
        root = owning_package_root(rel_path, self.package_roots)
        if root is None:
            return False
        name = self.package_roots[root]
        remainder = rel_path[len(root) + 1 :]
        parts = remainder.split("/")
        directories = parts if is_dir else parts[:-1]
        return any(part in ("build", f"{name}.build") for part in directories)


def is_project_file(rel_path: str) -> bool:
    parts = rel_path.split("/")
    return (
        len(parts) >= 2
        and parts[-1] == PROJECT_FILE_NAME
        and parts[-2].endswith(PROJECT_BUNDLE_SUFFIX)
    )


__all__ = [
    "DEFAULT_SOURCE_SUFFIXES",
    "IgnoreRule",
    "PathClassifier",
    "PROJECT_BUNDLE_SUFFIX",
    "PROJECT_FILE_NAME",
    "RESERVED_COMPONENTS",
    "build_ignore_rule",
    "classify_kind",
    "has_reserved_component",
    "is_project_file",
    "load_ignore_rules",
    "owner_for",
    "owning_package_root",
    "parse_ignore_lines",
    "should_ignore",
]
