"""Core data models shared across scopeflat stages."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from .errors import ParseError

MANIFEST_FILENAME = "Package.swift"


def normalize_path(path: str) -> str:
    """Return the standardized POSIX form of a repository-relative path."""
    candidate = path.replace("\\", "/").strip()
    if not candidate or candidate == ".":
        return ""
    normalized = posixpath.normpath(candidate)
    if normalized == ".":
        return ""
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def is_under(path: str, folder: str) -> bool:
    """Return True when ``path`` equals ``folder`` or sits below it component-wise."""
    if not folder:
        return True
    return path == folder or path.startswith(f"{folder}/")


class FileKind(str, Enum):
    """Classification of a repository file."""

    SOURCE = "source"
    TEST = "test"
    RESOURCE = "resource"
    OTHER = "other"


@dataclass(frozen=True)
class RepoOwner:
    """File owned by the repository itself."""


@dataclass(frozen=True)
class PackageOwner:
    """File owned by a manifest-declared package."""

    name: str


Owner = Union[RepoOwner, PackageOwner]

REPO = RepoOwner()


def owner_to_dict(owner: Owner) -> Dict[str, str]:
    if isinstance(owner, RepoOwner):
        return {"type": "repo"}
    if isinstance(owner, PackageOwner):
        return {"type": "package", "name": owner.name}
    raise TypeError(f"Unknown owner variant: {owner!r}")


def owner_from_dict(payload: object) -> Owner:
    if not isinstance(payload, dict):
        raise ParseError(f"Owner must be an object, got {type(payload).__name__}")
    kind = payload.get("type")
    if kind == "repo":
        return REPO
    if kind == "package":
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise ParseError("Package owner requires a non-empty name")
        return PackageOwner(name)
    raise ParseError(f"Unknown owner type: {kind!r}")


@dataclass(frozen=True, order=True)
class RepoFile:
    """Classified repository file; identity is the standardized path."""

    path: str
    owner: Owner = field(compare=False)
    kind: FileKind = field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))

    @property
    def is_repo_owned(self) -> bool:
        return isinstance(self.owner, RepoOwner)

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "owner": owner_to_dict(self.owner), "kind": self.kind.value}

    @classmethod
    def from_dict(cls, payload: object) -> "RepoFile":
        data = _as_mapping(payload, "file")
        return cls(
            path=_require_str(data, "path"),
            owner=owner_from_dict(data.get("owner")),
            kind=_parse_kind(data.get("kind")),
        )


@dataclass(frozen=True)
class PackageManifest:
    """A discovered package manifest and the directory it governs."""

    name: str
    root_path: str

    @property
    def manifest_path(self) -> str:
        return f"{self.root_path}/{MANIFEST_FILENAME}" if self.root_path else MANIFEST_FILENAME

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "rootPath": self.root_path}

    @classmethod
    def from_dict(cls, payload: object) -> "PackageManifest":
        data = _as_mapping(payload, "package")
        return cls(name=_require_str(data, "name"), root_path=_require_str(data, "rootPath", allow_empty=True))


ModuleFileSet = Mapping[str, FrozenSet[RepoFile]]


@dataclass(frozen=True)
class TargetSpec:
    """A user-declared build target and the folder that seeds its closure."""

    name: str
    entry_folder: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "entry_folder", normalize_path(self.entry_folder))


@dataclass(frozen=True)
class TargetSnapshot:
    """Resolved closure for one target."""

    name: str
    entry_folder: str
    files: Tuple[RepoFile, ...]
    unresolved_modules: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", tuple(sorted(set(self.files))))
        object.__setattr__(self, "unresolved_modules", tuple(sorted(set(self.unresolved_modules))))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entryFolder": self.entry_folder,
            "files": [file.to_dict() for file in self.files],
            "unresolvedModules": list(self.unresolved_modules),
        }

    @classmethod
    def from_dict(cls, payload: object) -> "TargetSnapshot":
        data = _as_mapping(payload, "target")
        return cls(
            name=_require_str(data, "name"),
            entry_folder=_require_str(data, "entryFolder", allow_empty=True),
            files=tuple(RepoFile.from_dict(item) for item in _require_list(data, "files")),
            unresolved_modules=tuple(_str_list(data.get("unresolvedModules"))),
        )


@dataclass
class SnapshotModel:
    """Persisted output of the scan and closure stage."""

    timestamp: str
    commit_hash: str
    repo_root: str
    packages: List[PackageManifest]
    targets: List[TargetSnapshot]
    files: List[RepoFile] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "commitHash": self.commit_hash,
            "repoRoot": self.repo_root,
            "packages": [package.to_dict() for package in sorted(self.packages, key=_package_key)],
            "files": [file.to_dict() for file in sorted(self.files)],
            "targets": [target.to_dict() for target in sorted(self.targets, key=lambda t: t.name)],
            "warnings": sorted(set(self.warnings)),
        }

    @classmethod
    def from_dict(cls, payload: object) -> "SnapshotModel":
        data = _as_mapping(payload, "snapshot")
        return cls(
            timestamp=_require_str(data, "timestamp"),
            commit_hash=_require_str(data, "commitHash"),
            repo_root=_require_str(data, "repoRoot"),
            packages=[PackageManifest.from_dict(item) for item in _require_list(data, "packages")],
            targets=[TargetSnapshot.from_dict(item) for item in _require_list(data, "targets")],
            files=[RepoFile.from_dict(item) for item in data.get("files") or []],
            warnings=_str_list(data.get("warnings")),
        )


@dataclass(frozen=True)
class FlattenedFile:
    """Mapping of one repository file into the flattened destination."""

    original_path: str
    flattened_path: str
    kind: FileKind
    owner: Owner

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalPath": self.original_path,
            "flattenedPath": self.flattened_path,
            "kind": self.kind.value,
            "owner": owner_to_dict(self.owner),
        }

    @classmethod
    def from_dict(cls, payload: object) -> "FlattenedFile":
        data = _as_mapping(payload, "flattened file")
        return cls(
            original_path=_require_str(data, "originalPath"),
            flattened_path=_require_str(data, "flattenedPath"),
            kind=_parse_kind(data.get("kind")),
            owner=owner_from_dict(data.get("owner")),
        )


@dataclass(frozen=True)
class FlattenTarget:
    """Flattened file list for one target."""

    name: str
    files: Tuple[FlattenedFile, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "files": [file.to_dict() for file in self.files]}

    @classmethod
    def from_dict(cls, payload: object) -> "FlattenTarget":
        data = _as_mapping(payload, "flatten target")
        return cls(
            name=_require_str(data, "name"),
            files=tuple(FlattenedFile.from_dict(item) for item in _require_list(data, "files")),
        )


@dataclass(frozen=True)
class FlattenMap:
    """Persisted plan mapping original paths to destination-relative paths."""

    created_at: str
    destination: Optional[str]
    targets: Tuple[FlattenTarget, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "createdAt": self.created_at,
            "destination": self.destination,
            "targets": [target.to_dict() for target in self.targets],
        }

    @classmethod
    def from_dict(cls, payload: object) -> "FlattenMap":
        data = _as_mapping(payload, "flatten map")
        destination = data.get("destination")
        if destination is not None and not isinstance(destination, str):
            raise ParseError("Flatten map destination must be a string or null")
        return cls(
            created_at=_require_str(data, "createdAt"),
            destination=destination,
            targets=tuple(FlattenTarget.from_dict(item) for item in _require_list(data, "targets")),
        )


# ----------------------------------------------------------------------
# Internal helpers


def _package_key(package: PackageManifest) -> Tuple[str, str]:
    return (package.name, package.root_path)


def _as_mapping(payload: object, label: str) -> Mapping[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError(f"Expected {label} object, got {type(payload).__name__}")
    return payload


def _require_str(data: Mapping[str, Any], key: str, *, allow_empty: bool = False) -> str:
    value = data.get(key)
    if not isinstance(value, str) or (not value and not allow_empty):
        raise ParseError(f"Field '{key}' must be a non-empty string")
    return value


def _require_list(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if not isinstance(value, list):
        raise ParseError(f"Field '{key}' must be a list")
    return value


def _str_list(value: object) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _parse_kind(value: object) -> FileKind:
    try:
        return FileKind(value)
    except ValueError as exc:
        raise ParseError(f"Unknown file kind: {value!r}") from exc


__all__ = [
    "FileKind",
    "MANIFEST_FILENAME",
    "FlattenMap",
    "FlattenTarget",
    "FlattenedFile",
    "ModuleFileSet",
    "Owner",
    "PackageManifest",
    "PackageOwner",
    "REPO",
    "RepoFile",
    "RepoOwner",
    "SnapshotModel",
    "TargetSnapshot",
    "TargetSpec",
    "is_under",
    "normalize_path",
    "owner_from_dict",
    "owner_to_dict",
]
