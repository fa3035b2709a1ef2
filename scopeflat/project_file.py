"""Line-oriented extraction of compiled-file membership from Xcode project files.

Only two single-line record shapes are understood::

    <id> /* Foo.swift in Sources */ = {isa = PBXBuildFile; fileRef = <ref> /* Foo.swift */; };
    <ref> /* Foo.swift */ = {isa = PBXFileReference; path = Foo.swift; sourceTree = "<group>"; };

Field order, quoting and whitespace are free, and records may appear in any
order. Every other line of the descriptor (groups, phases, build settings) is
ignored. Group nesting is not reconstructed: relative references are resolved
against the project's source root, the directory holding the ``.xcodeproj``.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from .logging import get_logger
from .models import normalize_path

_COMMENT = re.compile(r"/\*.*?\*/")
_RECORD = re.compile(r"^\s*(?P<id>[0-9A-Za-z_]+)\s*=\s*\{(?P<body>.*)\}\s*;?\s*$")
_FIELD = re.compile(r'(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>"(?:[^"\\]|\\.)*"|[^;\s{}()]+)\s*;')
_ISA = re.compile(r"\bisa\s*=\s*(?P<isa>PBXBuildFile|PBXFileReference)\s*;")

BUILD_FILE = "PBXBuildFile"
FILE_REFERENCE = "PBXFileReference"

# Path bases resolved against the project's source root.
_SOURCE_ROOT_BASES = {"", "<group>", "SOURCE_ROOT", "SRCROOT"}
_ABSOLUTE_BASE = "<absolute>"


@dataclass(frozen=True)
class FileReference:
    """A PBXFileReference record reduced to the fields needed for resolution."""

    identifier: str
    path: str
    source_tree: str = ""


@dataclass
class ParsedProject:
    """Records extracted from one project file."""

    build_refs: Set[str] = field(default_factory=set)
    file_refs: Dict[str, FileReference] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ProjectMembership:
    """Files compiled or bundled by one project file."""

    project_file: str
    source_root: str
    files: FrozenSet[str]
    warnings: List[str] = field(default_factory=list)


def parse_project_lines(lines: Iterable[str], *, source: str = "project") -> ParsedProject:
    """Extract build-file and file-reference records from descriptor lines."""
    parsed = ParsedProject()
    for number, raw in enumerate(lines, start=1):
        if "PBXBuildFile" not in raw and "PBXFileReference" not in raw:
            continue
        line = _COMMENT.sub(" ", raw)
        isa_match = _ISA.search(line)
        if isa_match is None:
            # Section markers such as "/* Begin PBXBuildFile section */".
            continue
        record = _RECORD.match(line)
        if record is None:
            parsed.warnings.append(f"{source}:{number}: skipped malformed {isa_match.group('isa')} record")
            continue
        identifier = record.group("id")
        fields = _parse_fields(record.group("body"))

        if isa_match.group("isa") == BUILD_FILE:
            file_ref = fields.get("fileRef")
            if file_ref:
                parsed.build_refs.add(file_ref)
            elif "productRef" not in fields:
                parsed.warnings.append(f"{source}:{number}: build file {identifier} has no fileRef")
            continue

        path = fields.get("path")
        if not path:
            parsed.warnings.append(f"{source}:{number}: file reference {identifier} has no path")
            continue
        parsed.file_refs[identifier] = FileReference(
            identifier=identifier,
            path=path,
            source_tree=fields.get("sourceTree", ""),
        )
    return parsed


class ProjectFileResolver:
    """Resolves the set of files an Xcode project actually builds."""

    def __init__(self) -> None:
        self.logger = get_logger("project_file")

    def resolve(self, repo_root: Path, project_file: str) -> ProjectMembership:
        path = repo_root / project_file
        text = path.read_text(encoding="utf-8", errors="replace")
        parsed = parse_project_lines(text.splitlines(), source=project_file)
        for warning in parsed.warnings:
            self.logger.warning(warning)

        # <root>/<Name>.xcodeproj/project.pbxproj -> <root>
        source_root = normalize_path(Path(project_file).parent.parent.as_posix())
        members: Set[str] = set()
        for ref_id in sorted(parsed.build_refs):
            reference = parsed.file_refs.get(ref_id)
            if reference is None:
                self.logger.debug("%s: build file references unknown id %s", project_file, ref_id)
                continue
            resolved = resolve_reference(repo_root, source_root, reference)
            if resolved is None:
                continue
            if not (repo_root / resolved).is_file():
                self.logger.debug("%s: %s no longer exists", project_file, resolved)
                continue
            members.add(resolved)

        self.logger.debug("%s builds %d files", project_file, len(members))
        return ProjectMembership(
            project_file=project_file,
            source_root=source_root,
            files=frozenset(members),
            warnings=list(parsed.warnings),
        )


def resolve_reference(repo_root: Path, source_root: str, reference: FileReference) -> Optional[str]:
    """Return the repo-relative path of ``reference`` or None when it is out of scope."""
    if reference.source_tree == _ABSOLUTE_BASE or os.path.isabs(reference.path):
        base = (repo_root / source_root) if source_root else repo_root
        for root in (base, base.resolve()):
            try:
                relative = Path(reference.path).relative_to(root).as_posix()
            except ValueError:
                continue
            return normalize_path(f"{source_root}/{relative}" if source_root else relative)
        return None
    if reference.source_tree not in _SOURCE_ROOT_BASES:
        return None
    joined = normalize_path(f"{source_root}/{reference.path}" if source_root else reference.path)
    if not joined or joined == ".." or joined.startswith("../"):
        return None
    return joined


def _parse_fields(body: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for match in _FIELD.finditer(body):
        key = match.group("key")
        if key in fields:
            continue
        fields[key] = _unquote(match.group("value"))
    return fields


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        inner = value[1:-1]
        return re.sub(r"\\(.)", r"\1", inner)
    return value


__all__ = [
    "FileReference",
    "ParsedProject",
    "ProjectFileResolver",
    "ProjectMembership",
    "parse_project_lines",
    "resolve_reference",
]
