"""Lexical scan of import declarations in source files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from .logging import get_logger
from .models import FileKind, RepoFile

# ``import struct Foo.Bar`` names a declaration kind before the module.
_DECLARATION_KINDS = frozenset(
    {
        "typealias",
        "struct",
        "class",
        "enum",
        "protocol",
        "let",
        "var",
        "func",
    }
)

# Attributes such as ``@testable`` or ``@_spi(Internal)`` may precede the keyword.
IMPORT_PATTERN = re.compile(
    r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*import\s+"
    rf"(?:(?:{'|'.join(sorted(_DECLARATION_KINDS))})\s+)?"
    r"(?P<module>\w+)"
)


def extract_module(line: str) -> Optional[str]:
    """Return the module named by an import declaration, or None."""
    match = IMPORT_PATTERN.match(line)
    if match is None:
        return None
    module = match.group("module")
    if module in _DECLARATION_KINDS:
        return None
    return module


def scan_imports(lines: Iterable[str]) -> FrozenSet[str]:
    modules: Set[str] = set()
    for line in lines:
        module = extract_module(line)
        if module is not None:
            modules.add(module)
    return frozenset(modules)


@dataclass
class ImportGraph:
    """Module names referenced by each source file."""

    imports: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def modules_for(self, path: str) -> FrozenSet[str]:
        return self.imports.get(path, frozenset())


class ImportIndexer:
    """Builds the import graph for every source file in the inventory."""

    def __init__(self) -> None:
        self.logger = get_logger("imports")

    def index(self, repo_root: Path, files: Iterable[RepoFile]) -> ImportGraph:
        graph = ImportGraph()
        for file in files:
            if file.kind is not FileKind.SOURCE:
                continue
            try:
                text = (repo_root / file.path).read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                message = f"Could not read {file.path} for import scanning: {exc}"
                self.logger.warning(message)
                graph.warnings.append(message)
                graph.imports[file.path] = frozenset()
                continue
            graph.imports[file.path] = scan_imports(text.splitlines())
        self.logger.debug("Indexed imports for %d source files", len(graph.imports))
        return graph


__all__ = ["IMPORT_PATTERN", "ImportGraph", "ImportIndexer", "extract_module", "scan_imports"]
