"""Tests for per-target closure resolution."""

from __future__ import annotations

from typing import Dict, Iterable

from scopeflat.closure import ClosureResolver, local_module_prefixes
from scopeflat.imports import ImportGraph
from scopeflat.manifests import ModuleIndex
from scopeflat.models import REPO, FileKind, PackageOwner, RepoFile, TargetSpec


def _src(path: str) -> RepoFile:
    return RepoFile(path, REPO, FileKind.SOURCE)


def _graph(imports: Dict[str, Iterable[str]]) -> ImportGraph:
    return ImportGraph(imports={path: frozenset(modules) for path, modules in imports.items()})


CORE_A = RepoFile("Core/Sources/Core/A.swift", PackageOwner("Core"), FileKind.SOURCE)
CORE_B = RepoFile("Core/Sources/Core/B.swift", PackageOwner("Core"), FileKind.SOURCE)


def test_closure_includes_package_modules_as_units() -> None:
    files = [_src("App/main.swift"), CORE_A, CORE_B]
    graph = _graph({"App/main.swift": {"Core", "UIKit"}, CORE_A.path: {"Hidden"}})
    modules = ModuleIndex(modules={"Core": frozenset({CORE_A, CORE_B})})

    result = ClosureResolver(files, graph, modules).resolve(TargetSpec("App", "App"))

    assert [file.path for file in result.snapshot.files] == [
        "App/main.swift",
        "Core/Sources/Core/A.swift",
        "Core/Sources/Core/B.swift",
    ]
    assert result.snapshot.unresolved_modules == ("UIKit",)
    assert result.warnings == ["Target App: unresolved modules UIKit"]


def test_closure_follows_local_modules_transitively() -> None:
    files = [
        _src("App/main.swift"),
        _src("Sources/Feature/Screen.swift"),
        _src("Networking/Client.swift"),
        _src("Unrelated/Other.swift"),
    ]
    graph = _graph(
        {
            "App/main.swift": {"Feature"},
            "Sources/Feature/Screen.swift": {"Networking"},
            "Networking/Client.swift": {"Feature"},
        }
    )

    result = ClosureResolver(files, graph, ModuleIndex()).resolve(TargetSpec("App", "App"))

    assert {file.path for file in result.snapshot.files} == {
        "App/main.swift",
        "Sources/Feature/Screen.swift",
        "Networking/Client.swift",
    }
    assert result.snapshot.unresolved_modules == ()
    assert result.warnings == []


def test_closure_includes_resources_under_entry_folder() -> None:
    files = [
        _src("App/main.swift"),
        RepoFile("App/Resources/Logo.png", REPO, FileKind.RESOURCE),
        RepoFile("Other/Resources/Icon.png", REPO, FileKind.RESOURCE),
        RepoFile("App/AppTests.swift", REPO, FileKind.TEST),
    ]

    result = ClosureResolver(files, _graph({}), ModuleIndex()).resolve(TargetSpec("App", "App"))

    assert {file.path for file in result.snapshot.files} == {"App/main.swift", "App/Resources/Logo.png"}


def test_closure_warns_when_entry_folder_has_no_sources() -> None:
    result = ClosureResolver([_src("App/main.swift")], _graph({}), ModuleIndex()).resolve(
        TargetSpec("Widget", "Widget")
    )

    assert result.snapshot.files == ()
    assert result.warnings == ["Target Widget: no source files under Widget"]


def test_closure_does_not_match_sibling_prefixes() -> None:
    files = [_src("App/main.swift"), _src("FeatureKit/Kit.swift")]
    graph = _graph({"App/main.swift": {"Feature"}})

    result = ClosureResolver(files, graph, ModuleIndex()).resolve(TargetSpec("App", "App"))

    assert result.snapshot.unresolved_modules == ("Feature",)


def test_local_module_prefixes_include_entry_folder() -> None:
    assert local_module_prefixes("Feature", "App") == ["Feature", "Sources/Feature", "App/Feature"]
    assert local_module_prefixes("Feature", "") == ["Feature", "Sources/Feature"]


def test_closure_is_deterministic() -> None:
    files = [_src("App/main.swift"), _src("Feature/A.swift"), CORE_A]
    graph = _graph({"App/main.swift": {"Feature", "Core"}, "Feature/A.swift": {"Core"}})
    modules = ModuleIndex(modules={"Core": frozenset({CORE_A})})
    resolver = ClosureResolver(files, graph, modules)

    first = resolver.resolve(TargetSpec("App", "App"))
    second = ClosureResolver(list(reversed(files)), graph, modules).resolve(TargetSpec("App", "App"))

    assert first.snapshot.to_dict() == second.snapshot.to_dict()
