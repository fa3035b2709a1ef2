"""Tests for Xcode project membership extraction."""

from __future__ import annotations

from pathlib import Path

from scopeflat.project_file import (
    FileReference,
    ProjectFileResolver,
    parse_project_lines,
    resolve_reference,
)
from tests._fixtures.repo_builder import RepoBuilder

PBXPROJ = """\
// !$*UTF8*$!
{
	objects = {

/* Begin PBXBuildFile section */
		AA0001 /* main.swift in Sources */ = {isa = PBXBuildFile; fileRef = BB0001 /* main.swift */; };
		AA0002 /* View.swift in Sources */ = {fileRef = BB0002 /* View.swift */; isa = PBXBuildFile; };
		AA0003 /* Core in Frameworks */ = {isa = PBXBuildFile; productRef = CC0001 /* Core */; };
		AA0004 /* Gone.swift in Sources */ = {isa = PBXBuildFile; fileRef = BB0004 /* Gone.swift */; };
		AA0005 /* System.swift in Sources */ = {isa = PBXBuildFile; fileRef = BB0005 /* System.swift */; };
/* End PBXBuildFile section */

/* Begin PBXFileReference section */
		BB0001 /* main.swift */ = {isa = PBXFileReference; lastKnownFileType = sourcecode.swift; path = main.swift; sourceTree = "<group>"; };
		BB0002 /* View.swift */ = {isa = PBXFileReference; path = "Views/View.swift"; sourceTree = SOURCE_ROOT; };
		BB0003 /* Unused.swift */ = {isa = PBXFileReference; path = Unused.swift; sourceTree = "<group>"; };
		BB0004 /* Gone.swift */ = {isa = PBXFileReference; path = Gone.swift; sourceTree = "<group>"; };
		BB0005 /* System.swift */ = {isa = PBXFileReference; path = System.swift; sourceTree = SDKROOT; };
		BB0006 /* Broken.swift */ = {isa = PBXFileReference; sourceTree = "<group>"; };
/* End PBXFileReference section */
	};
}
"""


def test_parse_project_lines_collects_records_and_warnings() -> None:
    parsed = parse_project_lines(PBXPROJ.splitlines(), source="App.xcodeproj/project.pbxproj")

    assert parsed.build_refs == {"BB0001", "BB0002", "BB0004", "BB0005"}
    assert set(parsed.file_refs) == {"BB0001", "BB0002", "BB0003", "BB0004", "BB0005"}
    assert parsed.file_refs["BB0002"].path == "Views/View.swift"
    assert parsed.file_refs["BB0002"].source_tree == "SOURCE_ROOT"
    assert len(parsed.warnings) == 1
    assert "BB0006 has no path" in parsed.warnings[0]


def test_parse_project_lines_flags_multiline_records() -> None:
    lines = [
        "\t\tAA0001 /* main.swift in Sources */ = {isa = PBXBuildFile;",
        "\t\t\tfileRef = BB0001; };",
    ]

    parsed = parse_project_lines(lines, source="p")

    assert parsed.build_refs == set()
    assert parsed.warnings == ["p:1: skipped malformed PBXBuildFile record"]


def test_resolve_reference_respects_source_tree(tmp_path: Path) -> None:
    assert resolve_reference(tmp_path, "App", FileReference("1", "main.swift", "<group>")) == "App/main.swift"
    assert resolve_reference(tmp_path, "App", FileReference("2", "x.swift", "SDKROOT")) is None
    assert resolve_reference(tmp_path, "", FileReference("3", "../Outside.swift", "<group>")) is None
    inside = str(tmp_path / "App" / "Abs.swift")
    assert resolve_reference(tmp_path, "App", FileReference("4", inside, "<absolute>")) == "App/Abs.swift"
    assert resolve_reference(tmp_path, "App", FileReference("5", "/elsewhere/Abs.swift", "<absolute>")) is None


def test_project_file_resolver_keeps_existing_built_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "App/App.xcodeproj/project.pbxproj": PBXPROJ,
            "App/main.swift": "\n",
            "App/Views/View.swift": "\n",
            "App/Unused.swift": "\n",
        }
    )

    membership = ProjectFileResolver().resolve(repo_builder.path(), "App/App.xcodeproj/project.pbxproj")

    assert membership.source_root == "App"
    assert membership.files == frozenset({"App/main.swift", "App/Views/View.swift"})
    assert len(membership.warnings) == 1
