"""Tests for path exclusion, ownership and kind classification."""

from __future__ import annotations

from scopeflat.classifier import (
    PathClassifier,
    classify_kind,
    is_project_file,
    owner_for,
    parse_ignore_lines,
    should_ignore,
)
from scopeflat.models import REPO, FileKind, PackageOwner


def test_reserved_components_are_excluded_anywhere() -> None:
    classifier = PathClassifier()

    assert classifier.is_excluded(".git/config")
    assert classifier.is_excluded("Core/.build/debug/Core.o")
    assert classifier.is_excluded("App/DerivedData", is_dir=True)
    assert classifier.is_excluded(".scopeflat/snapshot/snapshot.json")
    assert not classifier.is_excluded("App/main.swift")


def test_gitignore_rules_support_globs_directories_and_negation() -> None:
    rules = parse_ignore_lines(["# comment", "*.log", "vendor/", "!keep.log", "/generated/*.swift"])

    assert should_ignore("notes.log", False, rules)
    assert not should_ignore("keep.log", False, rules)
    assert should_ignore("vendor", True, rules)
    assert should_ignore("vendor/lib/Thing.swift", False, rules)
    assert should_ignore("generated/Model.swift", False, rules)
    assert not should_ignore("App/generated/Model.swift", False, rules)


def test_owner_uses_deepest_package_root() -> None:
    roots = {"Packages/Core": "Core", "Packages/Core/Plugins/Lint": "Lint"}

    assert owner_for("Packages/Core/Sources/Core/A.swift", roots) == PackageOwner("Core")
    assert owner_for("Packages/Core/Plugins/Lint/main.swift", roots) == PackageOwner("Lint")
    assert owner_for("Packages/CoreExtras/B.swift", roots) is REPO
    assert owner_for("App/main.swift", roots) is REPO


def test_root_package_claims_no_files() -> None:
    roots = {"": "Tool", "Packages/Core": "Core"}

    assert owner_for("Sources/Tool/main.swift", roots) is REPO
    assert owner_for("Packages/Core/Sources/Core/A.swift", roots) == PackageOwner("Core")


def test_root_package_does_not_exclude_build_folders_repo_wide() -> None:
    classifier = PathClassifier()
    classifier.add_package("", "Tool")

    assert not classifier.is_excluded("App/build", is_dir=True)
    assert not classifier.is_excluded("build/notes.swift")


def test_classify_kind_rules() -> None:
    assert classify_kind("App/main.swift") is FileKind.SOURCE
    assert classify_kind("Core/Tests/CoreTests/ATests.swift") is FileKind.TEST
    assert classify_kind("App/UITests/Flow.swift") is FileKind.TEST
    assert classify_kind("App/LoginViewTests.swift") is FileKind.TEST
    assert classify_kind("App/Resources/strings.txt") is FileKind.RESOURCE
    assert classify_kind("App/Assets.xcassets/AppIcon.appiconset/Contents.json") is FileKind.RESOURCE
    assert classify_kind("App/Info.plist") is FileKind.RESOURCE
    assert classify_kind("Core/Package.swift") is FileKind.OTHER
    assert classify_kind("README.md") is FileKind.OTHER


def test_classify_kind_honours_extra_source_suffixes() -> None:
    suffixes = frozenset({".swift", ".m"})

    assert classify_kind("App/Legacy.m", suffixes) is FileKind.SOURCE
    assert classify_kind("App/Legacy.m") is FileKind.OTHER


def test_package_build_output_is_excluded_only_inside_package() -> None:
    classifier = PathClassifier()
    classifier.add_package("Core", "Core")

    assert classifier.is_excluded("Core/build", is_dir=True)
    assert classifier.is_excluded("Core/Core.build/x.swift")
    assert not classifier.is_excluded("App/build/notes.swift")


def test_classify_returns_none_for_excluded_paths() -> None:
    classifier = PathClassifier(rules=parse_ignore_lines(["Secrets/"]))
    classifier.add_package("Core", "Core")

    assert classifier.classify("Secrets/key.swift") is None
    file = classifier.classify("Core/Sources/Core/A.swift")
    assert file is not None
    assert file.owner == PackageOwner("Core")
    assert file.kind is FileKind.SOURCE


def test_is_project_file() -> None:
    assert is_project_file("App/App.xcodeproj/project.pbxproj")
    assert not is_project_file("App/project.pbxproj")
    assert not is_project_file("App/App.xcodeproj/xcshareddata/x.plist")
