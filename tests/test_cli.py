"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from scopeflat.cli import _build_parser, main
from scopeflat.git import Git
from scopeflat.manifests import ManifestDescriber
from scopeflat.orchestrator import Orchestrator
from scopeflat.prompts import StaticDecision
from tests._fixtures.repo_builder import FakeDescribe, FakeGit, RepoBuilder, library_description


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "snapshot"])
    assert args.verbose is True
    assert args.command == "snapshot"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["flatten", "--verbose", "--destination", "/tmp/out"])
    assert args.verbose is True
    assert args.destination == "/tmp/out"


def test_cli_collects_repeated_targets() -> None:
    parser = _build_parser()
    args = parser.parse_args(["snapshot", "repo", "--target", "App", "--target", "Widget=Extensions/Widget"])
    assert args.targets == ["App", "Widget=Extensions/Widget"]
    assert args.path == "repo"


def test_cli_prune_requires_destination() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["prune"])
    args = parser.parse_args(["prune", "--destination", "out", "--dry-run"])
    assert args.dry_run is True
    assert args.force is False


def test_cli_rejects_conflicting_verbosity_flags() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["flatten", "--verbose", "--quiet"])
    assert excinfo.value.code == 2


def test_cli_hydrate_is_not_implemented(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["hydrate"])
    assert excinfo.value.code == 1
    assert "not implemented" in capsys.readouterr().err


def _orchestrator(fake_git: FakeGit) -> Orchestrator:
    return Orchestrator(
        git=Git(runner=fake_git),
        describer=ManifestDescriber(runner=FakeDescribe({"Core": library_description("Core", ["A.swift"])})),
        decisions=StaticDecision(True),
        clock=lambda: datetime(2024, 1, 1, tzinfo=UTC),
    )


def _write_repo(repo_builder: RepoBuilder) -> Path:
    repo_builder.write(
        {
            "App/main.swift": "import Core\n",
            "Core/Package.swift": "\n",
            "Core/Sources/Core/A.swift": "public struct A {}\n",
        }
    )
    return repo_builder.path()


def test_cli_snapshot_and_sync_print_summaries(
    repo_builder: RepoBuilder,
    fake_git: FakeGit,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_root = _write_repo(repo_builder)
    orchestrator = _orchestrator(fake_git)

    main(["snapshot", str(repo_root), "--target", "App"], orchestrator=orchestrator)
    out = capsys.readouterr().out
    assert "Snapshot captured at commit abc123" in out
    assert "Target App: 2 files" in out

    main(["sync", str(repo_root), "--destination", str(tmp_path / "out"), "--force"], orchestrator=orchestrator)
    out = capsys.readouterr().out
    assert "Flatten plan created for 1 targets (2 files)" in out
    assert "No files to prune" in out
    assert (tmp_path / "out/App/Sources/Repo/App/main.swift").is_file()


def test_cli_quiet_prints_only_first_line(
    repo_builder: RepoBuilder,
    fake_git: FakeGit,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_root = _write_repo(repo_builder)

    main(["snapshot", str(repo_root), "--target", "App", "--quiet"], orchestrator=_orchestrator(fake_git))

    assert capsys.readouterr().out.strip().splitlines() == ["Snapshot captured at commit abc123"]


def test_cli_reports_failures_with_exit_code_one(
    repo_builder: RepoBuilder,
    fake_git: FakeGit,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_root = _write_repo(repo_builder)

    with pytest.raises(SystemExit) as excinfo:
        main(["flatten", str(repo_root), "--destination", str(tmp_path / "out")], orchestrator=_orchestrator(fake_git))

    assert excinfo.value.code == 1
    assert "scopeflat flatten failed" in capsys.readouterr().err
