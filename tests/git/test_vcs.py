"""Tests for the git wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from scopeflat.errors import DirtyWorkingTreeError, ValidationError, VcsError
from scopeflat.git import Git
from tests._fixtures.repo_builder import FakeGit


def test_git_reports_root_and_commit(tmp_path: Path) -> None:
    runner = FakeGit(tmp_path, commit="deadbeef")
    git = Git(runner=runner)

    assert git.repo_root(tmp_path) == tmp_path
    assert git.commit_hash(tmp_path) == "deadbeef"
    assert runner.calls == [
        ["git", "rev-parse", "--show-toplevel"],
        ["git", "rev-parse", "HEAD"],
    ]


def test_ensure_clean_raises_on_changes(tmp_path: Path) -> None:
    git = Git(runner=FakeGit(tmp_path, status=" M App/main.swift\n?? notes.txt\n"))

    with pytest.raises(DirtyWorkingTreeError) as excinfo:
        git.ensure_clean(tmp_path)
    assert isinstance(excinfo.value, VcsError)
    assert isinstance(excinfo.value, ValidationError)
    assert "App/main.swift" in excinfo.value.stderr


def test_ensure_clean_ignores_control_directory(tmp_path: Path) -> None:
    status = "?? .scopeflat/\n M .scopeflat/snapshot/snapshot.json\nR  old.swift -> .scopeflat/x\n"
    git = Git(runner=FakeGit(tmp_path, status=status))

    git.ensure_clean(tmp_path, ignored_prefixes=(".scopeflat",))


def test_git_wraps_command_failures(tmp_path: Path) -> None:
    def failing(args, *, cwd, capture_output=False):
        raise subprocess.CalledProcessError(128, args, stderr="fatal: not a git repository")

    with pytest.raises(VcsError) as excinfo:
        Git(runner=failing).repo_root(tmp_path)
    assert "not a git repository" in str(excinfo.value)
    assert excinfo.value.command == ["git", "rev-parse", "--show-toplevel"]


def test_git_reports_missing_executable(tmp_path: Path) -> None:
    def missing(args, *, cwd, capture_output=False):
        raise FileNotFoundError("git")

    with pytest.raises(VcsError, match="git executable not found"):
        Git(runner=missing).commit_hash(tmp_path)
