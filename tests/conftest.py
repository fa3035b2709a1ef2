from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.repo_builder import FakeGit, RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def fake_git(repo_builder: RepoBuilder) -> FakeGit:
    """Git runner reporting a clean tree at the builder's repository root."""
    return FakeGit(repo_builder.path())
