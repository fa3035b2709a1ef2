"""Git queries used to anchor a snapshot to a commit."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..errors import DirtyWorkingTreeError, VcsError
from ..logging import get_logger


class Git:
    """Thin wrapper over the git CLI with an injectable command runner."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def repo_root(self, cwd: Path | None = None) -> Path:
        """Return the top-level directory of the enclosing repository."""
        output = self._run(["git", "rev-parse", "--show-toplevel"], cwd=cwd or Path.cwd())
        root = output.strip()
        if not root:
            raise VcsError(["git", "rev-parse", "--show-toplevel"], message="git returned an empty repository root")
        return Path(root)

    def commit_hash(self, repo_root: Path) -> str:
        output = self._run(["git", "rev-parse", "HEAD"], cwd=repo_root)
        commit = output.strip()
        if not commit:
            raise VcsError(["git", "rev-parse", "HEAD"], message="git returned an empty commit hash")
        return commit

    def ensure_clean(self, repo_root: Path, *, ignored_prefixes: Sequence[str] = ()) -> None:
        """Raise when the working tree has changes outside ``ignored_prefixes``."""
        args = ["git", "status", "--porcelain"]
        status = self._run(args, cwd=repo_root)
        dirty = [
            line
            for line in status.splitlines()
            if line.strip() and not _is_ignored(_status_path(line), ignored_prefixes)
        ]
        if dirty:
            self.logger.debug("Working tree changes: %s", dirty)
            raise DirtyWorkingTreeError(args, "\n".join(dirty))

    def _run(self, args: List[str], *, cwd: Path) -> str:
        try:
            return self._runner(args, cwd=cwd, capture_output=True)
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr or exc.output or ""
            raise VcsError(args, stderr if isinstance(stderr, str) else stderr.decode("utf-8", "replace")) from exc
        except FileNotFoundError as exc:
            raise VcsError(args, message=f"git executable not found: {exc}") from exc

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


def _status_path(line: str) -> str:
    # Porcelain v1: two status columns, a space, then the path ("a -> b" for renames).
    path = line[3:] if len(line) > 3 else line.strip()
    if " -> " in path:
        path = path.split(" -> ", 1)[1]
    return path.strip().strip('"')


def _is_ignored(path: str, prefixes: Sequence[str]) -> bool:
    for prefix in prefixes:
        bare = prefix.rstrip("/")
        if path == bare or path.startswith(f"{bare}/"):
            return True
    return False


__all__ = ["Git"]
