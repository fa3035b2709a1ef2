"""Error taxonomy shared by scopeflat stages."""

from __future__ import annotations

from typing import Sequence


class ScopeFlatError(RuntimeError):
    """Base class for failures that abort a scopeflat run."""


class ValidationError(ScopeFlatError):
    """Raised for bad user input: flags, targets, or repository state."""


class ConfigError(ValidationError):
    """Raised when .scopeflat.yml cannot be parsed."""


class ParseError(ScopeFlatError):
    """Raised when a manifest description or persisted artifact is malformed."""


class _CommandError(ScopeFlatError):
    def __init__(self, command: Sequence[str], stderr: str = "", message: str | None = None) -> None:
        self.command = list(command)
        self.stderr = stderr.strip()
        if message is None:
            message = f"`{' '.join(self.command)}` failed"
            if self.stderr:
                message = f"{message}: {self.stderr}"
        super().__init__(message)


class VcsError(_CommandError):
    """Raised when a git invocation fails."""


class DirtyWorkingTreeError(VcsError, ValidationError):
    """Raised when a snapshot is requested on a working tree with local changes."""

    def __init__(self, command: Sequence[str], status: str) -> None:
        super().__init__(
            command,
            status,
            message="Git working tree is dirty. Commit or stash changes before proceeding.",
        )


class ManifestToolError(_CommandError):
    """Raised when the package description tool exits unsuccessfully."""


__all__ = [
    "ConfigError",
    "DirtyWorkingTreeError",
    "ManifestToolError",
    "ParseError",
    "ScopeFlatError",
    "ValidationError",
    "VcsError",
]
