"""Adapter around the external package description tool."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from ..config import DEFAULT_DESCRIBE_COMMAND
from ..errors import ManifestToolError, ParseError
from ..logging import get_logger


class ManifestDescriber:
    """Runs ``swift package describe`` (or a configured equivalent) for a package root."""

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_DESCRIBE_COMMAND,
        *,
        timeout: Optional[float] = None,
        runner: Callable[..., str] | None = None,
    ) -> None:
        self.command = list(command)
        self.timeout = timeout
        self._runner = runner or self._default_runner
        self.logger = get_logger("manifests.describe")

    def describe(self, package_root: Path) -> Dict[str, Any]:
        """Return the parsed JSON description of the package at ``package_root``."""
        self.logger.debug("Describing package at %s", package_root)
        try:
            output = self._runner(self.command, cwd=package_root, timeout=self.timeout)
        except subprocess.CalledProcessError as exc:
            raise ManifestToolError(self.command, _text(exc.stderr) or _text(exc.output)) from exc
        except subprocess.TimeoutExpired as exc:
            raise ManifestToolError(
                self.command, message=f"`{' '.join(self.command)}` timed out after {exc.timeout}s in {package_root}"
            ) from exc
        except FileNotFoundError as exc:
            raise ManifestToolError(self.command, message=f"Manifest tool not found: {exc}") from exc
        return parse_description(output, source=str(package_root))

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        timeout: Optional[float] = None,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
        return completed.stdout


def parse_description(output: str, *, source: str = "manifest tool") -> Dict[str, Any]:
    """Parse tool output, tolerating diagnostic lines printed before the JSON body."""
    text = output.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        if start < 0:
            raise ParseError(f"No JSON description returned for {source}") from None
        try:
            data = json.loads(text[start:])
        except json.JSONDecodeError as exc:
            raise ParseError(f"Malformed JSON description for {source}: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Description for {source} must be a JSON object")
    return data


def _text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value if isinstance(value, str) else ""


__all__ = ["ManifestDescriber", "parse_description"]
