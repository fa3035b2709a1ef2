"""Decision providers for destructive operations."""

from __future__ import annotations

from typing import Callable, List, Protocol


class DecisionProvider(Protocol):
    """Answers yes/no questions before files are removed or replaced."""

    def confirm(self, prompt: str) -> bool:  # pragma: no cover - protocol
        ...


class ConsolePrompt:
    """Asks on the terminal; anything other than ``y``/``yes`` declines."""

    def __init__(self, reader: Callable[[str], str] = input) -> None:
        self._reader = reader

    def confirm(self, prompt: str) -> bool:
        try:
            answer = self._reader(f"{prompt} [y/N]: ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}


class StaticDecision:
    """Returns a fixed answer and records every prompt it was shown."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.prompts: List[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


__all__ = ["ConsolePrompt", "DecisionProvider", "StaticDecision"]
