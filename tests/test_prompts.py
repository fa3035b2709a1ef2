"""Tests for decision providers."""

from __future__ import annotations

from scopeflat.prompts import ConsolePrompt, StaticDecision


def test_console_prompt_accepts_yes_only() -> None:
    answers = iter(["y", " YES ", "n", ""])
    prompt = ConsolePrompt(reader=lambda text: next(answers))

    assert [prompt.confirm("Continue?") for _ in range(4)] == [True, True, False, False]


def test_console_prompt_declines_on_eof() -> None:
    def closed(text: str) -> str:
        raise EOFError

    assert ConsolePrompt(reader=closed).confirm("Continue?") is False


def test_static_decision_records_prompts() -> None:
    decision = StaticDecision(True)

    assert decision.confirm("Remove?") is True
    assert decision.prompts == ["Remove?"]
