"""Terminal rendering of an agent run: banner, step summary and final answer."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from stirrup.core.models import AssistantMessage, aggregate_metadata

__all__ = [
    "StepSummary",
    "flatten_history",
    "print_results",
    "print_welcome",
    "summarize_steps",
]

logger = logging.getLogger(__name__)

_TEXT_PREVIEW_LIMIT = 500


class StepSummary(BaseModel):
    """One assistant turn of a finished run."""

    index: int
    type: Literal["tool-calls", "text"]
    text: str | None = None
    tool_names: list[str] = []


def flatten_history(history: Sequence[Any]) -> list[Any]:
    """Flatten message history that may be split into per-context-window lists."""
    messages: list[Any] = []
    for item in history:
        if isinstance(item, list | tuple):
            messages.extend(item)
        else:
            messages.append(item)
    return messages


def _content_text(content: Any) -> str:  # noqa: ANN401
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(part for part in content if isinstance(part, str))
    return str(content) if content else ""


def summarize_steps(history: Sequence[Any]) -> list[StepSummary]:
    """Build one StepSummary per assistant message, numbered from 1."""
    steps: list[StepSummary] = []
    for message in flatten_history(history):
        if not isinstance(message, AssistantMessage):
            continue
        tool_names = [tc.name for tc in message.tool_calls]
        text = _content_text(message.content).strip() or None
        steps.append(
            StepSummary(
                index=len(steps) + 1,
                type="tool-calls" if tool_names else "text",
                text=text,
                tool_names=tool_names,
            )
        )
    return steps


def _final_answer(finish_params: BaseModel | None, steps: list[StepSummary]) -> str | None:
    if finish_params is not None:
        reason = getattr(finish_params, "reason", None)
        if reason:
            return str(reason)
    for step in reversed(steps):
        if step.text:
            return step.text
    return None


def _token_usage_line(metadata: dict[str, list[Any]] | None) -> str | None:
    if not metadata:
        return None
    try:
        aggregated = aggregate_metadata(metadata, return_json_serializable=True)
    except (TypeError, ValueError):
        logger.debug("Could not aggregate run metadata", exc_info=True)
        return None
    if not isinstance(aggregated, dict):
        return None

    token_usage = aggregated.get("token_usage")
    if not token_usage or not isinstance(token_usage, list) or not isinstance(token_usage[0], dict):
        return None
    usage = token_usage[0]
    input_t = usage.get("input", 0)
    answer_t = usage.get("answer", 0)
    reasoning_t = usage.get("reasoning", 0)
    total = input_t + answer_t + reasoning_t
    return f"Tokens: {total:,} total ({input_t:,} in, {answer_t:,} out, {reasoning_t:,} reasoning)"


def _preview(text: str) -> str:
    return text if len(text) <= _TEXT_PREVIEW_LIMIT else text[:_TEXT_PREVIEW_LIMIT] + "..."


def print_welcome(console: Console) -> None:
    console.print("[bold cyan]Welcome to Kernel Agent![/bold cyan]\n")


def print_results(
    console: Console,
    finish_params: BaseModel | None,
    history: Sequence[Any],
    metadata: dict[str, list[Any]] | None = None,
) -> list[StepSummary]:
    """Print the final answer and every step of the run. Returns the step summaries."""
    steps = summarize_steps(history)

    console.print("\n[bold green]--- Agent Completed ---[/bold green]")
    answer = _final_answer(finish_params, steps)
    console.print(f"\n[bold]Final Answer:[/bold] {escape(answer) if answer else '[dim](none)[/dim]'}")
    console.print(f"\n[bold]Steps Taken:[/bold] {len(steps)}")

    for step in steps:
        console.print(f"\n[bold]Step {step.index}:[/bold]")
        console.print(f"  Type: {step.type}")
        if step.tool_names:
            console.print(f"  Tools: {escape(', '.join(step.tool_names))}")
        if step.text:
            console.print(f"  Text: {escape(_preview(step.text))}")

    if usage_line := _token_usage_line(metadata):
        console.print(f"\n[dim]{usage_line}[/dim]")

    return steps
