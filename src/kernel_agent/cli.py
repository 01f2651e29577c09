"""CLI entry point: ask for a task and let an agent complete it in a Kernel browser."""

import argparse
import asyncio
import logging
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from stirrup import Agent
from stirrup.clients.chat_completions_client import ChatCompletionsClient
from stirrup.core.models import LLMClient

from kernel_agent.config import KernelAgentConfig
from kernel_agent.display import print_results, print_welcome
from kernel_agent.exceptions import EmptyTaskError
from kernel_agent.tools.playwright import KernelPlaywrightToolProvider

LOGGER = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

DEFAULT_SYSTEM_PROMPT = (
    "You are a web automation assistant controlling a remote browser. "
    "Use the execute_playwright tool to run Playwright code against the current `page`; "
    "every call returns the code's result and a fresh accessibility snapshot of the page. "
    "Inspect the snapshot before interacting with elements. "
    "When the task is done, call the finish tool with the final answer as the reason."
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kernel-agent",
        description="Run an AI agent that completes a task in a remote Kernel browser.",
    )
    parser.add_argument("--task", default=None, help="Task description (prompted for if omitted)")
    parser.add_argument("--model", default=None, help="Model identifier (default: gpt-5-mini)")
    parser.add_argument("--base-url", default=None, help="API base URL (default: https://api.openai.com/v1)")
    parser.add_argument("--api-key", default=None, help="API key (default: OPENAI_API_KEY env var)")
    parser.add_argument(
        "--client",
        choices=["chat_completions", "litellm"],
        default=None,
        help="LLM client implementation (default: chat_completions)",
    )
    parser.add_argument("--max-turns", type=int, default=None, help="Max agent steps (default: 20)")
    parser.add_argument("--system-prompt", default=None, help="Custom system prompt")
    parser.add_argument("--output-dir", default=None, help="Directory for agent output files")
    parser.add_argument("--session-id", default=None, help="Attach to an existing Kernel browser session")
    parser.add_argument(
        "--stealth", action=argparse.BooleanOptionalAction, default=None, help="Create the browser in stealth mode"
    )
    parser.add_argument(
        "--headless", action=argparse.BooleanOptionalAction, default=None, help="Create a headless browser"
    )
    parser.add_argument("--browser-timeout", type=int, default=None, help="Browser inactivity timeout in seconds")
    parser.add_argument("--execute-timeout", type=int, default=None, help="Per-call code execution timeout in seconds")
    parser.add_argument(
        "--max-snapshot-chars", type=int, default=None, help="Truncate page snapshots to this many characters"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # The Kernel SDK logs each HTTP request at INFO through httpx
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def read_task(task: str | None) -> str:
    """Return the task from the CLI flag, or prompt for it."""
    if task is None:
        task = console.input("[bold]Enter your task:[/bold] ")
    task = task.strip()
    if not task:
        raise EmptyTaskError("Task cannot be empty")
    return task


def config_from_args(args: argparse.Namespace) -> KernelAgentConfig:
    return KernelAgentConfig.from_env().with_overrides(
        model=args.model,
        base_url=args.base_url,
        api_key=args.api_key,
        client=args.client,
        max_turns=args.max_turns,
        system_prompt=args.system_prompt,
        output_dir=args.output_dir,
        session_id=args.session_id,
        stealth=args.stealth,
        headless=args.headless,
        browser_timeout_seconds=args.browser_timeout,
        execute_timeout_sec=args.execute_timeout,
        max_snapshot_chars=args.max_snapshot_chars,
    )


def build_client(config: KernelAgentConfig) -> LLMClient:
    if config.client == "litellm":
        from stirrup.clients.litellm_client import LiteLLMClient

        return LiteLLMClient(model=config.model, max_tokens=config.max_tokens, api_key=config.api_key)

    return ChatCompletionsClient(
        model=config.model,
        base_url=config.base_url,
        api_key=config.api_key,
        max_tokens=config.max_tokens,
    )


def build_provider(config: KernelAgentConfig) -> KernelPlaywrightToolProvider:
    return KernelPlaywrightToolProvider(
        api_key=config.kernel_api_key,
        headless=config.headless,
        stealth=config.stealth,
        timeout_seconds=config.browser_timeout_seconds,
        execute_timeout_sec=config.execute_timeout_sec,
        max_snapshot_chars=config.max_snapshot_chars,
        session_id=config.session_id,
    )


def build_agent(config: KernelAgentConfig, provider: KernelPlaywrightToolProvider) -> Agent:
    return Agent(
        client=build_client(config),
        name="kernel-agent",
        max_turns=config.max_turns,
        system_prompt=config.system_prompt or DEFAULT_SYSTEM_PROMPT,
        tools=[provider],
    )


async def run_task(config: KernelAgentConfig, task: str) -> bool:
    """Run the agent on `task` and print the results.

    Returns True when the agent called its finish tool within the step budget.
    """
    provider = build_provider(config)
    agent = build_agent(config, provider)

    session_kwargs: dict[str, Any] = {}
    if config.output_dir is not None:
        session_kwargs["output_dir"] = config.output_dir

    try:
        async with agent.session(**session_kwargs) as session:
            finish_params, history, metadata = await session.run(task)
    finally:
        console.print("\nCleaning up browser session...")
        # Normally a no-op: leaving the session context already closed the provider.
        await provider.close()
        console.print("Done!")

    print_results(console, finish_params, history, metadata)
    if finish_params is None:
        err_console.print("[yellow]Agent did not finish (max turns reached).[/yellow]")
        return False
    return True


def main(argv: list[str] | None = None) -> None:
    """Run kernel-agent from the command line."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    print_welcome(console)

    try:
        task = read_task(args.task)
    except EmptyTaskError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except (EOFError, KeyboardInterrupt):
        err_console.print("\n[red]Error:[/red] No task provided")
        sys.exit(1)

    try:
        config = config_from_args(args)
    except ValueError as e:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(f'\nStarting agent to complete task: "{escape(task)}"\n')

    try:
        finished = asyncio.run(run_task(config, task))
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        LOGGER.exception("Agent run failed")
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    if not finished:
        sys.exit(1)


if __name__ == "__main__":
    main()
