"""Example: Remote browser automation with KernelPlaywrightToolProvider.

This example demonstrates how to give a Stirrup agent a Kernel cloud browser.
The agent writes Playwright code, Kernel runs it against the live page, and
every call returns the code's result together with a fresh page snapshot.

Prerequisites:
    - Set KERNEL_API_KEY for the remote browser
    - Set OPENAI_API_KEY for the model
"""

import asyncio
import os

from stirrup import Agent
from stirrup.clients.chat_completions_client import ChatCompletionsClient

from kernel_agent.tools.playwright import KernelPlaywrightToolProvider

# --8<-- [start:example]
client = ChatCompletionsClient(
    base_url="https://api.openai.com/v1",
    model="gpt-5-mini",
    api_key=os.environ.get("OPENAI_API_KEY"),
)

# stealth=True reduces bot detection on sites that block automation
browser_provider = KernelPlaywrightToolProvider(stealth=True, max_snapshot_chars=40_000)

agent = Agent(
    client=client,
    name="kernel_browser_agent",
    tools=[browser_provider],
    max_turns=20,
    system_prompt=(
        "You are a web automation assistant. Use execute_playwright to run Playwright code against `page`. "
        "Read the returned snapshot before clicking or typing."
    ),
)
# --8<-- [end:example]


async def main() -> None:
    """Run remote browser example."""
    async with agent.session() as session:
        finish_params, _history, _metadata = await session.run(
            "Go to news.ycombinator.com and tell me the title of the top story."
        )
        if finish_params is not None:
            print(finish_params.reason)


if __name__ == "__main__":
    asyncio.run(main())
