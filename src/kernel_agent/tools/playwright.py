"""Remote Playwright execution tool provider backed by Kernel browsers.

This module provides KernelPlaywrightToolProvider, a ToolProvider that manages a
Kernel cloud browser session and exposes a single tool which runs arbitrary
Playwright code against the session's current page. Every call is followed by a
fresh accessibility snapshot of the page so the model can see what changed.

Example usage:
    from stirrup import Agent
    from stirrup.clients.chat_completions_client import ChatCompletionsClient
    from kernel_agent.tools.playwright import KernelPlaywrightToolProvider

    client = ChatCompletionsClient(model="gpt-5-mini", base_url="https://api.openai.com/v1")
    agent = Agent(
        client=client,
        name="kernel_agent",
        tools=[KernelPlaywrightToolProvider()],
        max_turns=20,
    )

    async with agent.session() as session:
        await session.run("Go to news.ycombinator.com and tell me the top story")

Requires a Kernel API key in the KERNEL_API_KEY environment variable.
"""

import json
import logging
from types import TracebackType
from typing import Annotated, Any

from pydantic import BaseModel, Field
from stirrup import Tool, ToolProvider, ToolResult
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from kernel_agent.exceptions import BrowserSessionError

try:
    from kernel import APIConnectionError, APIError, APITimeoutError, AsyncKernel, NotFoundError, RateLimitError
except ImportError as e:
    raise ImportError("kernel package is required. Install with: pip install kernel") from e


__all__ = [
    "SNAPSHOT_CODE",
    "BrowserSessionInfo",
    "ExecutePlaywrightParams",
    "KernelPlaywrightToolProvider",
    "PlaywrightExecMetadata",
    "PlaywrightExecutionOutput",
]

LOGGER = logging.getLogger(__name__)

SNAPSHOT_CODE = "return await page._snapshotForAI()"

_SNAPSHOT_TRUNCATION_SUFFIX = "\n... [snapshot truncated]"

EXECUTE_PLAYWRIGHT_DESCRIPTION = (
    "Execute some Playwright TypeScript code against the current page. "
    "The code can assume the existence of a `page` variable that is a Playwright page object. "
    "The code should have a return statement at the end that returns a value. "
    "The value will be available in the `result` property of the output. "
    "After every call a fresh accessibility snapshot of the page is returned in `new_snapshot`."
)


# =============================================================================
# Parameter and Output Models
# =============================================================================


class ExecutePlaywrightParams(BaseModel):
    """Parameters for remote Playwright execution."""

    code: Annotated[str, Field(description="The Playwright code to execute")]


class PlaywrightExecutionOutput(BaseModel):
    """Result of a code execution, augmented with the page snapshot taken afterwards."""

    success: Annotated[bool, Field(description="Whether the code executed successfully")]
    error: Annotated[str | None, Field(description="Error message if execution failed")] = None
    result: Annotated[Any | None, Field(description="The value returned by the code (if any)")] = None
    stderr: Annotated[str | None, Field(description="Standard error from the execution")] = None
    stdout: Annotated[str | None, Field(description="Standard output from the execution")] = None
    new_snapshot: Annotated[str | None, Field(description="The new snapshot of the page")] = None

    def to_content(self) -> str:
        """Render as JSON for the model, omitting fields that were not set."""
        return self.model_dump_json(exclude_none=True, indent=2)


class BrowserSessionInfo(BaseModel):
    """The live remote browser a provider is bound to."""

    session_id: str
    live_view_url: str | None = None
    cdp_ws_url: str | None = None


# =============================================================================
# Metadata
# =============================================================================


class PlaywrightExecMetadata(BaseModel):
    """Metadata for Playwright execution tracking."""

    num_uses: int = 1
    num_failures: int = 0

    def __add__(self, other: "PlaywrightExecMetadata") -> "PlaywrightExecMetadata":
        return PlaywrightExecMetadata(
            num_uses=self.num_uses + other.num_uses,
            num_failures=self.num_failures + other.num_failures,
        )


def _snapshot_to_text(value: Any) -> str | None:  # noqa: ANN401
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def _truncate(text: str, limit: int | None) -> str:
    if limit is None or len(text) <= limit:
        return text
    if limit <= len(_SNAPSHOT_TRUNCATION_SUFFIX):
        return text[:limit]
    return text[: limit - len(_SNAPSHOT_TRUNCATION_SUFFIX)] + _SNAPSHOT_TRUNCATION_SUFFIX


# =============================================================================
# KernelPlaywrightToolProvider
# =============================================================================


class KernelPlaywrightToolProvider(ToolProvider):
    """Remote browser tool provider using Kernel's managed browsers.

    On enter a browser is created (or an existing session is attached) and a
    single `execute_playwright` tool is returned. On exit the browser is deleted;
    a browser that no longer exists is treated as already cleaned up.

    Example:
        from kernel_agent.tools.playwright import KernelPlaywrightToolProvider

        agent = Agent(
            client=client,
            name="kernel_agent",
            tools=[KernelPlaywrightToolProvider(stealth=True)],
        )

        async with agent.session() as session:
            await session.run("Find the price of the first product on example-shop.com")

    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        headless: bool | None = None,
        stealth: bool | None = None,
        timeout_seconds: int | None = None,
        execute_timeout_sec: int | None = None,
        max_snapshot_chars: int | None = None,
        session_id: str | None = None,
        delete_on_exit: bool | None = None,
        tool_name: str = "execute_playwright",
        client: AsyncKernel | None = None,
    ) -> None:
        """Initialize KernelPlaywrightToolProvider.

        Args:
            api_key: Kernel API key (default: KERNEL_API_KEY env var)
            headless: Create the browser without a GUI (no live view)
            stealth: Create the browser in stealth mode
            timeout_seconds: Inactivity timeout after which Kernel deletes the browser
            execute_timeout_sec: Per-call timeout forwarded to Kernel's execute endpoint
            max_snapshot_chars: Truncate snapshots longer than this (default: no limit)
            session_id: Attach to an existing browser instead of creating one
            delete_on_exit: Delete the browser on exit (default: only if it was created here)
            tool_name: Name of the tool exposed to the model
            client: Pre-built AsyncKernel client, mainly for testing

        """
        self._api_key = api_key
        self._headless = headless
        self._stealth = stealth
        self._timeout_seconds = timeout_seconds
        self._execute_timeout_sec = execute_timeout_sec
        self._max_snapshot_chars = max_snapshot_chars
        self._attach_session_id = session_id
        self._delete_on_exit = delete_on_exit if delete_on_exit is not None else session_id is None
        self._tool_name = tool_name

        self._client: AsyncKernel | None = client
        self._session: BrowserSessionInfo | None = None

    @property
    def session(self) -> BrowserSessionInfo | None:
        """The live browser session, or None outside the context."""
        return self._session

    async def __aenter__(self) -> list[Tool[Any, PlaywrightExecMetadata]]:
        """Enter async context: create or attach to a browser and return tools."""
        if self._client is None:
            self._client = AsyncKernel(api_key=self._api_key) if self._api_key else AsyncKernel()

        if self._attach_session_id is not None:
            self._session = BrowserSessionInfo(session_id=self._attach_session_id)
            LOGGER.info("Attached to browser session %s", self._attach_session_id)
        else:
            self._session = await self._create_browser()
            LOGGER.info("Browser session created: %s", self._session.live_view_url or self._session.session_id)

        return [self._build_tool()]

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context: delete the browser."""
        await self.close()

    async def _create_browser(self) -> BrowserSessionInfo:
        if self._client is None:
            raise RuntimeError("Kernel client not initialized")

        create_kwargs: dict[str, Any] = {}
        if self._headless is not None:
            create_kwargs["headless"] = self._headless
        if self._stealth is not None:
            create_kwargs["stealth"] = self._stealth
        if self._timeout_seconds is not None:
            create_kwargs["timeout_seconds"] = self._timeout_seconds

        try:
            browser = await self._client.browsers.create(**create_kwargs)
        except APIError as e:
            raise BrowserSessionError(f"Failed to create Kernel browser: {e}") from e

        return BrowserSessionInfo(
            session_id=browser.session_id,
            live_view_url=getattr(browser, "browser_live_view_url", None),
            cdp_ws_url=getattr(browser, "cdp_ws_url", None),
        )

    async def close(self) -> None:
        """Delete the browser session. Safe to call more than once."""
        session = self._session
        self._session = None
        if session is None or self._client is None or not self._delete_on_exit:
            return

        try:
            await self._client.browsers.delete_by_id(session.session_id)
        except NotFoundError:
            LOGGER.debug("Browser session %s already deleted", session.session_id)
        else:
            LOGGER.info("Browser session %s deleted", session.session_id)

    def _require_session(self) -> tuple[AsyncKernel, BrowserSessionInfo]:
        """Return a client for execute calls, with the SDK's own retries disabled."""
        if self._client is None or self._session is None:
            raise RuntimeError("Browser session not initialized")
        return self._client.with_options(max_retries=0), self._session

    def _execute_kwargs(self) -> dict[str, Any]:
        if self._execute_timeout_sec is None:
            return {}
        return {"timeout_sec": self._execute_timeout_sec}

    @retry(
        retry=retry_if_exception_type((APITimeoutError, APIConnectionError, RateLimitError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def take_snapshot(self) -> str | None:
        """Return the accessibility snapshot of the current page.

        Retries up to 3 times on timeout/connection/rate-limit errors.
        """
        client, session = self._require_session()
        response = await client.browsers.playwright.execute(
            session.session_id, code=SNAPSHOT_CODE, **self._execute_kwargs()
        )
        if not response.success:
            LOGGER.warning("Page snapshot failed: %s", getattr(response, "error", None))
            return None
        return _snapshot_to_text(getattr(response, "result", None))

    async def execute(self, code: str) -> PlaywrightExecutionOutput:
        """Run `code` on the remote page, then snapshot the page."""
        client, session = self._require_session()

        LOGGER.info("Executing Playwright code...")
        LOGGER.debug("Code for %s:\n%s", session.session_id, code)
        try:
            response = await client.browsers.playwright.execute(
                session.session_id, code=code, **self._execute_kwargs()
            )
        except NotFoundError:
            raise
        except APIError as e:
            output = PlaywrightExecutionOutput(success=False, error=f"Kernel API error: {e}")
        else:
            output = PlaywrightExecutionOutput(
                success=response.success,
                error=getattr(response, "error", None),
                result=getattr(response, "result", None),
                stderr=getattr(response, "stderr", None),
                stdout=getattr(response, "stdout", None),
            )

        try:
            snapshot = await self.take_snapshot()
        except APIError as e:
            LOGGER.warning("Page snapshot failed: %s", e)
            snapshot = None

        if snapshot is not None:
            output.new_snapshot = _truncate(snapshot, self._max_snapshot_chars)
        return output

    def _build_tool(self) -> Tool[ExecutePlaywrightParams, PlaywrightExecMetadata]:
        """Build the execute_playwright tool."""

        async def execute_playwright_executor(params: ExecutePlaywrightParams) -> ToolResult[PlaywrightExecMetadata]:
            """Execute Playwright code and return its result with a fresh snapshot."""
            output = await self.execute(params.code)
            return ToolResult(
                content=output.to_content(),
                success=output.success,
                metadata=PlaywrightExecMetadata(num_failures=0 if output.success else 1),
            )

        return Tool(
            name=self._tool_name,
            description=EXECUTE_PLAYWRIGHT_DESCRIPTION,
            parameters=ExecutePlaywrightParams,
            executor=execute_playwright_executor,
        )
