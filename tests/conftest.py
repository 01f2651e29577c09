from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from kernel import APIConnectionError, InternalServerError, NotFoundError


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and .env files out of tests."""
    for name in ("OPENAI_API_KEY", "KERNEL_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("kernel_agent.config.load_dotenv", lambda *args, **kwargs: False)


@pytest.fixture
def mock_kernel() -> MagicMock:
    """Create a mock AsyncKernel client with one live browser."""
    kernel = MagicMock()

    browser = MagicMock()
    browser.session_id = "sess_123"
    browser.browser_live_view_url = "https://live.onkernel.com/sess_123"
    browser.cdp_ws_url = "wss://cdp.onkernel.com/sess_123"

    kernel.browsers = MagicMock()
    kernel.browsers.create = AsyncMock(return_value=browser)
    kernel.browsers.delete_by_id = AsyncMock()
    kernel.browsers.playwright = MagicMock()
    kernel.browsers.playwright.execute = AsyncMock()
    kernel.with_options = MagicMock(return_value=kernel)
    return kernel


@pytest.fixture
def execute_response() -> Callable[..., MagicMock]:
    """Factory for fake Kernel Playwright execute responses."""

    def _make(
        *,
        success: bool = True,
        result: Any = None,  # noqa: ANN401
        error: str | None = None,
        stdout: str | None = None,
        stderr: str | None = None,
    ) -> MagicMock:
        response = MagicMock()
        response.success = success
        response.result = result
        response.error = error
        response.stdout = stdout
        response.stderr = stderr
        return response

    return _make


def _request(method: str = "GET") -> httpx.Request:
    return httpx.Request(method, "https://api.onkernel.com/browsers/sess_123")


@pytest.fixture
def not_found_error() -> NotFoundError:
    request = _request("DELETE")
    return NotFoundError("browser not found", response=httpx.Response(404, request=request), body=None)


@pytest.fixture
def server_error() -> InternalServerError:
    request = _request("POST")
    return InternalServerError("internal error", response=httpx.Response(500, request=request), body=None)


@pytest.fixture
def connection_error() -> APIConnectionError:
    return APIConnectionError(request=_request("POST"))
