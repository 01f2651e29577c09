"""Runtime configuration for kernel-agent.

Values come from environment variables (a `.env` file in the working directory
is loaded first) and can be overridden by CLI flags.

Environment variables:
    OPENAI_API_KEY                      API key for the default OpenAI endpoint
    KERNEL_API_KEY                      Kernel API key (read by the Kernel SDK)
    KERNEL_AGENT_MODEL                  Model identifier (default: gpt-5-mini)
    KERNEL_AGENT_BASE_URL               Chat completions base URL
    KERNEL_AGENT_API_KEY                API key, takes precedence over OPENAI_API_KEY
    KERNEL_AGENT_CLIENT                 chat_completions | litellm
    KERNEL_AGENT_MAX_TURNS              Agent step budget (default: 20)
    KERNEL_AGENT_STEALTH                Create browsers in stealth mode (true/false)
    KERNEL_AGENT_HEADLESS               Create headless browsers (true/false)
    KERNEL_AGENT_BROWSER_TIMEOUT        Browser inactivity timeout in seconds
    KERNEL_AGENT_EXECUTE_TIMEOUT        Per-call execution timeout in seconds
    KERNEL_AGENT_MAX_SNAPSHOT_CHARS     Truncate page snapshots to this many characters
    KERNEL_AGENT_SESSION_ID             Attach to an existing Kernel browser
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_TURNS",
    "DEFAULT_MODEL",
    "KernelAgentConfig",
]

DEFAULT_MODEL = "gpt-5-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MAX_TURNS = 20

ENV_PREFIX = "KERNEL_AGENT_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (got {value!r})")


class KernelAgentConfig(BaseModel):
    """Configuration for a single kernel-agent run."""

    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = None
    client: Literal["chat_completions", "litellm"] = "chat_completions"
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1)
    max_tokens: int = Field(default=64_000, ge=1)
    system_prompt: str | None = None
    output_dir: str | None = None

    kernel_api_key: str | None = None
    headless: bool | None = None
    stealth: bool | None = None
    browser_timeout_seconds: int | None = Field(default=None, ge=1)
    execute_timeout_sec: int | None = Field(default=None, ge=1)
    max_snapshot_chars: int | None = Field(default=None, ge=1)
    session_id: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, load_dotenv_file: bool = True) -> KernelAgentConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            load_dotenv_file: Load a `.env` file into os.environ first
        """
        if load_dotenv_file and environ is None:
            load_dotenv()
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        values: dict[str, Any] = {}
        for field, name in (
            ("model", "MODEL"),
            ("base_url", "BASE_URL"),
            ("client", "CLIENT"),
            ("system_prompt", "SYSTEM_PROMPT"),
            ("output_dir", "OUTPUT_DIR"),
            ("session_id", "SESSION_ID"),
        ):
            if (value := get(name)) is not None:
                values[field] = value

        for field, name in (
            ("max_turns", "MAX_TURNS"),
            ("max_tokens", "MAX_TOKENS"),
            ("browser_timeout_seconds", "BROWSER_TIMEOUT"),
            ("execute_timeout_sec", "EXECUTE_TIMEOUT"),
            ("max_snapshot_chars", "MAX_SNAPSHOT_CHARS"),
        ):
            if (value := get(name)) is not None:
                values[field] = int(value)

        for field, name in (("headless", "HEADLESS"), ("stealth", "STEALTH")):
            if (value := get(name)) is not None:
                values[field] = _parse_bool(ENV_PREFIX + name, value)

        api_key = get("API_KEY") or env.get("OPENAI_API_KEY") or None
        if api_key:
            values["api_key"] = api_key
        if kernel_api_key := env.get("KERNEL_API_KEY"):
            values["kernel_api_key"] = kernel_api_key

        return cls(**values)

    def with_overrides(self, **overrides: Any) -> KernelAgentConfig:  # noqa: ANN401
        """Return a copy with every non-None override applied."""
        update = {key: value for key, value in overrides.items() if value is not None}
        return self.model_validate({**self.model_dump(), **update})
