"""kernel-agent: an LLM agent that completes tasks in a remote Kernel browser.

The agent loop is provided by Stirrup; this package contributes the Kernel-backed
Playwright execution tool and the command line interface.

Quick start:
    export KERNEL_API_KEY=...
    export OPENAI_API_KEY=sk-...
    kernel-agent --task "Find the top story on news.ycombinator.com"
"""

from kernel_agent.config import KernelAgentConfig
from kernel_agent.exceptions import BrowserSessionError, EmptyTaskError, KernelAgentError
from kernel_agent.tools.playwright import KernelPlaywrightToolProvider, PlaywrightExecutionOutput

__all__ = [
    "BrowserSessionError",
    "EmptyTaskError",
    "KernelAgentConfig",
    "KernelAgentError",
    "KernelPlaywrightToolProvider",
    "PlaywrightExecutionOutput",
]
