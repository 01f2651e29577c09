"""Tools exposed to the agent.

The only tool is remote Playwright execution against a Kernel browser; the
agent loop, finish tool and step budgeting come from Stirrup.
"""

from kernel_agent.tools.playwright import (
    BrowserSessionInfo,
    ExecutePlaywrightParams,
    KernelPlaywrightToolProvider,
    PlaywrightExecMetadata,
    PlaywrightExecutionOutput,
)

__all__ = [
    "BrowserSessionInfo",
    "ExecutePlaywrightParams",
    "KernelPlaywrightToolProvider",
    "PlaywrightExecMetadata",
    "PlaywrightExecutionOutput",
]
