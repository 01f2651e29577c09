class KernelAgentError(Exception):
    """Base class for errors raised by kernel-agent."""


class EmptyTaskError(KernelAgentError):
    """Raised when the user supplies an empty or whitespace-only task."""


class BrowserSessionError(KernelAgentError):
    """Raised when a remote Kernel browser session cannot be created."""
