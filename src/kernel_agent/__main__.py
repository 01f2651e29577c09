"""Run kernel-agent as a module.

Usage:
    export KERNEL_API_KEY=...
    export OPENAI_API_KEY=sk-...
    python -m kernel_agent
"""

from kernel_agent.cli import main

main()
