"""
System interaction utilities.

This module provides the command-execution facility used by the cluster
lifecycle code:

- Spawning commands with captured output
- Cancelling commands by terminating their whole process tree
- Waiting for confirmed exit before reporting a cancellation
"""

from .commands import CommandResult, run_command
from .processes import TimeoutConstants, is_process_alive, terminate_process_tree

__all__ = [
    "CommandResult",
    "run_command",
    "TimeoutConstants",
    "is_process_alive",
    "terminate_process_tree",
]
