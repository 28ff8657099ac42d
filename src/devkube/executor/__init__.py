"""
Node action execution for the devkube package.

This module runs one action concurrently on every cluster node with shared
cancellation and confirmed termination of the remaining actions.
"""

from .node_actions import ActionTask, NodeAction, NodeActionExecutor

__all__ = [
    "ActionTask",
    "NodeAction",
    "NodeActionExecutor",
]
