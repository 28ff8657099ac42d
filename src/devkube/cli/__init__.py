"""
Command-line interface for the devkube package.

This module provides the main CLI entry point of the engine.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
