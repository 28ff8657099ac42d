"""
Command execution utilities.

run_command spawns a command, captures its output and waits for it to exit.
It is cancellable: when the awaiting task is cancelled the command's process
tree is terminated and its exit awaited before the cancellation propagates,
so a cancelled command never keeps running in the background.
"""

import asyncio
import logging
import shlex
from dataclasses import dataclass
from typing import Optional, Sequence

from ..validation import ErrorSeverity, RemoteActionError, handle_subprocess_error
from .processes import terminate_process_tree

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a finished command."""

    argv: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)

    def check(self, node: str) -> "CommandResult":
        """
        Raise RemoteActionError for a failed command.

        Args:
            node: Node (or other target) the command ran against
        """
        if not self.ok:
            detail = self.stderr.strip() or self.stdout.strip() or self.command_line
            raise RemoteActionError(node, detail, returncode=self.returncode)
        return self


async def _terminate(process: asyncio.subprocess.Process, name: str) -> None:
    """Terminate a running command's tree and wait for it to exit."""
    if process.returncode is None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, terminate_process_tree, process.pid, name)
    await process.wait()
    logger.info(f"Command {name} terminated with exit code {process.returncode}")


async def run_command(
    argv: Sequence[str],
    input: Optional[str] = None,
    name: Optional[str] = None,
) -> CommandResult:
    """
    Execute a command and capture its output.

    Args:
        argv: Program and arguments
        input: Text written to the command's stdin
        name: Human-readable name for log messages, defaults to the command line

    Returns:
        CommandResult; returncode is -1 when the program cannot be started.

    Raises:
        asyncio.CancelledError: If the awaiting task was cancelled, after the
            command's process tree has exited
    """
    argv = list(argv)
    name = name or shlex.join(argv)
    logger.debug(f"Executing command: '{name}'")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except FileNotFoundError as e:
        logger.error(f"Command not found: {argv[0]}: {type(e).__name__}: {e}")
        return CommandResult(argv, -1, "", f"Error: Command not found '{argv[0]}'")
    except OSError as e:
        handle_subprocess_error(e, name, severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
        return CommandResult(argv, -1, "", f"Error: could not start '{argv[0]}': {e}")

    try:
        stdout, stderr = await process.communicate(
            input.encode("utf-8") if input is not None else None
        )
    except asyncio.CancelledError:
        logger.info(f"Cancelling command {name} (PID: {process.pid})")
        await _terminate(process, name)
        raise

    result = CommandResult(
        argv,
        process.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )
    if not result.ok:
        logger.debug(f"Command '{name}' exited with {result.returncode}: {result.stderr.strip()}")
    return result
