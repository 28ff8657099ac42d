"""
Parallel execution of one action across all cluster nodes.

NodeActionExecutor starts one asyncio task per node. The tasks of one run
share a single cancellation scope: as soon as one of them fails, or the
caller itself is cancelled, every sibling still running is cancelled, which
makes run_command terminate the remote process it is waiting for. The run
only returns once every task has actually finished.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from ..validation import ErrorSeverity, RemoteActionError, handle_error

logger = logging.getLogger(__name__)

NodeAction = Callable[[str], Awaitable[Any]]


@dataclass
class ActionTask:
    """The action running against one node."""

    node: str
    task: "asyncio.Task[Any]"

    @property
    def failure(self) -> Optional[BaseException]:
        """The task's exception, None if it succeeded, was cancelled or is still running."""
        if not self.task.done() or self.task.cancelled():
            return None
        return self.task.exception()


class NodeActionExecutor:
    """
    Runs an action concurrently on a set of nodes.

    Args:
        name: Description of the action used in log messages and task names
    """

    def __init__(self, name: str = "node action"):
        self.name = name

    async def run(self, nodes: Sequence[str], action: NodeAction) -> Dict[str, Any]:
        """
        Run `action(node)` for every node and wait for all of them.

        Returns:
            Mapping of node name to the action's return value

        Raises:
            RemoteActionError: The first failure observed; the other actions
                have been cancelled and have finished by the time it is raised
            asyncio.CancelledError: If the caller was cancelled, after every
                action has finished
        """
        if not nodes:
            logger.debug(f"No nodes to run {self.name} on")
            return {}

        logger.info(f"Running {self.name} on {len(nodes)} nodes")
        tasks = [
            ActionTask(node, asyncio.create_task(action(node), name=f"{self.name}:{node}"))
            for node in nodes
        ]
        pending = {t.task for t in tasks}
        first_failure: Optional[ActionTask] = None

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for action_task in tasks:
                    if action_task.task in done and action_task.failure is not None:
                        logger.warning(f"{self.name} failed on {action_task.node}: {action_task.failure}")
                        if first_failure is None:
                            first_failure = action_task
                if first_failure is not None and pending:
                    logger.info(f"Cancelling {self.name} on {len(pending)} remaining nodes")
                    self._cancel(pending)
                    break
        except asyncio.CancelledError:
            logger.warning(f"{self.name} cancelled, stopping {len(pending)} running nodes")
            self._cancel(pending)
            await self._join(t.task for t in tasks)
            self._collect(tasks)
            raise

        await self._join(t.task for t in tasks)
        self._collect(tasks)

        if first_failure is not None:
            error = self._as_remote_error(first_failure)
            handle_error(
                error=error,
                context=f"{self.name} on {first_failure.node}",
                severity=ErrorSeverity.ERROR,
                reraise=True,
                logger=logger,
            )

        logger.info(f"{self.name} succeeded on all {len(nodes)} nodes")
        return {t.node: t.task.result() for t in tasks}

    @staticmethod
    def _cancel(tasks: Iterable["asyncio.Task[Any]"]) -> None:
        for task in tasks:
            task.cancel()

    @staticmethod
    async def _join(tasks: Iterable["asyncio.Task[Any]"]) -> None:
        """
        Wait until every task is done.

        A cancellation arriving while waiting is deferred until all tasks
        have finished and then re-raised.
        """
        remaining = {task for task in tasks if not task.done()}
        cancelled = False
        while remaining:
            try:
                _, remaining = await asyncio.wait(remaining)
            except asyncio.CancelledError:
                cancelled = True
        if cancelled:
            raise asyncio.CancelledError()

    @staticmethod
    def _collect(tasks: List[ActionTask]) -> None:
        """Retrieve every task's exception so none is reported as unhandled."""
        for action_task in tasks:
            if action_task.task.done() and not action_task.task.cancelled():
                action_task.task.exception()

    @staticmethod
    def _as_remote_error(action_task: ActionTask) -> RemoteActionError:
        failure = action_task.failure
        if isinstance(failure, RemoteActionError):
            return failure
        error = RemoteActionError(action_task.node, f"{type(failure).__name__}: {failure}")
        error.__cause__ = failure
        return error
