"""
Process tree termination.

Commands started by the engine run in their own session. When one of them has
to be stopped, its whole tree is signalled with escalating force until every
process has exited, so no orphaned `docker exec` or `kind` children survive
the operation that started them.
"""

import logging
import os
import signal
from typing import List

import psutil

logger = logging.getLogger(__name__)


class TimeoutConstants:
    """
    Centralized timeout configuration for process termination.
    """
    TERMINATION_GRACEFUL_TIMEOUT = 3
    TERMINATION_INTERRUPT_TIMEOUT = 2
    TERMINATION_FORCE_TIMEOUT = 2


_PHASES = [
    {
        "name": "graceful",
        "signal": "SIGTERM",
        "timeout": TimeoutConstants.TERMINATION_GRACEFUL_TIMEOUT,
        "force": False,
    },
    {
        "name": "interrupt",
        "signal": "SIGINT",
        "timeout": TimeoutConstants.TERMINATION_INTERRUPT_TIMEOUT,
        "force": False,
    },
    {
        "name": "force_kill",
        "signal": "SIGKILL",
        "timeout": TimeoutConstants.TERMINATION_FORCE_TIMEOUT,
        "force": True,
    },
]


def is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in [psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def _process_children(parent: psutil.Process) -> List[psutil.Process]:
    """Alive descendants of a process; it may exit while we enumerate."""
    try:
        return [child for child in parent.children(recursive=True) if is_process_alive(child)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def _signal_processes(processes: List[psutil.Process], phase: dict) -> List[psutil.Process]:
    """Send the phase's signal and return the processes that received it."""
    signalled = []
    signal_name = phase["signal"]

    for process in processes:
        if not is_process_alive(process):
            continue
        try:
            if phase["force"]:
                process.kill()
            elif signal_name == "SIGTERM":
                process.terminate()
            else:
                process.send_signal(signal.SIGINT)
            signalled.append(process)
            logger.debug(f"Sent {signal_name} to PID {process.pid}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending {signal_name} to PID {process.pid}")

    return signalled


def _wait_for_termination(processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
    """Wait for processes to exit and return the ones still alive."""
    if not processes:
        return []
    _, still_alive = psutil.wait_procs(processes, timeout=timeout)
    return [process for process in still_alive if is_process_alive(process)]


def _kill_process_group(pid: int, name: str) -> None:
    """Kill whatever is left in the process group led by `pid`."""
    try:
        os.killpg(pid, signal.SIGKILL)
        logger.debug(f"Sent SIGKILL to process group {pid} for {name}")
    except ProcessLookupError:
        pass
    except PermissionError:
        logger.debug(f"No permission to kill process group {pid}")


def terminate_process_tree(pid: int, name: str) -> bool:
    """
    Terminate a process and all of its descendants.

    Signals the tree with SIGTERM, then SIGINT, then SIGKILL, waiting between
    phases and re-reading the children each time since they may change.

    Args:
        pid: Process to terminate
        name: Human-readable name used in log messages

    Returns:
        True if every process of the tree is gone afterwards
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return True

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.debug(f"Process {name} (PID: {pid}) already terminated")
        return True

    remaining: List[psutil.Process] = []
    for phase_idx, phase in enumerate(_PHASES):
        children = _process_children(parent)
        processes = [parent] + children if is_process_alive(parent) else children
        if not processes:
            remaining = []
            break

        if phase_idx == 0:
            logger.info(f"Terminating {name} (PID: {pid}) and {len(children)} children")
        else:
            logger.info(f"Phase {phase['name']}: {len(processes)} processes of {name} still running")

        signalled = _signal_processes(processes, phase)
        remaining = _wait_for_termination(signalled, phase["timeout"])
        if not remaining:
            logger.debug(f"{name} terminated in phase {phase['name']}")
            break

    if hasattr(os, "killpg"):
        _kill_process_group(pid, name)

    if remaining:
        logger.error(f"Failed to terminate {len(remaining)} processes of {name}")
        return False
    return True
