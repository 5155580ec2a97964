"""
Process tree termination.

Build tools spawn deep process trees (xcodebuild -> swift-frontend -> ...);
killing only the shell we started leaves those running, so termination walks
the tree with psutil and escalates from SIGTERM to SIGKILL.
"""

import logging
import os
import signal
from typing import List

import psutil

logger = logging.getLogger(__name__)


def _is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in [psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def _get_process_children(parent: psutil.Process) -> List[psutil.Process]:
    try:
        return parent.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        # Parent or children may have exited during enumeration
        return []


def _signal_processes(processes: List[psutil.Process], force: bool) -> List[psutil.Process]:
    signalled = []
    for process in processes:
        try:
            if force:
                process.kill()
            else:
                process.terminate()
            signalled.append(process)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending signal to PID {process.pid}")
    return signalled


def terminate_process_tree(pid: int, name: str = "process", timeout: float = 5.0) -> bool:
    """
    Terminate a process and all of its descendants.

    SIGTERM is sent to the whole tree first; whatever is still alive after
    ``timeout`` seconds receives SIGKILL.

    Args:
        pid: PID of the root process
        name: Description used in log messages
        timeout: Seconds to wait after SIGTERM before escalating

    Returns:
        True if no process of the tree is left alive
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return True

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.info(f"Process {name} (PID: {pid}) already terminated")
        return True
    except psutil.AccessDenied:
        logger.warning(f"Access denied to process {name} (PID: {pid}), attempting force kill")
        try:
            os.kill(pid, signal.SIGKILL)
        except OSError as e:
            logger.error(f"Failed to force kill PID {pid}: {e}")
            return False
        return True

    children = _get_process_children(parent)
    logger.info(f"Terminating {name} (PID: {pid}) and {len(children)} children")

    remaining: List[psutil.Process] = []
    for force, wait in ((False, timeout), (True, max(1.0, timeout / 2))):
        # Children spawned after the first snapshot are picked up as well.
        tree = {p.pid: p for p in [parent] + children + _get_process_children(parent)}
        alive = [p for p in tree.values() if _is_process_alive(p)]
        if not alive:
            remaining = []
            break
        signalled = _signal_processes(alive, force=force)
        _, still_alive = psutil.wait_procs(signalled, timeout=wait)
        remaining = [p for p in still_alive if _is_process_alive(p)]
        if not remaining:
            break
        logger.warning(f"{len(remaining)} processes of {name} still alive after {'SIGKILL' if force else 'SIGTERM'}")

    if remaining:
        logger.error(f"Failed to terminate {len(remaining)} processes for {name}: {[p.pid for p in remaining]}")
        return False

    logger.info(f"Termination completed for {name} (PID: {pid})")
    return True
