# workers/registry.py
"""
Worker Lifecycle Registry.

Tracks every live worker process from spawn to exit so that a quit or a
double interrupt can take all of them down. Spawn and exit handlers both run
on the event loop thread, so no lock is needed.
"""

import asyncio
import os
import signal
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from config import KILL_GRACE_SECONDS
from utils.logger import log_debug, log_info, log_warning


# ============================================================
# SIGNAL HELPERS
# ============================================================

def send_signal(process: asyncio.subprocess.Process, sig: int) -> bool:
    """
    Signals the worker's process group (workers run in their own session),
    falling back to the process itself.

    Returns:
        False if the process is already gone
    """
    if process.returncode is not None:
        return False
    if hasattr(os, "killpg"):
        try:
            os.killpg(process.pid, sig)
            return True
        except (ProcessLookupError, PermissionError):
            pass
    try:
        process.send_signal(sig)
        return True
    except ProcessLookupError:
        return False


async def terminate_worker(process: asyncio.subprocess.Process, grace: float = KILL_GRACE_SECONDS) -> Optional[int]:
    """
    SIGTERM, then SIGKILL if the worker is still alive after `grace` seconds.

    Returns:
        The exit code
    """
    if process.returncode is not None:
        return process.returncode

    send_signal(process, signal.SIGTERM)
    try:
        return await asyncio.wait_for(process.wait(), timeout=grace)
    except asyncio.TimeoutError:
        log_warning(f"[Registry] Worker {process.pid} ignored SIGTERM for {grace}s, killing")
        send_signal(process, signal.SIGKILL)
        return await process.wait()


# ============================================================
# TRACKED WORKER
# ============================================================

@dataclass
class TrackedWorker:
    """One live worker process."""
    pid: int
    process: asyncio.subprocess.Process
    resource_kind: str
    started_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pid": self.pid,
            "resource_kind": self.resource_kind,
            "started_at": self.started_at,
            "returncode": self.process.returncode,
        }


# ============================================================
# WORKER REGISTRY
# ============================================================

class WorkerRegistry:
    """Live-process set keyed by PID."""

    def __init__(self):
        self._workers: Dict[int, TrackedWorker] = {}

    def register(self, process: asyncio.subprocess.Process, resource_kind: str = "unknown") -> TrackedWorker:
        tracked = TrackedWorker(
            pid=process.pid,
            process=process,
            resource_kind=resource_kind,
            started_at=datetime.now().isoformat(),
        )
        self._workers[process.pid] = tracked
        log_debug(f"[Registry] Tracking worker {process.pid} ({resource_kind}), live={len(self._workers)}")
        return tracked

    def deregister(self, pid: int) -> bool:
        """
        Removes a worker. Safe to call from several exit paths;
        only the first call removes anything.
        """
        tracked = self._workers.pop(pid, None)
        if tracked is None:
            return False
        log_debug(f"[Registry] Untracked worker {pid}, live={len(self._workers)}")
        return True

    async def watch(self, process: asyncio.subprocess.Process) -> Optional[int]:
        """Deregisters the worker once its process exits."""
        code = await process.wait()
        self.deregister(process.pid)
        return code

    def get(self, pid: int) -> Optional[TrackedWorker]:
        return self._workers.get(pid)

    def is_tracked(self, pid: int) -> bool:
        return pid in self._workers

    def get_all(self) -> List[TrackedWorker]:
        return list(self._workers.values())

    @property
    def count(self) -> int:
        return len(self._workers)

    async def shutdown(self, grace: float = KILL_GRACE_SECONDS) -> int:
        """
        Stops every live worker: SIGTERM to all, SIGKILL to survivors after
        the grace period. The registry is empty afterwards.

        Returns:
            Number of workers that were live during shutdown
        """
        total = 0
        # Workers spawned while a round is in progress get their own round
        while self._workers:
            workers = self.get_all()
            total += len(workers)
            await self._stop(workers, grace)
        return total

    async def _stop(self, workers: List[TrackedWorker], grace: float) -> None:
        log_info(f"[Registry] Shutting down {len(workers)} worker(s)")
        for w in workers:
            send_signal(w.process, signal.SIGTERM)

        await asyncio.gather(
            *(asyncio.wait_for(w.process.wait(), timeout=grace) for w in workers),
            return_exceptions=True,
        )

        survivors = [w for w in workers if w.process.returncode is None]
        if survivors:
            log_warning(f"[Registry] Killing {len(survivors)} worker(s) after {grace}s grace period")
            for w in survivors:
                send_signal(w.process, signal.SIGKILL)
            await asyncio.gather(*(w.process.wait() for w in survivors), return_exceptions=True)

        for w in workers:
            self.deregister(w.pid)


# ============================================================
# GLOBAL REGISTRY INSTANCE
# ============================================================

registry = WorkerRegistry()


def get_registry() -> WorkerRegistry:
    return registry
