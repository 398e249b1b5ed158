# workers/dispatcher.py
"""
Task Dispatcher - one fresh worker process per resolved query.

Per task:
    spawn -> register -> write request, close stdin -> read framed stdout
    -> settle on first error/result line (or exit / timeout) -> terminate

Every outcome is data on the WorkerTask; nothing task-level is raised past
dispatch(). Tasks of a batch run concurrently and never cancel each other.
"""

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config import KILL_GRACE_SECONDS, TASK_TIMEOUT_SECONDS, WORKER_COMMAND
from core.models import ResolvedQuery, WorkerTask
from utils.logger import log_debug, log_error, log_info, log_warning
from workers.protocol import LineFramer, build_request, encode_request, error_message
from workers.registry import WorkerRegistry, get_registry, terminate_worker

READ_CHUNK = 4096
STDERR_LINE_LIMIT = 8192


class TaskDispatcher:
    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        timeout: float = TASK_TIMEOUT_SECONDS,
        kill_grace: float = KILL_GRACE_SECONDS,
        registry: Optional[WorkerRegistry] = None,
    ):
        self.command = list(command or WORKER_COMMAND)
        self.timeout = timeout
        self.kill_grace = kill_grace
        self.registry = registry or get_registry()

    async def dispatch(self, queries: Iterable[ResolvedQuery]) -> List[WorkerTask]:
        """
        Fan-out / fan-in. Returns the tasks in query order once every one of
        them has settled.
        """
        tasks = [WorkerTask(query=q, timeout=self.timeout) for q in queries]
        if not tasks:
            return tasks
        log_info(f"[Dispatcher] Dispatching {len(tasks)} task(s)")
        await asyncio.gather(*(self.run_task(t) for t in tasks))
        return tasks

    async def run_task(self, task: WorkerTask) -> WorkerTask:
        label = task.resource_kind
        task.started_at = time.monotonic()
        log_debug(f"[Dispatcher:{label}] Executing {task.query.describe()}")

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            log_error(f"[Dispatcher:{label}] Failed to start worker {self.command}: {e}")
            task.settle_failure(f"Failed to start worker: {e}")
            return task

        task.pid = process.pid
        self.registry.register(process, label)
        watcher = asyncio.ensure_future(self.registry.watch(process))
        stderr_drain = asyncio.ensure_future(self._drain_stderr(process, label))
        stdout_discard: Optional[asyncio.Future] = None

        try:
            try:
                await asyncio.wait_for(self._exchange(process, task), timeout=task.remaining())
            except asyncio.TimeoutError:
                if task.settle_failure(f"Request timeout after {self.timeout:g} seconds"):
                    log_warning(f"[Dispatcher:{label}] Timeout after {self.timeout:g}s, terminating worker {process.pid}")
            except Exception as e:
                log_error(f"[Dispatcher:{label}] Worker I/O failed: {e}")
                task.settle_failure(f"Worker I/O error: {e}")

            if process.returncode is None:
                # Unread stdout must keep flowing or the pipe never reaches EOF
                stdout_discard = asyncio.ensure_future(self._discard(process.stdout))
                await terminate_worker(process, self.kill_grace)
            await watcher
            await asyncio.wait({stderr_drain}, timeout=0.5)
        finally:
            pending = [f for f in (watcher, stderr_drain, stdout_discard) if f is not None and not f.done()]
            for f in pending:
                f.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        self._log_settled(task)
        return task

    async def _exchange(self, process: asyncio.subprocess.Process, task: WorkerTask) -> None:
        label = task.resource_kind
        request = build_request(task.query)
        request_id = request["id"]

        send_error: Optional[Exception] = None
        try:
            process.stdin.write(encode_request(request))
            await process.stdin.drain()
            process.stdin.close()
        except (BrokenPipeError, ConnectionResetError) as e:
            # The worker may still have printed an error line before dying
            log_error(f"[Dispatcher:{label}] Failed to send request: {e}")
            send_error = e

        framer = LineFramer(label)
        while not task.settled:
            chunk = await process.stdout.read(READ_CHUNK)
            if not chunk:
                break
            self._apply(task, framer.feed(chunk), request_id)

        if not task.settled:
            self._apply(task, framer.flush(), request_id)
        if task.settled:
            return
        if send_error is not None:
            task.settle_failure(f"Failed to send request: {send_error}")
            return

        code = await process.wait()
        if code != 0:
            task.settle_failure(f"Worker exited with code {code}")
        else:
            # Clean exit without a result line counts as "no data", not as an error
            log_debug(f"[Dispatcher:{label}] Worker exited 0 without a result line")
            task.settle_success(None)

    def _apply(self, task: WorkerTask, messages: List[Dict[str, Any]], request_id: Any) -> None:
        for message in messages:
            if task.settled:
                return
            if "id" in message and message["id"] != request_id:
                log_debug(f"[Dispatcher:{task.resource_kind}] Response id {message['id']!r} != request id {request_id!r}")
            if message.get("error") is not None:
                reason = error_message(message["error"])
                log_error(f"[Dispatcher:{task.resource_kind}] Server returned error: {reason}")
                task.settle_failure(reason)
            elif message.get("result") is not None:
                task.settle_success(message["result"])

    async def _drain_stderr(self, process: asyncio.subprocess.Process, label: str) -> None:
        # Diagnostic channel only, never parsed for control flow
        pending = b""
        while True:
            chunk = await process.stderr.read(READ_CHUNK)
            if not chunk:
                break
            pending += chunk
            *lines, pending = pending.split(b"\n")
            for raw in lines:
                self._log_stderr(label, raw)
            if len(pending) > STDERR_LINE_LIMIT:
                # Unterminated line: log the head, drop the rest
                self._log_stderr(label, pending[:STDERR_LINE_LIMIT])
                pending = b""
        self._log_stderr(label, pending)

    def _log_stderr(self, label: str, raw: bytes) -> None:
        line = raw.decode("utf-8", errors="replace").rstrip()
        if line:
            log_debug(f"[Worker:{label}] {line}")

    async def _discard(self, stream: asyncio.StreamReader) -> None:
        while await stream.read(READ_CHUNK):
            pass

    def _log_settled(self, task: WorkerTask) -> None:
        elapsed = (task.settled_at or time.monotonic()) - task.started_at
        if task.outcome and task.outcome.success:
            log_info(f"[Dispatcher:{task.resource_kind}] Settled OK in {elapsed:.2f}s")
        else:
            error = task.outcome.error if task.outcome else "unsettled"
            log_info(f"[Dispatcher:{task.resource_kind}] Settled FAILED in {elapsed:.2f}s: {error}")
