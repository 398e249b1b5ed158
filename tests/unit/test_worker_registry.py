import asyncio
import sys
import time

from workers.registry import WorkerRegistry, terminate_worker


IGNORES_SIGTERM = (
    "import signal, time\n"
    "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
    "print('ready', flush=True)\n"
    "time.sleep(60)\n"
)


async def _spawn(source: str):
    process = await asyncio.create_subprocess_exec(
        sys.executable, "-c", source,
        stdout=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    # wait until the handler is installed
    await process.stdout.readline()
    return process


def test_shutdown_empties_registry():
    async def scenario():
        registry = WorkerRegistry()
        stubborn = await _spawn(IGNORES_SIGTERM)
        sleeper = await _spawn("import time\nprint('ready', flush=True)\ntime.sleep(60)\n")
        registry.register(stubborn, "pods")
        registry.register(sleeper, "devbox")
        assert registry.count == 2

        started = time.monotonic()
        stopped = await registry.shutdown(grace=0.5)
        return registry, stopped, time.monotonic() - started, stubborn, sleeper

    registry, stopped, elapsed, stubborn, sleeper = asyncio.run(scenario())

    assert stopped == 2
    assert registry.count == 0
    assert stubborn.returncode is not None
    assert sleeper.returncode is not None
    assert elapsed < 5


def test_shutdown_with_no_workers():
    assert asyncio.run(WorkerRegistry().shutdown(grace=0.1)) == 0


def test_watch_deregisters_exactly_once():
    async def scenario():
        registry = WorkerRegistry()
        process = await asyncio.create_subprocess_exec(sys.executable, "-c", "pass")
        registry.register(process, "pods")
        assert registry.is_tracked(process.pid)

        code = await registry.watch(process)
        return registry, process, code

    registry, process, code = asyncio.run(scenario())

    assert code == 0
    assert registry.count == 0
    assert registry.deregister(process.pid) is False


def test_terminate_escalates_to_kill():
    async def scenario():
        process = await _spawn(IGNORES_SIGTERM)
        return await terminate_worker(process, grace=0.3)

    code = asyncio.run(scenario())

    # negative return code = killed by that signal
    assert code == -9


def test_tracked_worker_to_dict():
    async def scenario():
        registry = WorkerRegistry()
        process = await asyncio.create_subprocess_exec(sys.executable, "-c", "pass")
        tracked = registry.register(process, "cluster")
        await registry.watch(process)
        return tracked.to_dict()

    info = asyncio.run(scenario())

    assert info["resource_kind"] == "cluster"
    assert info["returncode"] == 0
    assert "started_at" in info
