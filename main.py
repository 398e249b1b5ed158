#!/usr/bin/env python3
"""
main.py - interactive entry point.

Usage:
    python main.py [--raw] [--no-ai]

One free-text line per turn, e.g.
    sealos > ns-mh69tey1 pods devbox hzh
    sealos > devbox describe my-app --lines 50

Reads .env from the working directory before config is imported.
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from config import PROMPT, RAW_OUTPUT  # noqa: E402
from core.input_normalizer import is_exit_command  # noqa: E402
from core.interrupts import EXIT_HINT, InterruptAction, InterruptGuard  # noqa: E402
from core.layers.keyword_extractor import KeywordExtractor  # noqa: E402
from core.session import ShellSession  # noqa: E402
from utils.logger import log_error, log_info  # noqa: E402
from workers.registry import WorkerRegistry, get_registry  # noqa: E402

try:
    import readline
except ImportError:  # Windows
    readline = None

RUNNING_HINT = "(Query running. Press Ctrl+C again to cancel it and exit)"
BANNER = "Sealos SRE shell. Type a query, or 'exit' to quit."


def _pending_line() -> str:
    if readline is None:
        return ""
    return readline.get_line_buffer()


class InteractiveShell:
    """
    Prompt loop. Lines are read with input() between turns; each turn runs
    on one long-lived event loop with a SIGINT handler installed only while
    the turn is in flight.
    """

    def __init__(
        self,
        session: ShellSession,
        guard: Optional[InterruptGuard] = None,
        registry: Optional[WorkerRegistry] = None,
    ):
        self.session = session
        self.output = session.output
        self.guard = guard or InterruptGuard()
        self.registry = registry or get_registry()
        self.loop = asyncio.new_event_loop()
        self._shutdown_requested = False

    def run(self) -> int:
        asyncio.set_event_loop(self.loop)
        self.output.info(BANNER)
        try:
            while not self._shutdown_requested:
                line = self._read_line()
                if line is None:
                    break
                if not line.strip():
                    continue
                if is_exit_command(line):
                    break
                self._run_turn(line)
        finally:
            self.shutdown()
        return 0

    def _read_line(self) -> Optional[str]:
        """
        Returns:
            The line, "" to re-prompt, or None when the shell should stop
        """
        try:
            line = input(PROMPT)
        except EOFError:
            print()
            return None
        except KeyboardInterrupt:
            action = self.guard.press(_pending_line())
            print()
            if action is InterruptAction.SHUTDOWN:
                return None
            if action is InterruptAction.HINT:
                self.output.hint(EXIT_HINT)
            return ""

        self.guard.reset()
        return line

    def _run_turn(self, line: str) -> None:
        task = self.loop.create_task(self.session.handle_line(line))

        def on_interrupt() -> None:
            if self.guard.press() is InterruptAction.SHUTDOWN:
                self._shutdown_requested = True
                task.cancel()
            else:
                self.output.hint(RUNNING_HINT)

        try:
            self.loop.add_signal_handler(signal.SIGINT, on_interrupt)
            installed = True
        except (NotImplementedError, RuntimeError):
            installed = False

        try:
            self.loop.run_until_complete(task)
        except asyncio.CancelledError:
            log_info("[Shell] Turn cancelled")
        except KeyboardInterrupt:
            # No loop-level signal handler on this platform
            self._shutdown_requested = True
        finally:
            if installed:
                self.loop.remove_signal_handler(signal.SIGINT)

    def shutdown(self) -> None:
        live = self.registry.count
        if live:
            self.output.hint(f"Stopping {live} worker(s)...")
        stopped = self.loop.run_until_complete(self.registry.shutdown())
        log_info(f"[Shell] Shutdown complete, {stopped} worker(s) stopped")
        self.loop.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Conversational SRE query shell")
    parser.add_argument("-r", "--raw", action="store_true", default=RAW_OUTPUT, help="Print raw JSON instead of tables")
    parser.add_argument("--no-ai", action="store_true", help="Use keyword extraction even if an AI backend is configured")
    args = parser.parse_args(argv)

    try:
        session = ShellSession(
            extractor=KeywordExtractor() if args.no_ai else None,
            raw_default=args.raw,
        )
        shell = InteractiveShell(session)
    except Exception as e:
        log_error(f"[Main] Failed to start interactive loop: {e}")
        return 1

    return shell.run()


if __name__ == "__main__":
    sys.exit(main())
