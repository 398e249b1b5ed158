# core/interrupts.py
"""
Ctrl+C debouncing.

- pending text on the line  -> clear that line only
- first press otherwise     -> hint, open the repeat window
- second press in window    -> shutdown
"""

import time
from enum import Enum
from typing import Callable, Optional

from config import INTERRUPT_WINDOW_SECONDS
from utils.logger import log_debug


class InterruptAction(str, Enum):
    CLEAR_LINE = "clear_line"
    HINT = "hint"
    SHUTDOWN = "shutdown"


EXIT_HINT = "(Press Ctrl+C again to exit, or type 'exit')"


class InterruptGuard:
    def __init__(self, window: float = INTERRUPT_WINDOW_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self._clock = clock
        self._armed_at: Optional[float] = None

    @property
    def armed(self) -> bool:
        return self._armed_at is not None and (self._clock() - self._armed_at) <= self.window

    def press(self, pending_line: str = "") -> InterruptAction:
        if pending_line.strip():
            # Editing a line never counts toward the exit window
            self._armed_at = None
            return InterruptAction.CLEAR_LINE

        if self.armed:
            log_debug("[Interrupt] Second Ctrl+C inside the window, shutting down")
            self._armed_at = None
            return InterruptAction.SHUTDOWN

        self._armed_at = self._clock()
        return InterruptAction.HINT

    def reset(self) -> None:
        self._armed_at = None
