"""
Line buffer listener.

Keeps the most recent captured lines in a fixed-size deque, strips ANSI
colour codes (``logcat -v color``) and tracks the capture state so callers
can block until a line shows up or the session ends.

Thread-safe: callbacks may arrive on any thread while other threads wait.
"""

import re
import threading
from collections import deque
from enum import Enum
from typing import Callable, Optional

from logcatcher.events import LogLinesListener


def strip_ansi(text):
    """
    Strip ANSI escape codes from text.

    Args:
        text: String containing potential ANSI codes

    Returns:
        String with all ANSI codes removed
    """
    return re.sub(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])', '', text)


class CaptureState(Enum):
    """Where the observed capture session is"""
    NONE = "none"
    STARTED = "started"
    FINISHED = "finished"
    FAILED = "failed"


class LineBuffer(LogLinesListener):
    """
    Listener collecting captured lines into a bounded deque.

    Example:
        buffer = LineBuffer(max_lines=500)
        catcher.start_capture(buffer)
        line = buffer.wait_for_line_containing("ready", timeout=5)
        catcher.end_capture()
        buffer.wait_until_done(timeout=5)
    """

    def __init__(self, max_lines=500, skip_patterns=None):
        """
        Initialize LineBuffer.

        Args:
            max_lines: Maximum number of lines to retain (default: 500)
            skip_patterns: Regex patterns of lines to drop (default: none)
        """
        self.max_lines = max_lines
        self.lines = deque(maxlen=max_lines)
        self.errors: list[BaseException] = []
        self.state = CaptureState.NONE
        self._condition = threading.Condition()
        self._skip_patterns = [re.compile(pattern) for pattern in (skip_patterns or [])]

    def _should_skip_line(self, line: str) -> bool:
        for pattern in self._skip_patterns:
            if pattern.search(line):
                return True
        return False

    # ============================================================
    # Listener callbacks
    # ============================================================

    def on_log_line(self, line: str):
        clean = strip_ansi(line)
        if self._should_skip_line(clean):
            return
        with self._condition:
            self.lines.append(clean)
            self._condition.notify_all()

    def on_start(self):
        with self._condition:
            self.state = CaptureState.STARTED
            self._condition.notify_all()

    def on_finished(self):
        with self._condition:
            self.state = CaptureState.FINISHED
            self._condition.notify_all()

    def on_error(self, cause: BaseException):
        with self._condition:
            self.errors.append(cause)
            self.state = CaptureState.FAILED
            self._condition.notify_all()

    # ============================================================
    # Queries
    # ============================================================

    def get_all_lines(self) -> list[str]:
        with self._condition:
            return list(self.lines)

    def get_last_n(self, n: int) -> list[str]:
        """
        Get the last N lines.

        Args:
            n: Number of lines to retrieve

        Returns:
            List of up to N most recent lines
        """
        with self._condition:
            if n <= 0:
                return []
            return list(self.lines)[-n:]

    def contains(self, text: str) -> bool:
        """True if any buffered line contains text."""
        with self._condition:
            return any(text in line for line in self.lines)

    def clear(self):
        """Drop buffered lines and errors; the capture state is kept."""
        with self._condition:
            self.lines.clear()
            self.errors.clear()

    @property
    def done(self) -> bool:
        with self._condition:
            return self.state in (CaptureState.FINISHED, CaptureState.FAILED)

    # ============================================================
    # Waiting
    # ============================================================

    def _wait(self, predicate: Callable[[], bool], timeout: Optional[float]) -> bool:
        with self._condition:
            return self._condition.wait_for(predicate, timeout)

    def wait_until_started(self, timeout: Optional[float] = None) -> bool:
        return self._wait(lambda: self.state is not CaptureState.NONE, timeout)

    def wait_until_done(self, timeout: Optional[float] = None) -> bool:
        """Block until on_finished or on_error; False on timeout."""
        return self._wait(
            lambda: self.state in (CaptureState.FINISHED, CaptureState.FAILED), timeout)

    def wait_for_line_containing(self, text: str, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait for a line containing text, removing it from the buffer.

        The newest matching line wins.

        Returns:
            The matching line, or None if the timeout expired first
        """
        found = []

        def match():
            for i in range(len(self.lines) - 1, -1, -1):
                if text in self.lines[i]:
                    found.append(self.lines[i])
                    del self.lines[i]
                    return True
            return False

        if self._wait(match, timeout):
            return found[0]
        return None
