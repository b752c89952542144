"""
Capture engine for the system log.

LogCatcher runs the Line Source (logcat) in the background and streams what
it prints to a listener. It also clears the shared log buffer. Clearing and
capturing exclude each other on one instance: starting a capture waits for
a running clear to finish, and clearing waits for a running capture to end.

Notes:
- A process scope only captures lines written by that program id. Services
  running in their own process need their own LogCatcher.
- There is a noticeable delay between writing to the log and the line
  showing up in a capture. If some lines MUST be captured, wait until they
  have been seen in on_log_line before calling end_capture().

Usage:
    with LogCatcher(CaptureConfig(clear_before_start=True, scope=Scope.self_process())) as catcher:
        catcher.wait_for_clear_end()
        catcher.start_capture(lambda event: print(event))
        ...
        catcher.end_capture()
        catcher.wait_for_capture_end()
"""

import os
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from logcatcher.config import (
    get_clear_on_start,
    get_debug_trace,
    get_log_level,
    get_poll_interval,
    get_self_only,
    get_worker_count,
)
from logcatcher.dispatcher import CallbackDispatcher
from logcatcher.eraser import LogEraser
from logcatcher.errors import IllegalStateError
from logcatcher.events import ListenerLike, as_listener
from logcatcher.line_source import LineSource
from logcatcher.logger import Level, Logger, TaggedLogger
from logcatcher.reader import LogReader

TRACE_TAG = "LOG:CATCHER"


@dataclass(frozen=True)
class Scope:
    """Which lines to capture: the whole log (pid None) or one program id."""
    pid: Optional[int] = None

    @property
    def is_global(self) -> bool:
        return self.pid is None

    @classmethod
    def self_process(cls) -> "Scope":
        """Lines written by this process; the pid is resolved now."""
        return cls(os.getpid())

    @classmethod
    def for_pid(cls, pid: int) -> "Scope":
        return cls(int(pid))


GLOBAL = Scope()


@dataclass(frozen=True)
class CaptureConfig:
    """
    Settings fixed for the lifetime of a LogCatcher.

    Attributes:
        clear_before_start: clear the log buffer when the catcher is created
        scope: whole log or a single program id
        dispatch_context: executor listener callbacks run on; None gives each
            catcher a private single-thread executor
    """
    clear_before_start: bool = False
    scope: Scope = field(default=GLOBAL)
    dispatch_context: Optional[Executor] = None

    @classmethod
    def from_env(cls, dispatch_context: Optional[Executor] = None) -> "CaptureConfig":
        """Build a config from LOGCATCHER_CLEAR_ON_START / LOGCATCHER_SELF_ONLY."""
        return cls(
            clear_before_start=get_clear_on_start(),
            scope=Scope.self_process() if get_self_only() else GLOBAL,
            dispatch_context=dispatch_context,
        )


def _default_logger() -> Logger:
    # Trace only goes past warnings when LOGCATCHER_DEBUG is on
    if get_debug_trace():
        return Logger(root_level=Level.parse(get_log_level(), Level.DEBUG))
    return Logger(root_level=Level.WARN)


class LogCatcher:
    """
    Captures the system log through the Line Source.

    Args:
        config: capture settings (default: whole log, no clear)
        source: Line Source to run (default: configured LOGCAT_COMMAND)
        logger: logging front end for the diagnostic trace
        worker_count: background task threads (at least 2)
        poll_interval: seconds between stop checks while the source is idle
    """

    def __init__(self, config: Optional[CaptureConfig] = None,
                 source: Optional[LineSource] = None,
                 logger: Optional[Logger] = None,
                 worker_count: Optional[int] = None,
                 poll_interval: Optional[float] = None):
        self.config = config if config is not None else CaptureConfig()
        self.source = source if source is not None else LineSource()
        self._trace: TaggedLogger = (logger or _default_logger()).tag(TRACE_TAG)
        self._poll_interval = get_poll_interval() if poll_interval is None else poll_interval

        self._task_executor = ThreadPoolExecutor(
            max_workers=max(2, worker_count or get_worker_count()),
            thread_name_prefix="logcatcher-task",
        )
        if self.config.dispatch_context is None:
            self._callback_executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="logcatcher-callback")
            self._owns_callback_executor = True
        else:
            self._callback_executor = self.config.dispatch_context
            self._owns_callback_executor = False

        self._condition = threading.Condition()
        self._clearing = False
        self._capturing = False
        self._capture_task: Optional[LogReader] = None
        self._closed = False

        if self.config.clear_before_start:
            self.clear()

    # ============================================================
    # State
    # ============================================================

    @property
    def capturing(self) -> bool:
        with self._condition:
            return self._capturing

    @property
    def clearing(self) -> bool:
        with self._condition:
            return self._clearing

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    def _check_open(self):
        if self._closed:
            raise IllegalStateError("LogCatcher is closed")

    # ============================================================
    # Capture
    # ============================================================

    def dump(self, listener: ListenerLike):
        """
        Capture the current log content, like ``logcat -d``.

        Returns once the dump is scheduled; the listener gets on_finished
        when the end of the buffer is reached.

        Raises:
            IllegalStateError: a capture is already in progress
        """
        self._start_reader(listener, bounded=True, mode="dump")

    def start_capture(self, listener: ListenerLike):
        """
        Capture log lines as they are written until end_capture() is called.

        Raises:
            IllegalStateError: a capture is already in progress
        """
        self._start_reader(listener, bounded=False, mode="capture")

    def _start_reader(self, listener: ListenerLike, bounded: bool, mode: str):
        delegate = as_listener(listener)

        with self._condition:
            self._check_open()
            if self._capturing:
                raise IllegalStateError("Capture already in progress")

            self._debug("%s: waiting for clear to finish", mode)
            self._condition.wait_for(lambda: not self._clearing)

            # state may have moved while we waited
            self._check_open()
            if self._capturing:
                raise IllegalStateError("Capture already in progress")

            reader = LogReader(
                self.source,
                CallbackDispatcher(self._callback_executor, delegate, self._trace),
                bounded=bounded,
                pid=self.config.scope.pid,
                on_done=self._capture_done,
                poll_interval=self._poll_interval,
                trace=self._trace,
            )

            self._debug("%s: capturing (session %d)...", mode, reader.session_id)
            self._capturing = True
            self._capture_task = reader
            try:
                self._task_executor.submit(reader.run)
            except RuntimeError:
                self._capturing = False
                self._capture_task = None
                self._condition.notify_all()
                raise

    def end_capture(self):
        """
        Stop the running capture.

        The listener gets on_finished once the reader notices the request;
        use wait_for_capture_end() to block until then.

        Raises:
            IllegalStateError: not capturing
        """
        with self._condition:
            if not self._capturing or self._capture_task is None:
                raise IllegalStateError("Not capturing")

            self._debug("capture: stopping session %d...", self._capture_task.session_id)
            self._capture_task.stop()

    def _capture_done(self, reader: LogReader):
        with self._condition:
            if self._capture_task is reader:
                self._capture_task = None
            self._capturing = False
            self._debug("reader: session %d done", reader.session_id)
            self._condition.notify_all()

    # ============================================================
    # Clear
    # ============================================================

    @staticmethod
    def clear_log(source: Optional[LineSource] = None, logger: Optional[Logger] = None):
        """Best-effort log eraser. Blocks the calling thread; no instance needed."""
        trace = (logger or _default_logger()).tag(TRACE_TAG)
        trace.d("clear")
        LogEraser(source if source is not None else LineSource(), trace=trace).run()

    def clear(self):
        """
        Best-effort log eraser.

        Waits for a running capture to end, then clears in the background.
        Failures are traced but never raised.

        Raises:
            IllegalStateError: a clear is already in progress
        """
        with self._condition:
            self._check_open()
            if self._clearing:
                raise IllegalStateError("Clear already in progress")

            self._debug("clear: waiting for current capture task to finish")
            self._condition.wait_for(lambda: not self._capturing)

            self._check_open()
            if self._clearing:
                raise IllegalStateError("Clear already in progress")

            self._clearing = True
            self._debug("clear: clearing...")
            eraser = LogEraser(
                self.source,
                on_complete=self._clear_complete,
                on_error=self._clear_failed,
                trace=self._trace,
            )
            try:
                self._task_executor.submit(eraser.run)
            except RuntimeError:
                self._clearing = False
                self._condition.notify_all()
                raise

    def _clear_complete(self, exit_code: int):
        with self._condition:
            self._clearing = False
            self._debug("clear: complete (exit code %d)", exit_code)
            self._condition.notify_all()

    def _clear_failed(self, cause: BaseException):
        with self._condition:
            self._clearing = False
            self._debug("clear: failed (%s)", cause)
            self._condition.notify_all()

    # ============================================================
    # Waiting
    # ============================================================

    def wait_for_clear_end(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no clear is in progress.

        Returns:
            False if the timeout expired first
        """
        with self._condition:
            self._debug("waiting for clear to finish")
            return self._condition.wait_for(lambda: not self._clearing, timeout)

    def wait_for_capture_end(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no capture is in progress.

        Returns:
            False if the timeout expired first
        """
        with self._condition:
            self._debug("waiting for current capture task to finish")
            return self._condition.wait_for(lambda: not self._capturing, timeout)

    # ============================================================
    # Lifecycle
    # ============================================================

    def close(self):
        """
        Stop any running capture, wait for background work and release threads.

        Must not be called from a listener callback running on the
        catcher's own callback executor.
        """
        with self._condition:
            if self._closed:
                return
            self._closed = True
            if self._capture_task is not None:
                self._debug("close: stopping session %d", self._capture_task.session_id)
                self._capture_task.stop()

        self._task_executor.shutdown(wait=True)
        if self._owns_callback_executor:
            self._callback_executor.shutdown(wait=True)

    def __enter__(self) -> "LogCatcher":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _debug(self, fmt: str, *args):
        self._trace.d(fmt, *args)
