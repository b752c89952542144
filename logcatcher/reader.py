"""
Reader task: streams one capture session from the Line Source.

The task thread launches the Line Source and supervises it; a dedicated
pump thread reads lines and hands them to the listener. The pump checks the
stop token after every line it delivers, so the line read just before a
stop is never dropped. While the source is idle the supervisor polls the
same token and terminates the source itself, so a stop request takes effect
even when no more lines arrive.

Lines still buffered in the pipe when a stop races with process
termination may be lost. Delivery is best-effort.
"""

import itertools
import subprocess
import threading
import time
from typing import Callable, Optional

from logcatcher.events import LogLinesListener
from logcatcher.line_source import LineSource, LineSourceProcess
from logcatcher.logger import TaggedLogger

_session_ids = itertools.count(1)


class StopToken:
    """Stop flag for one capture session (set by end_capture)."""

    def __init__(self):
        self._event = threading.Event()

    def set(self):
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


class LogReader:
    """
    One capture session.

    Args:
        source: Line Source to launch
        listener: receives lifecycle callbacks (normally a CallbackDispatcher)
        bounded: dump the existing buffer and finish, instead of following
        pid: program id filter, or None for the whole log
        on_done: called exactly once when the task ends, whatever the outcome
        poll_interval: seconds between stop checks while the source is idle
        trace: optional logger for the diagnostic trace
    """

    def __init__(self, source: LineSource, listener: LogLinesListener, bounded: bool,
                 pid: Optional[int] = None,
                 on_done: Optional[Callable[["LogReader"], None]] = None,
                 poll_interval: float = 0.25,
                 trace: Optional[TaggedLogger] = None):
        self.source = source
        self.listener = listener
        self.bounded = bounded
        self.pid = pid
        self.on_done = on_done
        self.poll_interval = poll_interval
        self.trace = trace

        self.session_id = next(_session_ids)
        self.stop_token = StopToken()
        self._failure: Optional[BaseException] = None

    def stop(self):
        """Request the session to end; takes effect asynchronously."""
        self.stop_token.set()

    def run(self):
        try:
            self._run()
        finally:
            self._debug("reader: complete")
            if self.on_done is not None:
                self.on_done(self)

    def _run(self):
        argv = self.source.capture_command(self.bounded, self.pid)
        self._debug("reader: starting line source with params: %s", argv)

        try:
            process = self.source.launch(argv)
        except OSError as e:
            self._debug("reader: launch failed: %s", e)
            self.listener.on_error(e)
            return

        with process:
            self._debug("reader: started line source (pid %d)", process.pid)
            self.listener.on_start()

            pump = threading.Thread(
                target=self._pump,
                args=(process,),
                name=f"logcatcher-pump-{self.session_id}",
                daemon=True,
            )
            pump.start()

            exit_code = self._supervise(process)
            pump.join()
            self._debug("reader: line source finished with %s", exit_code)

        if self._failure is not None:
            self.listener.on_error(self._failure)
        else:
            self.listener.on_finished()

    def _supervise(self, process: LineSourceProcess) -> int:
        """Wait for the Line Source to exit, terminating it once a stop is requested."""
        kill_deadline = None
        while True:
            try:
                return process.wait(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                if not self.stop_token.is_set():
                    continue
                if kill_deadline is None:
                    self._debug("reader: stop requested while idle, terminating")
                    process.terminate()
                    kill_deadline = time.monotonic() + process.terminate_timeout
                elif time.monotonic() >= kill_deadline:
                    self._debug("reader: line source ignored SIGTERM, killing")
                    process.kill()

    def _pump(self, process: LineSourceProcess):
        try:
            for line in process.lines():
                self.listener.on_log_line(line)

                if self.stop_token.is_set():
                    self._debug("reader: stop requested, terminating line source")
                    process.terminate()
                    break

            self._debug("reader: no more lines")
        except (OSError, ValueError) as e:
            self._failure = e
            process.terminate()

    def _debug(self, fmt: str, *args):
        if self.trace is not None:
            self.trace.d(fmt, *args)
