"""Best-effort log eraser."""

from typing import Callable, Optional

from logcatcher.line_source import LineSource
from logcatcher.logger import TaggedLogger


class LogEraser:
    """
    Runs the Line Source's clear command and waits for it to exit.

    Failures never propagate out of run(): they are traced and handed to
    on_error. A non-zero exit code is passed to on_complete as-is.

    Args:
        source: Line Source to clear
        on_complete: called with the exit code
        on_error: called with the launch/wait failure
        trace: optional logger for the diagnostic trace
    """

    def __init__(self, source: LineSource,
                 on_complete: Optional[Callable[[int], None]] = None,
                 on_error: Optional[Callable[[BaseException], None]] = None,
                 trace: Optional[TaggedLogger] = None):
        self.source = source
        self.on_complete = on_complete
        self.on_error = on_error
        self.trace = trace

    def run(self):
        command = " ".join(self.source.clear_command())
        try:
            self._debug("eraser: started '%s'", command)
            exit_code = self.source.run_clear()
        except Exception as e:
            # oh well
            if self.trace is not None:
                self.trace.w("eraser: '%s' failed", command, exc=e)
            if self.on_error is not None:
                self.on_error(e)
            return

        self._debug("eraser: '%s' finished with %d", command, exit_code)
        if self.on_complete is not None:
            self.on_complete(exit_code)

    def _debug(self, fmt: str, *args):
        if self.trace is not None:
            self.trace.d(fmt, *args)
