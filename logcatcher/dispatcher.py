"""
Callback dispatcher.

Redelivers listener callbacks on a designated executor so the listener never
runs on the thread that produced the event. Events are submitted in the
order they are produced; with a single-worker executor they also run in
that order.
"""

from concurrent.futures import Executor, Future
from typing import Optional

from logcatcher.events import LogLinesListener
from logcatcher.logger import TaggedLogger


class CallbackDispatcher(LogLinesListener):
    """
    LogLinesListener proxy that hops every callback onto an executor.

    Args:
        executor: where callbacks run (e.g. ThreadPoolExecutor(max_workers=1))
        delegate: the listener to call
        trace: optional logger; listener exceptions are reported here
    """

    def __init__(self, executor: Executor, delegate: LogLinesListener,
                 trace: Optional[TaggedLogger] = None):
        self.executor = executor
        self.delegate = delegate
        self.trace = trace

    def _submit(self, name: str, *args) -> Future:
        future = self.executor.submit(getattr(self.delegate, name), *args)
        future.add_done_callback(lambda f: self._report(name, f))
        return future

    def _report(self, name: str, future: Future):
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None and self.trace is not None:
            self.trace.w("listener %s raised", name, exc=exc)

    def on_log_line(self, line: str):
        return self._submit("on_log_line", line)

    def on_start(self):
        return self._submit("on_start")

    def on_finished(self):
        return self._submit("on_finished")

    def on_error(self, cause: BaseException):
        return self._submit("on_error", cause)
