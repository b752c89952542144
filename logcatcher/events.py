"""
Capture lifecycle events and listener interfaces.

A capture session delivers, in order:

    Started?  Line*  (Finished | Error)

Exactly one terminal event ends every session. Started is missing only when
the Line Source could not be launched.

Listeners come in two shapes:
- an object with the four LogLinesListener callbacks
- a single callable taking a LifecycleEvent (wrapped in EventListener)
"""

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class Started:
    """The Line Source is running and lines will follow."""


@dataclass(frozen=True)
class Line:
    """One captured log line (no trailing newline)."""
    text: str


@dataclass(frozen=True)
class Finished:
    """End of stream was reached, or the capture was stopped."""


@dataclass(frozen=True)
class Error:
    """The Line Source failed to launch or the stream failed mid-read."""
    cause: BaseException


LifecycleEvent = Union[Started, Line, Finished, Error]

TERMINAL_EVENTS = (Finished, Error)


class LogLinesListener:
    """
    Receives log lines and capture state updates.

    Subclass and override what you need; every callback is a no-op by
    default.
    """

    def on_log_line(self, line: str):
        """A new line was read from the log."""

    def on_start(self):
        """The Line Source was launched and the stream is being read."""

    def on_finished(self):
        """
        Capture finished.

        For a dump this means the end of the existing buffer was reached;
        for a live capture it means end_capture() took effect.
        """

    def on_error(self, cause: BaseException):
        """Launching the Line Source or reading from it failed."""


class EventListener(LogLinesListener):
    """Adapts a single ``callback(event)`` to the LogLinesListener interface."""

    def __init__(self, callback: Callable[[LifecycleEvent], None]):
        self.callback = callback

    def on_log_line(self, line: str):
        self.callback(Line(line))

    def on_start(self):
        self.callback(Started())

    def on_finished(self):
        self.callback(Finished())

    def on_error(self, cause: BaseException):
        self.callback(Error(cause))


ListenerLike = Union[LogLinesListener, Callable[[LifecycleEvent], None]]


def as_listener(listener: ListenerLike) -> LogLinesListener:
    """
    Normalize a listener argument.

    Raises:
        TypeError: listener is neither a LogLinesListener nor callable
    """
    if isinstance(listener, LogLinesListener):
        return listener
    if callable(listener):
        return EventListener(listener)
    if all(hasattr(listener, name) for name in ("on_log_line", "on_start", "on_finished", "on_error")):
        return listener
    raise TypeError(f"Not a listener: {listener!r}")
