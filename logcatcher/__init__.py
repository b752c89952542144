"""
logcatcher - formatted logging and system log capture.

    from logcatcher import LogCatcher, CaptureConfig, Scope, LineBuffer

    buffer = LineBuffer()
    with LogCatcher(CaptureConfig(scope=Scope.self_process())) as catcher:
        catcher.dump(buffer)
        buffer.wait_until_done()
"""

from logcatcher.catcher import GLOBAL, CaptureConfig, LogCatcher, Scope
from logcatcher.errors import IllegalStateError, LogCatcherError
from logcatcher.events import (
    Error,
    EventListener,
    Finished,
    LifecycleEvent,
    Line,
    LogLinesListener,
    Started,
)
from logcatcher.line_buffer import LineBuffer
from logcatcher.line_source import LineSource
from logcatcher.log_line import LogLine, parse_log_line
from logcatcher.logger import Level, Logger, TaggedLogger, expand, format_exception, setup_logging

__version__ = "1.0.0"

__all__ = [
    "GLOBAL",
    "CaptureConfig",
    "Error",
    "EventListener",
    "Finished",
    "IllegalStateError",
    "Level",
    "LifecycleEvent",
    "Line",
    "LineBuffer",
    "LineSource",
    "LogCatcher",
    "LogCatcherError",
    "LogLine",
    "LogLinesListener",
    "Logger",
    "Scope",
    "Started",
    "TaggedLogger",
    "expand",
    "format_exception",
    "parse_log_line",
    "setup_logging",
]
