"""
Formatted logging front end.

Expands printf-style messages and hands each finished line, with a tag and
a severity, to a line-level sink. The default sink writes through the
standard library logging module, one logger per tag.

Severity threshold is held by each Logger instance, so independent loggers
(and tests) can run with different thresholds side by side.

Example:
    log = Logger(root_level=Level.INFO)
    log.i("NETWORK", "connected to %s in %dms", host, elapsed)
    log.e("NETWORK", "request failed", exc=err)

    trace = log.tag("SYNC")
    trace.d("pulled %d rows", count)
"""

import logging
import os
import traceback
from enum import IntEnum
from typing import Callable, Optional

from logcatcher.config import get_log_dir


class Level(IntEnum):
    """Log severities, ordered like the platform's priorities."""
    VERBOSE = 2
    DEBUG = 3
    INFO = 4
    WARN = 5
    ERROR = 6

    @classmethod
    def parse(cls, name: str, default: "Level" = None) -> "Level":
        """Parse a level name ("debug", "W", "WARNING"), falling back to default."""
        key = (name or "").strip().upper()
        aliases = {"V": "VERBOSE", "D": "DEBUG", "I": "INFO", "W": "WARN",
                   "WARNING": "WARN", "E": "ERROR"}
        key = aliases.get(key, key)
        if key in cls.__members__:
            return cls[key]
        return default if default is not None else cls.VERBOSE


# stdlib has no verbose level; register one below DEBUG
VERBOSE_STDLIB_LEVEL = 5
logging.addLevelName(VERBOSE_STDLIB_LEVEL, "VERBOSE")

STDLIB_LEVELS = {
    Level.VERBOSE: VERBOSE_STDLIB_LEVEL,
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
}

LINE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

NULL_MESSAGE = "<null>"

LogSink = Callable[[Level, str, str], None]


def _debug_render(args) -> str:
    return "[" + ", ".join(str(arg) for arg in args) + "]"


def expand(fmt: Optional[str], *args) -> str:
    """
    Expand a printf-style message.

    Never raises: a format that does not fit its arguments degrades to the
    format followed by a rendering of the arguments.

    Args:
        fmt: printf-style format ("%s-%d"); empty or None renders the args
        *args: format arguments

    Returns:
        Expanded message
    """
    if not fmt:
        return _debug_render(args)
    if not args:
        return fmt
    try:
        return fmt % args
    except (TypeError, ValueError, KeyError, OverflowError):
        return f"{fmt} {_debug_render(args)}"


def format_exception(exc: BaseException, message: Optional[str] = None) -> str:
    """
    Join a message and an exception's traceback.

    Args:
        exc: exception to render
        message: leading text; omitted when None

    Returns:
        message + newline + full traceback text
    """
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return (message or "") + "\n" + trace


class StdlibSink:
    """Line-level sink writing to ``logging.getLogger(tag)``."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def __call__(self, level: Level, tag: str, message: str):
        name = f"{self.prefix}{tag}" if self.prefix else tag
        logging.getLogger(name).log(STDLIB_LEVELS.get(level, logging.INFO), message)


class Logger:
    """
    Tagged, printf-style logging front end.

    Each severity method takes (tag, fmt, *args) and an optional exc
    keyword; when exc is given the expanded message is followed by the
    exception's traceback.
    """

    def __init__(self, root_level: Level = Level.VERBOSE, sink: Optional[LogSink] = None):
        self.root_level = Level(root_level)
        self.sink = sink if sink is not None else StdlibSink()

    def tag(self, tag: str) -> "TaggedLogger":
        """Bind a tag so it does not have to be repeated on every call."""
        return TaggedLogger(self, tag)

    def is_loggable(self, level: Level) -> bool:
        return level >= self.root_level

    def v(self, tag: str, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self.log(Level.VERBOSE, tag, fmt, *args, exc=exc)

    def d(self, tag: str, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self.log(Level.DEBUG, tag, fmt, *args, exc=exc)

    def i(self, tag: str, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self.log(Level.INFO, tag, fmt, *args, exc=exc)

    def w(self, tag: str, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self.log(Level.WARN, tag, fmt, *args, exc=exc)

    def e(self, tag: str, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self.log(Level.ERROR, tag, fmt, *args, exc=exc)

    def log(self, level: Level, tag: str, fmt: Optional[str] = None, *args,
            exc: Optional[BaseException] = None):
        """Expand and emit one message at the given severity."""
        if not self.is_loggable(level):
            return

        if exc is not None:
            message = format_exception(exc, expand(fmt, *args) if fmt else None)
        elif fmt is None and not args:
            message = NULL_MESSAGE
        else:
            message = expand(fmt, *args)

        self.sink(level, tag, message)


class TaggedLogger:
    """A Logger bound to a single tag."""

    def __init__(self, logger: Logger, tag: str):
        self._logger = logger
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag

    def v(self, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self._logger.log(Level.VERBOSE, self._tag, fmt, *args, exc=exc)

    def d(self, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self._logger.log(Level.DEBUG, self._tag, fmt, *args, exc=exc)

    def i(self, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self._logger.log(Level.INFO, self._tag, fmt, *args, exc=exc)

    def w(self, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self._logger.log(Level.WARN, self._tag, fmt, *args, exc=exc)

    def e(self, fmt: Optional[str] = None, *args, exc: Optional[BaseException] = None):
        self._logger.log(Level.ERROR, self._tag, fmt, *args, exc=exc)


def setup_logging(level: Optional[Level] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the stdlib root logger for the default sink.

    Args:
        level: minimum severity to let through (default: VERBOSE)
        log_file: also append to this file; a bare file name is placed in
            the configured log directory

    Returns:
        The configured root logger
    """
    level = Level.VERBOSE if level is None else level
    root = logging.getLogger()
    root.setLevel(STDLIB_LEVELS[level])

    formatter = logging.Formatter(LINE_FORMAT)

    if not any(getattr(h, "_logcatcher", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        handler._logcatcher = True
        root.addHandler(handler)

    if log_file:
        if not os.path.dirname(log_file):
            log_dir = get_log_dir()
            os.makedirs(log_dir, exist_ok=True)
            log_file = os.path.join(log_dir, log_file)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler._logcatcher = True
        root.addHandler(file_handler)

    return root
