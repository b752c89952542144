"""Exception types raised by logcatcher."""


class LogCatcherError(Exception):
    """Base class for logcatcher errors."""


class IllegalStateError(LogCatcherError, RuntimeError):
    """
    An operation was called in a state that does not allow it.

    Raised synchronously for programming errors: starting a capture while
    one is active, ending a capture that is not running, clearing while a
    clear is in progress, or using a closed catcher.
    """
