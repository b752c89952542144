"""
Shared test fixtures for logcatcher tests.

Provides a synthetic Line Source backed by a temporary buffer file, event
recording listeners, and environment cleanup.
"""

import subprocess
import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from logcatcher.catcher import CaptureConfig, LogCatcher, Scope
from logcatcher.events import Error, Finished, Line, Started, TERMINAL_EVENTS
from logcatcher.line_source import LineSource
from logcatcher.logger import Level, Logger

FAKE_LOGCAT = Path(__file__).parent / "fake_logcat.py"

# Generous upper bound for anything that involves a subprocess
WAIT = 10.0


# ============================================================
# Environment Fixtures
# ============================================================

@pytest.fixture
def clean_env(monkeypatch):
    """Clean environment without logcatcher-related variables."""
    vars_to_remove = [
        'LOGCAT_COMMAND', 'LOGCATCHER_LOG_DIR', 'LOGCATCHER_LOG_LEVEL',
        'LOGCATCHER_DEBUG', 'LOGCATCHER_WORKERS', 'LOGCATCHER_POLL_INTERVAL',
        'LOGCATCHER_TERMINATE_TIMEOUT', 'LOGCATCHER_CLEAR_ON_START',
        'LOGCATCHER_SELF_ONLY',
    ]
    for var in vars_to_remove:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


# ============================================================
# Logger Fixtures
# ============================================================

@pytest.fixture
def mock_sink():
    """Line-level sink recording (level, tag, message) calls."""
    return MagicMock()


@pytest.fixture
def trace_logger(mock_sink):
    """Logger that records every trace line into mock_sink."""
    return Logger(root_level=Level.VERBOSE, sink=mock_sink)


# ============================================================
# Synthetic Line Source Fixtures
# ============================================================

def format_log_line(message, pid=1000, tag="TEST", level="D", tid=None):
    """Build a threadtime-style line like the real logcat prints."""
    tid = pid if tid is None else tid
    return f"10-18 12:00:00.000 {pid:5d} {tid:5d} {level} {tag}: {message}"


@pytest.fixture
def log_buffer(tmp_path):
    """Empty log buffer file served by the synthetic logcat."""
    path = tmp_path / "logcat_buffer.txt"
    path.touch()
    return path


@pytest.fixture
def write_log(log_buffer):
    """Append one line to the synthetic log buffer."""
    lock = threading.Lock()

    def write(message, pid=1000, tag="TEST", level="D"):
        with lock, open(log_buffer, "a") as f:
            f.write(format_log_line(message, pid=pid, tag=tag, level=level) + "\n")
            f.flush()

    return write


def make_fake_source(log_buffer, *extra):
    return LineSource(
        [sys.executable, str(FAKE_LOGCAT), "--buffer", str(log_buffer), *extra],
        terminate_timeout=2.0,
    )


@pytest.fixture
def fake_source(log_buffer):
    """LineSource running tests/fake_logcat.py against log_buffer."""
    return make_fake_source(log_buffer)


# ============================================================
# In-memory Line Source Fakes
# ============================================================

class FakeProcess:
    """Stands in for LineSourceProcess."""

    def __init__(self, lines, follow=False, fail_after=None):
        self._lines = list(lines)
        self.follow = follow
        self.fail_after = fail_after
        self.pid = 4321
        self.terminate_timeout = 1.0
        self.exited = threading.Event()
        self.terminate_calls = 0
        self.released = False

    def lines(self):
        for i, line in enumerate(self._lines):
            if self.fail_after is not None and i >= self.fail_after:
                raise OSError("read failed")
            yield line
        if self.follow:
            self.exited.wait(WAIT)
        self.exited.set()

    def wait(self, timeout=None):
        if not self.exited.wait(timeout):
            raise subprocess.TimeoutExpired("fake", timeout)
        return 0

    def running(self):
        return not self.exited.is_set()

    def terminate(self):
        self.terminate_calls += 1
        self.exited.set()

    def kill(self):
        self.exited.set()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.released = True
        self.exited.set()
        return False


class FakeSource(LineSource):
    """
    LineSource that never spawns anything.

    launch() hands out the prepared process (or a fresh FakeProcess built
    from lines/follow). run_clear() blocks on clear_gate when one is given.
    Every launch and clear is appended to timeline.
    """

    def __init__(self, process=None, launch_error=None, lines=(), follow=False,
                 clear_gate=None, clear_error=None):
        super().__init__(['logcat'], terminate_timeout=1.0)
        self.process = process
        self.launch_error = launch_error
        self.default_lines = list(lines)
        self.follow = follow
        self.clear_gate = clear_gate
        self.clear_error = clear_error
        self.clear_started = threading.Event()
        self.launched = []
        self.processes = []
        self.timeline = []
        self._lock = threading.Lock()

    def _record(self, entry):
        with self._lock:
            self.timeline.append(entry)

    def launch(self, argv):
        self.launched.append(list(argv))
        self._record("launch")
        if self.launch_error is not None:
            raise self.launch_error
        process = self.process or FakeProcess(self.default_lines, follow=self.follow)
        self.processes.append(process)
        return process

    def run_clear(self):
        self._record("clear-start")
        self.clear_started.set()
        if self.clear_gate is not None:
            self.clear_gate.wait(WAIT)
        self._record("clear-end")
        if self.clear_error is not None:
            raise self.clear_error
        return 0


@pytest.fixture
def catcher(fake_source, trace_logger):
    """LogCatcher over the synthetic Line Source; closed after the test."""
    instance = LogCatcher(source=fake_source, logger=trace_logger, poll_interval=0.05)
    yield instance
    instance.close()


@pytest.fixture
def make_catcher(trace_logger):
    """Factory for extra catchers; all are closed after the test."""
    created = []

    def factory(source, scope=None, **kwargs):
        config = CaptureConfig(scope=scope if scope is not None else Scope())
        instance = LogCatcher(config, source=source, logger=trace_logger,
                              poll_interval=0.05, **kwargs)
        created.append(instance)
        return instance

    yield factory

    for instance in created:
        instance.close()


# ============================================================
# Listener Fixtures
# ============================================================

class RecordingListener:
    """Single-callback listener that records every LifecycleEvent."""

    def __init__(self):
        self.events = []
        self.threads = []
        self._condition = threading.Condition()

    def __call__(self, event):
        with self._condition:
            self.events.append(event)
            self.threads.append(threading.current_thread().name)
            self._condition.notify_all()

    @property
    def lines(self):
        with self._condition:
            return [e.text for e in self.events if isinstance(e, Line)]

    @property
    def terminal(self):
        with self._condition:
            for event in self.events:
                if isinstance(event, TERMINAL_EVENTS):
                    return event
        return None

    def wait_for_terminal(self, timeout=WAIT):
        with self._condition:
            return self._condition.wait_for(
                lambda: any(isinstance(e, TERMINAL_EVENTS) for e in self.events), timeout)

    def wait_for_started(self, timeout=WAIT):
        with self._condition:
            return self._condition.wait_for(
                lambda: any(isinstance(e, (Started, Error)) for e in self.events), timeout)

    def wait_for_line_containing(self, text, timeout=WAIT):
        with self._condition:
            return self._condition.wait_for(
                lambda: any(isinstance(e, Line) and text in e.text for e in self.events), timeout)


def assert_session_order(events):
    """Events must match Started? Line* (Finished|Error) with one terminal."""
    assert events, "no events delivered"
    body = list(events)
    if isinstance(body[0], Started):
        body = body[1:]
    assert body, "no terminal event"
    assert isinstance(body[-1], (Finished, Error)), f"last event not terminal: {body[-1]!r}"
    for event in body[:-1]:
        assert isinstance(event, Line), f"unexpected event mid-session: {event!r}"


@pytest.fixture
def recorder():
    return RecordingListener()
