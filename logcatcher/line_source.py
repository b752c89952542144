"""
Line Source: the external log-dumping command (``logcat`` by default).

Builds the command line for each mode and launches it as a child process.
The returned LineSourceProcess is a context manager; leaving it always
terminates the child (SIGTERM, then SIGKILL after a grace period) and
closes its pipe.

Command line:
    logcat                  follow the log until stopped
    logcat -d               dump the existing buffer and exit
    logcat -c               clear the buffer
    logcat --pid <pid> ...  only lines written by <pid>
"""

import subprocess
from typing import Iterator, Optional, Sequence

from logcatcher.config import get_logcat_command, get_terminate_timeout

ARG_DUMP = "-d"
ARG_CLEAR = "-c"
ARG_PID = "--pid"


class LineSourceProcess:
    """
    Handle on one running Line Source.

    Wraps a subprocess.Popen with text-mode stdout. terminate() is
    idempotent and safe to call from any thread.
    """

    def __init__(self, process: subprocess.Popen, terminate_timeout: float):
        self.process = process
        self.terminate_timeout = terminate_timeout

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    def lines(self) -> Iterator[str]:
        """Yield lines as they arrive, without line endings, until EOF."""
        for raw in iter(self.process.stdout.readline, ""):
            yield raw.rstrip("\r\n")

    def wait(self, timeout: Optional[float] = None) -> int:
        """Wait for exit; raises subprocess.TimeoutExpired on timeout."""
        return self.process.wait(timeout=timeout)

    def running(self) -> bool:
        return self.process.poll() is None

    def terminate(self):
        """Ask the Line Source to exit. No-op once it has exited."""
        if not self.running():
            return
        try:
            self.process.terminate()
        except ProcessLookupError:
            pass

    def kill(self):
        if not self.running():
            return
        try:
            self.process.kill()
        except ProcessLookupError:
            pass

    def release(self):
        """Make sure the child is gone and its pipe is closed."""
        try:
            self.terminate()
            try:
                self.process.wait(timeout=self.terminate_timeout)
            except subprocess.TimeoutExpired:
                # Force kill if needed
                self.kill()
                self.process.wait()
        finally:
            if self.process.stdout is not None:
                self.process.stdout.close()

    def __enter__(self) -> "LineSourceProcess":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class LineSource:
    """
    Builds and launches Line Source invocations.

    Args:
        command: base command; defaults to the configured LOGCAT_COMMAND
        terminate_timeout: seconds to wait after SIGTERM before SIGKILL
    """

    def __init__(self, command: Optional[Sequence[str]] = None,
                 terminate_timeout: Optional[float] = None):
        self.command = list(command) if command else get_logcat_command()
        self.terminate_timeout = (get_terminate_timeout()
                                  if terminate_timeout is None else terminate_timeout)

    def capture_command(self, bounded: bool, pid: Optional[int] = None) -> list[str]:
        """
        Command line for reading the log.

        Args:
            bounded: dump existing content and exit instead of following
            pid: only lines from this program id

        Returns:
            argv list
        """
        argv = list(self.command)
        if pid is not None:
            argv.extend([ARG_PID, str(pid)])
        if bounded:
            argv.append(ARG_DUMP)
        return argv

    def clear_command(self) -> list[str]:
        return list(self.command) + [ARG_CLEAR]

    def launch(self, argv: Sequence[str]) -> LineSourceProcess:
        """
        Start a Line Source reading the log.

        Raises:
            OSError: the command could not be started
        """
        process = subprocess.Popen(
            list(argv),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
        return LineSourceProcess(process, self.terminate_timeout)

    def run_clear(self) -> int:
        """
        Clear the log buffer and wait for the command to exit.

        Returns:
            The command's exit code

        Raises:
            OSError: the command could not be started
        """
        return subprocess.run(
            self.clear_command(),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
        ).returncode
