"""
Parser for captured logcat lines.

Splits a line in logcat's brief/threadtime formats into severity, tag and
message. The capture engine never parses lines itself; this is for
listeners that need to.

Examples:
    >>> parse_log_line("10-18 12:00:00.000  1234  1234 D NETWORK: connected")
    LogLine(level='D', tag='NETWORK', message='connected')
    >>> parse_log_line("D/NETWORK( 1234): connected").tag
    'NETWORK'
    >>> parse_log_line("--------- beginning of main") is None
    True
"""

import re
from dataclasses import dataclass
from typing import Optional

from logcatcher.logger import Level

LEVEL_LETTERS = {
    "V": Level.VERBOSE,
    "D": Level.DEBUG,
    "I": Level.INFO,
    "W": Level.WARN,
    "E": Level.ERROR,
}

# threadtime: "MM-DD HH:MM:SS.mmm  PID  TID L TAG: message"
_THREADTIME = re.compile(r'^.*?\s([VDIWE])\s+(.+?)\s*:\s(.*)$')
# brief: "L/TAG( PID): message"
_BRIEF = re.compile(r'^([VDIWE])/(.+?)\(\s*\d+\):\s(.*)$')


@dataclass(frozen=True)
class LogLine:
    """One parsed log line."""
    level: str
    tag: str
    message: str

    @property
    def severity(self) -> Level:
        return LEVEL_LETTERS[self.level]

    def is_level(self, level: Level) -> bool:
        return self.severity == level


def parse_log_line(line: str, expected_tag: Optional[str] = None) -> Optional[LogLine]:
    """
    Parse a captured line.

    Args:
        line: raw line from the capture
        expected_tag: only accept lines with exactly this tag

    Returns:
        LogLine, or None if the line does not parse (or has another tag)
    """
    if not line:
        return None

    if expected_tag is not None:
        pattern = re.compile(
            r'^.*?([VDIWE])[\s/]\s*(' + re.escape(expected_tag) + r')(?:\(\s*\d+\))?\s*:\s(.*)$')
        match = pattern.match(line)
    else:
        match = _BRIEF.match(line) or _THREADTIME.match(line)

    if not match:
        return None

    return LogLine(
        level=match.group(1),
        tag=match.group(2).strip(),
        message=match.group(3).strip(),
    )
