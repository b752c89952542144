#!/usr/bin/env python3
"""
Synthetic logcat for tests.

Serves a plain text file as the system log buffer, speaking the same
arguments the capture engine passes to the real logcat:

    fake_logcat.py --buffer FILE            follow the buffer until killed
    fake_logcat.py --buffer FILE -d         dump the buffer and exit
    fake_logcat.py --buffer FILE -c         truncate the buffer
    fake_logcat.py --buffer FILE --pid N    only lines whose pid column is N

Buffer lines use logcat's threadtime layout:

    MM-DD HH:MM:SS.mmm  PID  TID L TAG: message
"""

import argparse
import os
import sys
import time


def line_pid(line):
    parts = line.split()
    if len(parts) < 3:
        return None
    try:
        return int(parts[2])
    except ValueError:
        return None


def matches(line, pid):
    return pid is None or line_pid(line) == pid


def emit(line):
    try:
        sys.stdout.write(line)
        sys.stdout.flush()
    except BrokenPipeError:
        sys.exit(0)


def dump(path, pid):
    if not os.path.exists(path):
        return
    with open(path) as f:
        for line in f:
            if matches(line, pid):
                emit(line)


def follow(path, pid, interval):
    position = 0
    pending = ""
    while True:
        if os.path.exists(path):
            size = os.path.getsize(path)
            if size < position:
                # buffer was cleared
                position = 0
                pending = ""
            with open(path) as f:
                f.seek(position)
                chunk = f.read()
                position = f.tell()
            pending += chunk
            while "\n" in pending:
                line, pending = pending.split("\n", 1)
                if matches(line, pid):
                    emit(line + "\n")
        time.sleep(interval)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--buffer", required=True)
    parser.add_argument("-d", dest="dump", action="store_true")
    parser.add_argument("-c", dest="clear", action="store_true")
    parser.add_argument("--pid", type=int)
    parser.add_argument("--clear-delay", type=float, default=0.0)
    parser.add_argument("--clear-exit", type=int, default=0)
    parser.add_argument("--interval", type=float, default=0.02)
    args = parser.parse_args()

    if args.clear:
        time.sleep(args.clear_delay)
        open(args.buffer, "w").close()
        return args.clear_exit

    if args.dump:
        dump(args.buffer, args.pid)
        return 0

    follow(args.buffer, args.pid, args.interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
