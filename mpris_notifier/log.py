"""
Logging for mpris-notifier.

Every message goes to stderr and, when a log file is configured, is appended
to that file as well. Messages carry a bracketed tag naming the part of the
program they come from, e.g. ``log("[DBus] Connected")``.
"""

import sys
import time
from typing import Optional

DEFAULT_LOG_FILE = "/tmp/mpris-notifier.log"

_log_file: Optional[str] = DEFAULT_LOG_FILE


def set_log_file(path: Optional[str]):
    """Set (or with None/"" disable) the file log messages are appended to"""
    global _log_file
    _log_file = path or None


def log(message: str):
    """Log to both stderr and a file"""
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    log_msg = f"{timestamp} {message}"
    print(log_msg, file=sys.stderr, flush=True)
    if _log_file is None:
        return
    try:
        with open(_log_file, 'a') as f:
            f.write(log_msg + "\n")
    except OSError:
        pass
