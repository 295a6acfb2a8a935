"""Wall-clock helpers."""

import time

_DATE_TIME_FORMAT = "%Y-%m-%d-%H:%M:%S"


def time_ns():
    """Current wall-clock time in nanoseconds."""
    return time.time_ns()


def time_us():
    """Current wall-clock time in microseconds."""
    return time.time_ns() // 1_000


def time_ms():
    """Current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def date_time():
    """Local time formatted as ``YYYY-mm-dd-HH:MM:SS``."""
    return time.strftime(_DATE_TIME_FORMAT, time.localtime())