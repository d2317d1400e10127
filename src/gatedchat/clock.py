"""Wall clock in integer nanoseconds since the Unix epoch."""

import time

NANOS_PER_SECOND = 1_000_000_000


def now_ns() -> int:
    """Current time in nanoseconds."""
    return time.time_ns()


def seconds_to_ns(seconds: int) -> int:
    return seconds * NANOS_PER_SECOND


# Timestamps and ids are stored as signed 64-bit integers
MAX_INT64 = 2**63 - 1


def fits_int64(value: int) -> bool:
    return 0 <= value <= MAX_INT64
