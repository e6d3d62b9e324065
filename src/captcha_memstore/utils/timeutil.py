from __future__ import annotations

import time

NS_PER_SECOND = 1_000_000_000


def now_ns() -> int:
    return time.monotonic_ns()


def seconds_to_ns(seconds: float) -> int:
    return int(seconds * NS_PER_SECOND)
