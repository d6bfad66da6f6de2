"""Cancellable, deadline-bound polling."""

import threading
import time
from collections.abc import Callable
from enum import Enum


class WaitOutcome(Enum):
    """How a wait ended."""

    SATISFIED = "satisfied"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


def pause(interval: float, cancel: threading.Event | None = None) -> bool:
    """Sleep for ``interval`` seconds. Returns False if cancelled meanwhile."""
    if cancel is None:
        time.sleep(interval)
        return True
    return not cancel.wait(interval)


def wait_until(
    predicate: Callable[[], bool],
    interval: float,
    attempts: int | None = None,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> WaitOutcome:
    """Poll ``predicate`` every ``interval`` seconds.

    Each attempt waits first and then checks. The wait ends when the
    predicate holds, when ``attempts`` checks or ``timeout`` seconds are used
    up, or as soon as ``cancel`` is set.
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    count = 0

    while attempts is None or count < attempts:
        if cancel is not None and cancel.is_set():
            return WaitOutcome.CANCELLED

        delay = interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            delay = min(interval, remaining)

        if not pause(delay, cancel):
            return WaitOutcome.CANCELLED

        count += 1
        if predicate():
            return WaitOutcome.SATISFIED

    return WaitOutcome.EXHAUSTED
