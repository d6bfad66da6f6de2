"""Cancellable polling."""

from __future__ import annotations

import threading

from vm_tools.utils.waiting import WaitOutcome, pause, wait_until


def test_satisfied_after_some_attempts():
    answers = iter([False, False, True])

    outcome = wait_until(lambda: next(answers), interval=0.001, attempts=5)

    assert outcome == WaitOutcome.SATISFIED


def test_exhausted_after_attempts():
    checks = []

    outcome = wait_until(lambda: checks.append(1) or False, interval=0.001, attempts=3)

    assert outcome == WaitOutcome.EXHAUSTED
    assert len(checks) == 3


def test_deadline_bounds_unlimited_attempts():
    outcome = wait_until(lambda: False, interval=0.01, timeout=0.05)

    assert outcome == WaitOutcome.EXHAUSTED


def test_cancelled_before_first_check():
    cancel = threading.Event()
    cancel.set()
    checks = []

    outcome = wait_until(lambda: checks.append(1) or True, interval=10, attempts=3, cancel=cancel)

    assert outcome == WaitOutcome.CANCELLED
    assert checks == []


def test_cancel_interrupts_a_long_wait():
    cancel = threading.Event()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        outcome = wait_until(lambda: False, interval=30, attempts=1, cancel=cancel)
    finally:
        timer.cancel()

    assert outcome == WaitOutcome.CANCELLED


def test_pause_reports_cancellation():
    cancel = threading.Event()
    assert pause(0.001, cancel) is True
    cancel.set()
    assert pause(5, cancel) is False
