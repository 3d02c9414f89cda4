# report.py
# Building blocks for report scopes: timing, signal trapping, roll-up.

from __future__ import annotations

import signal
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List

from .model import StepResult

TRAPPED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

SignalHandler = Callable[[int, object], None]


def format_duration(seconds: float) -> str:
    """0.42s, 12.00s, 1m3.10s"""
    minutes, secs = divmod(seconds, 60)
    prefix = f"{int(minutes)}m" if minutes > 0 else ""
    return f"{prefix}{secs:.2f}s"


class Stopwatch:
    def __init__(self) -> None:
        self.started_at = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def __str__(self) -> str:
        return format_duration(self.elapsed)


@contextmanager
def trap_signals(handler: SignalHandler) -> Iterator[None]:
    """
    Install `handler` for SIGINT and SIGTERM for the duration of the block.

    The previous handlers come back on every exit path. Python only lets the
    main thread install handlers, so elsewhere this does nothing.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {}
    try:
        for sig in TRAPPED_SIGNALS:
            previous[sig] = signal.signal(sig, handler)
        yield
    finally:
        for sig, prev in previous.items():
            # None means the old handler was not installed from Python
            signal.signal(sig, prev if prev is not None else signal.SIG_DFL)


def failed_titles(results: Iterable[StepResult]) -> List[str]:
    return [r.title for r in results if not r.success]


def all_passed(results: Iterable[StepResult]) -> bool:
    return all(r.success for r in results)
