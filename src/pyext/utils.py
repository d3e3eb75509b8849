"""Scheduling work over bidegrees (s, t)."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from . import base_algebra as BA

logger = logging.getLogger(__name__)

ENV_NUM_THREADS = "PYEXT_NUM_THREADS"


def get_num_threads(num_threads: Optional[int] = None) -> int:
    """Return the number of worker threads, by default from `PYEXT_NUM_THREADS` or the cpu count."""
    if num_threads is None:
        env = os.environ.get(ENV_NUM_THREADS)
        if env:
            try:
                num_threads = int(env)
            except ValueError:
                raise BA.MyValueError(f"{ENV_NUM_THREADS}={env!r} is not an integer") from None
        else:
            num_threads = os.cpu_count() or 1
    if num_threads < 1:
        raise BA.MyValueError(f"need at least one thread, got {num_threads}")
    return num_threads


def _as_bound(max_t) -> Callable[[int], int]:
    if callable(max_t):
        return max_t
    return lambda s: max_t


class _Tracker:
    """Count outstanding tasks and keep the first error."""

    def __init__(self):
        self._cond = threading.Condition()
        self._pending = 0
        self.error = None  # type: Optional[BaseException]

    def start(self) -> bool:
        with self._cond:
            if self.error is not None:
                return False
            self._pending += 1
            return True

    def finish(self, error: Optional[BaseException] = None):
        with self._cond:
            if error is not None and self.error is None:
                self.error = error
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()

    def wait(self):
        with self._cond:
            while self._pending:
                self._cond.wait()


def iter_s_t(
    f: Callable[[int, int], range],
    min_s: int,
    min_t: int,
    max_s: int,
    max_t: Callable[[int], int] | int,
    *,
    num_threads: Optional[int] = None,
):
    """Call `f(s, t)` for every `min_s <= s < max_s` and `min_t <= t < max_t(s)`.

    `f(s, t)` is only called after `f(s - 1, t')` has returned for every `t' < t`.
    `f` returns the range of t in row s that became complete because of the call,
    and each t' in that range unlocks (s + 1, t' + 1). Calls run on a thread pool.
    The first exception raised by `f` stops further scheduling and is re-raised
    once the running calls have finished."""
    max_t = _as_bound(max_t)
    tracker = _Tracker()

    with ThreadPoolExecutor(max_workers=get_num_threads(num_threads)) as pool:

        def submit(s, t):
            if tracker.start():
                pool.submit(run, s, t)

        def run(s, t):
            error = None
            try:
                advanced = f(s, t)
                if s + 1 < max_s and len(advanced):
                    end = min(advanced.stop + 1, max_t(s + 1))
                    for t1 in range(advanced.start + 1, end):
                        submit(s + 1, t1)
            except Exception as e:
                logger.warning("step (%d, %d) failed: %r", s, t, e)
                error = e
            finally:
                tracker.finish(error)

        if min_s < max_s:
            for t in range(min_t, max_t(min_s)):
                submit(min_s, t)
        for s in range(min_s + 1, max_s):
            if min_t < max_t(s):
                submit(s, min_t)
        tracker.wait()

    if tracker.error is not None:
        raise tracker.error


def catch_up_s_t(
    f: Callable[[int, int], range],
    watermark: Callable[[int], int],
    min_s: int,
    max_s: int,
    max_t: Callable[[int], int] | int,
):
    """Bring rows `min_s < s < max_s` up to the degrees their previous row allows.

    `watermark(s)` is the first t not yet computed in row s. Rows are processed in
    increasing s, so that afterwards every row is complete through the bound
    `iter_s_t` expects before it starts."""
    max_t = _as_bound(max_t)
    for s in range(min_s + 1, max_s):
        end = min(watermark(s - 1) + 1, max_t(s))
        if watermark(s) < end:
            f(s, end - 1)
