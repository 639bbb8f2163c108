"""Bounded-concurrency job scheduler for component updates."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Generic, TypeVar

from wsupdate import log

T = TypeVar("T")


class JobScheduler(Generic[T]):
    """Runs jobs on a fixed pool of at most ``max_parallel_jobs`` threads.

    Usage::

        sched = JobScheduler(4)
        results = sched.run([task.run for task in tasks], on_crash=fallback)

    Results come back in submission order. A job that raises does not stop
    the batch: the error is logged and ``on_crash(index, exc)`` supplies
    that job's result instead.
    """

    def __init__(self, max_parallel_jobs: int) -> None:
        if max_parallel_jobs <= 0:
            raise ValueError(f"max_parallel_jobs must be positive, got {max_parallel_jobs}")
        self.max_parallel_jobs = max_parallel_jobs
        self._lock = threading.Lock()
        self._in_flight: set[int] = set()
        self.peak_in_flight = 0

    # ── execution ────────────────────────────────────────────────

    def _track(self, index: int, job: Callable[[], T]) -> T:
        with self._lock:
            self._in_flight.add(index)
            self.peak_in_flight = max(self.peak_in_flight, len(self._in_flight))
        try:
            return job()
        finally:
            with self._lock:
                self._in_flight.discard(index)

    def run(
        self,
        jobs: Sequence[Callable[[], T]],
        *,
        on_crash: Callable[[int, Exception], T],
    ) -> list[T]:
        if not jobs:
            return []

        results: dict[int, T] = {}
        with ThreadPoolExecutor(
            max_workers=self.max_parallel_jobs,
            thread_name_prefix="wsupdate",
        ) as pool:
            futures = {pool.submit(self._track, i, job): i for i, job in enumerate(jobs)}
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as exc:
                    log.error(f"Job {index} crashed: {type(exc).__name__}: {exc}")
                    results[index] = on_crash(index, exc)
        return [results[i] for i in range(len(jobs))]
