#!/usr/bin/env python
"""Parallel contexts for SPMD evaluation of the RDC engine.

The engine never talks to a communication library directly.  It is given
a `ParallelContext` that knows how many workers take part, which one the
caller is, and how to combine buffers across all of them.

- `SerialContext`: a single worker; all collectives are identities.
- `ThreadGroup`: ``W`` workers living in the same process.  Every worker
  gets its own `ThreadContext`; collectives synchronise on a barrier and
  combine the contributions in worker order, so every worker ends up
  with bit-identical results.
- `run_workers`: run one function per worker of a `ThreadGroup` on a
  thread pool and collect the per-worker return values.

>>> run_workers(lambda ctx: ctx.allreduce_sum(np.array([ctx.worker_index])), 3)
[array([3]), array([3]), array([3])]
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ParallelContext(ABC):
    """Interface between the engine and a group of workers."""

    @property
    @abstractmethod
    def worker_count(self) -> int:
        """Number of workers in the group."""

    @property
    @abstractmethod
    def worker_index(self) -> int:
        """Index of the calling worker, ``0 <= index < worker_count``."""

    @abstractmethod
    def allreduce_sum(self, buffer: np.ndarray) -> np.ndarray:
        """Element-wise sum of `buffer` over all workers.

        The sum is written back into `buffer`, which is also returned.
        """

    @abstractmethod
    def allgather(self, buffer: np.ndarray) -> list[np.ndarray]:
        """Every worker's copy of `buffer`, indexed by worker."""

    def __repr__(self) -> str:
        lines = [
            str(type(self).__name__),
            f"Worker: {self.worker_index} of {self.worker_count}",
        ]
        return "\n".join(lines)


class SerialContext(ParallelContext):
    """A group made of a single worker.

    >>> SerialContext()
    SerialContext
    Worker: 0 of 1
    """

    @property
    def worker_count(self) -> int:
        return 1

    @property
    def worker_index(self) -> int:
        return 0

    def allreduce_sum(self, buffer: np.ndarray) -> np.ndarray:
        return buffer

    def allgather(self, buffer: np.ndarray) -> list[np.ndarray]:
        return [buffer.copy()]


class ThreadGroup:
    """Shared state of `workers` in-process workers.

    Args:
        workers (int): Number of workers taking part in every collective.
    """

    def __init__(self, workers: int):
        if workers < 1:
            raise ValueError(f"A worker group needs at least one worker, got {workers}.")
        self.workers = workers
        self._barrier = threading.Barrier(workers)
        self._slots: list = [None] * workers

    def context(self, index: int) -> "ThreadContext":
        """Context handed to worker `index`."""
        if not 0 <= index < self.workers:
            raise ValueError(f"Worker index {index} out of range for {self.workers} workers.")
        return ThreadContext(self, index)

    def abort(self):
        """Release every worker waiting in a collective.

        Waiting workers raise `threading.BrokenBarrierError`.
        """
        self._barrier.abort()

    def _exchange(self, index: int, buffer: np.ndarray) -> list[np.ndarray]:
        self._slots[index] = np.array(buffer, copy=True)
        self._barrier.wait()
        contributions = list(self._slots)
        # Nobody may overwrite a slot before every worker has read it.
        self._barrier.wait()
        return contributions


class ThreadContext(ParallelContext):
    """One worker of a `ThreadGroup`."""

    def __init__(self, group: ThreadGroup, index: int):
        self.group = group
        self.index = index

    @property
    def worker_count(self) -> int:
        return self.group.workers

    @property
    def worker_index(self) -> int:
        return self.index

    def allreduce_sum(self, buffer: np.ndarray) -> np.ndarray:
        contributions = self.group._exchange(self.index, buffer)
        total = contributions[0].copy()
        for contribution in contributions[1:]:
            total += contribution
        buffer[...] = total
        return buffer

    def allgather(self, buffer: np.ndarray) -> list[np.ndarray]:
        return self.group._exchange(self.index, buffer)


def run_workers(function: Callable[[ParallelContext], T], workers: int) -> list[T]:
    """Run `function` once per worker of a new `ThreadGroup`.

    Args:
        function (Callable): Called as ``function(context)`` on every
            worker; all workers must issue the same collectives in the
            same order.
        workers (int): Number of workers.

    Returns:
        list: Return value of every worker, indexed by worker.

    Raises:
        Exception: The first error raised by a worker.  The remaining
            workers are released from their collectives.
    """
    group = ThreadGroup(workers)

    def _worker(index: int):
        try:
            return function(group.context(index))
        except Exception:
            group.abort()
            raise

    logger.debug("Running %d workers.", workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_worker, i) for i in range(workers)]
        errors = [f.exception() for f in futures]
    errors = [e for e in errors if e is not None]
    if errors:
        primary = [e for e in errors if not isinstance(e, threading.BrokenBarrierError)]
        raise (primary or errors)[0]
    return [f.result() for f in futures]
