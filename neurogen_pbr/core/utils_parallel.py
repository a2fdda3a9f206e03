"""Parallel execution helpers for map generation."""
from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Optional, Sequence, TypeVar

from .errors import InvalidParameter

LOGGER = logging.getLogger("neurogen_pbr.parallel")

T = TypeVar("T")
R = TypeVar("R")


def create_thread_pool(max_workers: Optional[int] = None) -> concurrent.futures.ThreadPoolExecutor:
    """Create a thread pool executor with sane defaults."""

    return concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="neurogen")


def run_parallel(function: Callable[[T], R], items: Sequence[T], *, max_workers: Optional[int] = None) -> list[R]:
    """Run *function* for each element in *items* concurrently.

    Results are returned in the order of *items*. The first worker exception
    is re-raised once every job has finished.
    """

    if max_workers is not None and max_workers < 1:
        raise InvalidParameter(f"max_workers must be a positive integer, got {max_workers}")
    if not items:
        return []
    LOGGER.debug("Starting thread pool with up to %s workers for %d jobs", max_workers, len(items))
    with create_thread_pool(max_workers=max_workers) as executor:
        futures = [executor.submit(function, item) for item in items]
        concurrent.futures.wait(futures)
    return [future.result() for future in futures]
