"""Ordered map over a bounded thread pool.

Fans out the per-domain recommendation work. Each mapper call may block on a
single network request, so threads are the unit of concurrency; the pool size
is the concurrency bound.

- ``stop_on_error=True`` (default): the first failure propagates and work that
  has not started is cancelled.
- ``stop_on_error=False``: every call runs; failures are raised together as an
  ``ExceptionGroup``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Return ``[mapper(x) for x in iterable]`` computed with at most
    ``concurrency`` calls in flight."""

    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = list(iterable)
    if not items:
        return []

    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    workers = min(concurrency, len(items))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="p_map") as pool:
        positions = {pool.submit(mapper, item): i for i, item in enumerate(items)}
        for fut in as_completed(positions):
            try:
                results[positions[fut]] = fut.result()
            except Exception as e:  # noqa: BLE001
                if stop_on_error:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
                errors.append(e)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)
    return [results[i] for i in range(len(items))]


__all__ = ["p_map"]
