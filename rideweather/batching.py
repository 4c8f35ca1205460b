"""Fixed-size batch fan-out/fan-in over a thread pool."""
from __future__ import annotations

import time
from concurrent.futures import Executor, wait
from typing import Callable, List, Sequence, TypeVar

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="batching")

T = TypeVar("T")
R = TypeVar("R")


def iter_batches(items: Sequence[T], batch_size: int):
    """Yield (start_index, batch) pairs of consecutive slices; the last may be short."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    for start in range(0, len(items), batch_size):
        yield start, items[start:start + batch_size]


def run_in_batches(
    items: Sequence[T],
    worker: Callable[[int, T], R],
    *,
    batch_size: int,
    batch_delay: float,
    executor: Executor,
    sleep: Callable[[float], None] = time.sleep,
) -> List[R]:
    """
    Run `worker(index, item)` for every item, `batch_size` at a time.

    All calls in a batch are submitted together and the batch is awaited in
    full before `batch_delay` seconds of sleep and the next batch; there is no
    sleep after the last batch. Results are placed at the item's index, so the
    output order matches the input order whatever the completion order.

    `worker` is expected to handle its own failures; an exception escaping it
    propagates to the caller once its batch has settled.
    """
    results: List[R] = [None] * len(items)  # type: ignore[list-item]
    total = len(items)

    for start, batch in iter_batches(items, batch_size):
        futures = {
            executor.submit(worker, start + offset, item): start + offset
            for offset, item in enumerate(batch)
        }
        wait(futures)
        for future, index in futures.items():
            results[index] = future.result()

        logger.debug(
            "Batch settled",
            extra={"batch_start": start, "batch_len": len(batch), "total": total},
        )

        if start + batch_size < total:
            sleep(batch_delay)

    return results
