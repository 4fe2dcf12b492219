"""Checkpointed batch runner shared by the propagation and state phases."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

_LOGGER = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


def chunk(items: Sequence[ItemT], size: int) -> list[list[ItemT]]:
    """Split items into consecutive batches of at most size."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def run_checkpointed_batches(
    items: Sequence[ItemT],
    *,
    batch_size: int,
    start_batch: int,
    process_item: Callable[[ItemT], ResultT],
    on_batch_done: Callable[[int, list[ItemT], list[ResultT]], None],
    max_workers: int = 1,
    thread_name_prefix: str = "ux-batch",
) -> int:
    """Run batches from start_batch on, checkpointing after each one.

    Batches before start_batch (1-based) are skipped. Items within a batch may
    run concurrently; on_batch_done is called with results in item order and
    must make the checkpoint durable before it returns. An exception from
    process_item propagates after the batch's other items finish, and no
    checkpoint is written for that batch.

    Args:
        items: All items of the phase, in stable order.
        batch_size: Items per batch.
        start_batch: 1-based index of the first batch to run.
        process_item: Work for one item.
        on_batch_done: Checkpoint callback (batch number, items, results).
        max_workers: Concurrent items per batch.
        thread_name_prefix: Worker thread name prefix.

    Returns:
        Number of batches processed in this call.
    """
    batches = chunk(items, batch_size)
    processed = 0
    for batch_number, batch in enumerate(batches, start=1):
        if batch_number < start_batch:
            continue
        _LOGGER.info(
            "Batch %d/%d (%d items)", batch_number, len(batches), len(batch)
        )
        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        ) as pool:
            results = list(pool.map(process_item, batch))
        on_batch_done(batch_number, batch, results)
        processed += 1
    return processed


def committed_items(
    items: Sequence[ItemT], *, batch_size: int, start_batch: int
) -> list[ItemT]:
    """Items of the batches before start_batch, i.e. those already checkpointed.

    Progress records outside this set belong to a batch whose cursor advance
    never landed and must be discarded before the batch is rerun.
    """
    if start_batch <= 1:
        return []
    return list(items[: (start_batch - 1) * batch_size])
