"""
In-process message queue.

This module owns one asyncio.Queue and one worker task. The app starts it on
startup with a batch handler and closes it on shutdown (see `api/main.py`).

The worker pulls up to QUEUE_BATCH_SIZE messages at a time and hands the
batch to the handler. Delivery is best-effort: a handler failure is logged
and the batch is considered delivered.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable

DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_SIZE = 1000
DEFAULT_DRAIN_TIMEOUT_S = 30.0

BatchHandler = Callable[[list[dict[str, Any]]], Awaitable[None]]

logger = logging.getLogger(__name__)

_queue: asyncio.Queue[dict[str, Any]] | None = None
_worker: asyncio.Task[None] | None = None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def batch_size() -> int:
    value = _env_int("QUEUE_BATCH_SIZE", DEFAULT_BATCH_SIZE)
    return value if value > 0 else DEFAULT_BATCH_SIZE


async def init_queue(handler: BatchHandler) -> None:
    global _queue, _worker
    if _queue is not None:
        return None
    _queue = asyncio.Queue(maxsize=max(0, _env_int("QUEUE_MAX_SIZE", DEFAULT_MAX_SIZE)))
    _worker = asyncio.create_task(_run_worker(_queue, handler), name="realm-queue-worker")


async def close_queue(drain_timeout_s: float = DEFAULT_DRAIN_TIMEOUT_S) -> None:
    """
    Wait (bounded) for pending messages, then stop the worker.
    """
    global _queue, _worker
    if _queue is None:
        return None

    try:
        await asyncio.wait_for(_queue.join(), timeout=drain_timeout_s)
    except asyncio.TimeoutError:
        logger.warning("queue_drain_timeout pending=%s", _queue.qsize())

    if _worker is not None:
        _worker.cancel()
        try:
            await _worker
        except asyncio.CancelledError:
            pass

    _queue = None
    _worker = None


def queue() -> asyncio.Queue[dict[str, Any]]:
    if _queue is None:
        raise RuntimeError("Queue is not initialized. Call init_queue() on startup.")
    return _queue


async def send(body: dict[str, Any]) -> None:
    """
    Enqueue one message body. Waits if the queue is full.
    """
    await queue().put(body)


def send_nowait(body: dict[str, Any]) -> bool:
    """
    Enqueue without waiting; False (and a log line) when the queue is full.

    Handlers running on the worker must use this: a blocking put from the
    only consumer never returns once the queue is full.
    """
    try:
        queue().put_nowait(body)
    except asyncio.QueueFull:
        logger.warning("queue_full_message_dropped body=%s", body)
        return False
    return True


async def _next_batch(q: asyncio.Queue[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    # Block for the first message, then take whatever is already waiting.
    batch = [await q.get()]
    while len(batch) < limit:
        try:
            batch.append(q.get_nowait())
        except asyncio.QueueEmpty:
            break
    return batch


async def _run_worker(q: asyncio.Queue[dict[str, Any]], handler: BatchHandler) -> None:
    limit = batch_size()
    while True:
        batch = await _next_batch(q, limit)
        try:
            await handler(batch)
        except Exception:
            logger.exception("queue_batch_failed size=%s", len(batch))
        finally:
            for _ in batch:
                q.task_done()
