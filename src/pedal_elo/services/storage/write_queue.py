"""Debounced write coalescing for key-value saves."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from pedal_elo.core.errors import StorageError

from .backends import KeyValueBackend

logger = structlog.get_logger()


class WriteCoalescer:
    """Collapse bursts of writes to the same key into one delayed write.

    Each key has its own quiet-period timer, so a busy key never delays
    writes to other keys. Enqueueing a key that already has a pending value
    replaces the value and restarts that key's timer. Writes to one key are
    serialized so two flushes never interleave on the backend.

    Saves are fire-and-forget: a failed write is logged, never raised.
    """

    def __init__(self, backend: KeyValueBackend, delay: float = 0.7) -> None:
        """Initialize coalescer.

        Args:
            backend: Backend that receives the flushed values.
            delay: Quiet period in seconds before a key is flushed.
        """
        self.backend = backend
        self.delay = delay
        self._pending: dict[str, Any] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._inflight: set[asyncio.Task[None]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def running(self) -> bool:
        return self._loop is not None

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    async def start(self) -> None:
        """Attach to the running event loop."""
        self._loop = asyncio.get_running_loop()
        logger.debug("write_queue_started", delay=self.delay)

    async def stop(self) -> None:
        """Flush everything pending and detach from the loop."""
        await self.flush()
        self._loop = None
        logger.debug("write_queue_stopped")

    async def __aenter__(self) -> WriteCoalescer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def enqueue(self, key: str, value: Any) -> None:
        """Schedule ``value`` to be written to ``key`` after the quiet period.

        Raises:
            RuntimeError: If the coalescer has not been started.
        """
        if self._loop is None:
            raise RuntimeError("WriteCoalescer is not started")

        self._pending[key] = value
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = self._loop.call_later(self.delay, self._flush_key, key)

    async def flush(self) -> None:
        """Write every pending value now and wait for in-flight writes."""
        for key in list(self._timers):
            self._timers.pop(key).cancel()
            self._flush_key(key)
        if self._inflight:
            await asyncio.gather(*self._inflight)

    def _flush_key(self, key: str) -> None:
        self._timers.pop(key, None)
        if key not in self._pending or self._loop is None:
            return
        value = self._pending.pop(key)
        task = self._loop.create_task(self._write(key, value))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _write(self, key: str, value: Any) -> None:
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            try:
                await self.backend.set(key, value)
            except StorageError as e:
                logger.error("storage_set_failed", key=key, error=e.message)
                return
        logger.debug("storage_set", key=key)
