"""
Entity synchronizer.

A Synchronizer keeps a live, eventually consistent projection of one store
collection. It runs a single watch task; every notification produces a new
full snapshot which replaces the previous one and is pushed to every
observer. Observers each own a queue, so one slow consumer never delays
another.

Lifecycle is scoped: start() subscribes, stop() cancels exactly once and
completes every observer. Use it as an async context manager to make the
stop unconditional.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing, suppress
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from statuspage.derivation import combine_states
from statuspage.schemas.status import ViewState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """Point-in-time copy of a collection plus the state of its subscription."""

    state: ViewState
    items: tuple[T, ...] = ()
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.state is ViewState.ready


class Synchronizer(Generic[T]):
    """
    Live projection of one collection.

    source is called once per start() and must return the store's watch
    generator (initial snapshot, then one per change).
    """

    def __init__(self, name: str, source: Callable[[], AsyncIterator[Sequence[T]]]) -> None:
        self.name = name
        self._source = source
        self._current: Snapshot[T] = Snapshot(ViewState.loading)
        self._observers: set[asyncio.Queue[Snapshot[T] | None]] = set()
        self._task: asyncio.Task[None] | None = None
        self._stopped = False
        self._finished = False

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    @property
    def current(self) -> Snapshot[T]:
        return self._current

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def start(self) -> None:
        if self._stopped:
            raise RuntimeError(f"Synchronizer {self.name} was stopped")
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"sync:{self.name}")

    async def stop(self) -> None:
        """Cancel the subscription and complete all observers. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        try:
            if self._task is not None:
                self._task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._task
        finally:
            self._finish()

    async def __aenter__(self) -> Synchronizer[T]:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # -----------------------------------------------------------------------
    # Observation
    # -----------------------------------------------------------------------

    async def observe(self) -> AsyncIterator[Snapshot[T]]:
        """
        Current snapshot, then every later one until the synchronizer stops
        or fails. Each call is an independent sequence.
        """
        queue: asyncio.Queue[Snapshot[T] | None] = asyncio.Queue()
        self._observers.add(queue)
        try:
            yield self._current
            if self._finished:
                return
            while True:
                snapshot = await queue.get()
                if snapshot is None:
                    return
                yield snapshot
        finally:
            self._observers.discard(queue)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _run(self) -> None:
        try:
            async with aclosing(self._source()) as snapshots:
                async for items in snapshots:
                    self._publish(Snapshot(ViewState.ready, tuple(items)))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Subscription %s failed: %s", self.name, exc)
            self._publish(
                Snapshot(ViewState.error, self._current.items, str(exc) or type(exc).__name__)
            )
        self._finish()

    def _publish(self, snapshot: Snapshot[T]) -> None:
        self._current = snapshot
        for queue in self._observers:
            queue.put_nowait(snapshot)

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        for queue in self._observers:
            queue.put_nowait(None)


async def combine_latest(
    *syncs: Synchronizer[Any],
) -> AsyncIterator[tuple[Snapshot[Any], ...]]:
    """
    Merge synchronizers into one stream of latest-snapshot tuples.

    Emits whenever any input emits; ends when every input has ended.
    """
    queue: asyncio.Queue[tuple[int, Snapshot[Any] | None]] = asyncio.Queue()
    latest: list[Snapshot[Any]] = [s.current for s in syncs]

    async def pump(index: int, sync: Synchronizer[Any]) -> None:
        async with aclosing(sync.observe()) as snapshots:
            async for snapshot in snapshots:
                await queue.put((index, snapshot))
        await queue.put((index, None))

    tasks = [
        asyncio.create_task(pump(i, s), name=f"combine:{s.name}")
        for i, s in enumerate(syncs)
    ]
    remaining = len(tasks)
    try:
        while remaining:
            index, snapshot = await queue.get()
            if snapshot is None:
                remaining -= 1
                continue
            latest[index] = snapshot
            yield tuple(latest)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def merged_state(snapshots: Sequence[Snapshot[Any]]) -> tuple[ViewState, str | None]:
    """Combined state of several snapshots and the first error message."""
    state = combine_states(*(s.state for s in snapshots))
    error = next((s.error for s in snapshots if s.error), None)
    return state, error
