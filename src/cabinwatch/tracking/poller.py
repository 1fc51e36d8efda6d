"""Snapshot polling loop.

One asyncio task fetches a snapshot every ``interval`` seconds while the
poller is started. Fetches never overlap: a tick or an on-demand refresh
that arrives while a fetch is outstanding waits for that fetch instead of
issuing another. ``stop()`` suspends the loop without cancelling a fetch
in flight; that fetch completes and its result is dropped.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from cabinwatch.snapshot.classifier import classify_snapshot
from cabinwatch.snapshot.models import Device, Snapshot
from cabinwatch.tracking.base import SnapshotSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollState:
    """What consumers see. Replaced as a whole, never mutated."""

    snapshot: Snapshot | None = None
    fetched_at: datetime | None = None
    error: str | None = None
    failed_at: datetime | None = None

    @property
    def is_stale(self) -> bool:
        return self.error is not None

    @property
    def devices(self) -> list[Device]:
        return list(self.snapshot.devices) if self.snapshot else []


class SnapshotPoller:
    """Periodically refreshes the device snapshot from a SnapshotSource."""

    def __init__(
        self,
        source: SnapshotSource,
        interval: float = 5,
        timeout: float = 15.0,
    ) -> None:
        self.source = source
        self.interval = interval
        self.timeout = timeout
        self._state = PollState()
        self._callbacks: list[Callable[[PollState], None]] = []
        self._running = False
        self._generation = 0
        self._wakeup: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._retired: set[asyncio.Task[None]] = set()
        self._inflight: asyncio.Task[None] | None = None
        self._inflight_generation = -1

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    def on_update(self, callback: Callable[[PollState], None]) -> None:
        """Register a callback invoked with every newly applied state."""
        self._callbacks.append(callback)

    async def start(self) -> None:
        """Start or resume polling. No-op when already running."""
        if self._running:
            return
        logger.info("Starting snapshot poller (%s, interval=%ss)", self.source.name, self.interval)
        self._running = True
        self._generation += 1
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._poll_loop(self._generation, self._wakeup))

    async def stop(self) -> None:
        """Suspend polling. A fetch in flight finishes and is discarded."""
        if not self._running:
            return
        logger.info("Suspending snapshot poller")
        self._running = False
        self._generation += 1
        if self._wakeup is not None:
            self._wakeup.set()
        if self._task is not None and not self._task.done():
            # Keep a reference until the loop notices and exits
            self._retired.add(self._task)
            self._task.add_done_callback(self._retired.discard)
        self._task = None

    async def close(self) -> None:
        """Stop polling and cancel everything still running."""
        await self.stop()
        tasks: list[asyncio.Task] = [*self._retired]
        if self._inflight is not None and not self._inflight.done():
            tasks.append(self._inflight)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.debug("Task raised during poller shutdown", exc_info=True)
        self._inflight = None

    async def refresh(self) -> PollState:
        """Fetch now, sharing any fetch already in flight, and return the state."""
        await self._refresh(self._generation)
        return self._state

    async def _poll_loop(self, generation: int, wakeup: asyncio.Event) -> None:
        while self._generation == generation:
            try:
                await self._refresh(generation)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Snapshot poller error")

            if self._generation != generation:
                break
            try:
                await asyncio.wait_for(wakeup.wait(), timeout=self.interval)
            except TimeoutError:
                pass

    async def _fetch(self, generation: int) -> None:
        """Fetch one snapshot and apply it, unless polling moved on meanwhile."""
        try:
            raw = await asyncio.wait_for(self.source.fetch(), timeout=self.timeout)
            snapshot = classify_snapshot(raw)
        except TimeoutError:
            snapshot, error = None, f"Snapshot fetch timed out after {self.timeout}s"
        except Exception as e:
            snapshot, error = None, f"Snapshot fetch failed: {e}"
        else:
            error = None

        if self._generation != generation:
            logger.debug("Discarding snapshot fetched before suspension")
            return
        if snapshot is None:
            logger.warning("%s; keeping previous snapshot", error)
            self._apply(replace(self._state, error=error, failed_at=datetime.now(UTC)))
        else:
            logger.debug("Snapshot refreshed: %d devices", len(snapshot.devices))
            self._apply(PollState(snapshot=snapshot, fetched_at=datetime.now(UTC)))

    def _claim_inflight(self, generation: int) -> tuple[asyncio.Task[None], int]:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._fetch(generation))
            self._inflight_generation = generation
        return self._inflight, self._inflight_generation

    async def _refresh(self, generation: int) -> None:
        # The fetch task applies its own result; joiners only wait for it
        while True:
            inflight, started_in = self._claim_inflight(generation)
            try:
                await asyncio.shield(inflight)
            except asyncio.CancelledError:
                if not inflight.cancelled():
                    raise
                return

            if self._generation != generation or started_in == generation:
                return
            # Shared a fetch begun before a suspend/resume cycle; fetch again

    def _apply(self, state: PollState) -> None:
        self._state = state
        for cb in self._callbacks:
            try:
                cb(state)
            except Exception:
                logger.exception("Poll state callback failed")
