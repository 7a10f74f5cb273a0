from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .collector import collect_metrics
from .config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Immutable metric set produced by one refresh."""

    metrics: Mapping[str, int | float]
    created_at: float
    fetched_at: float

    @classmethod
    def build(cls, metrics: Mapping[str, int | float], created_at: float, fetched_at: float) -> Snapshot:
        return cls(MappingProxyType(dict(metrics)), created_at, fetched_at)

    def age(self, now: float) -> float:
        return now - self.fetched_at


class MetricsCache:
    """
    Serves the latest Snapshot while it is younger than ``max_age`` seconds.

    Refreshes happen lazily on read. Concurrent readers that find the
    snapshot stale share one in-flight refresh.

    Args:
        settings: Exporter settings passed to the collector
        max_age: Freshness window in seconds (defaults to settings.cache_seconds)
        collect: Coroutine function ``(settings, now) -> metrics`` run on refresh
        clock: Monotonic clock used for freshness checks
        wall_clock: Wall clock used to stamp snapshots
    """

    def __init__(
        self,
        settings: Settings,
        max_age: float | None = None,
        collect: Callable[..., Awaitable[Mapping[str, int | float]]] = collect_metrics,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.max_age = settings.cache_seconds if max_age is None else max_age
        self._collect = collect
        self._clock = clock
        self._wall_clock = wall_clock
        self._snapshot: Snapshot | None = None
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    def is_fresh(self, now: float | None = None) -> bool:
        if self._snapshot is None:
            return False
        if now is None:
            now = self._clock()
        return self._snapshot.age(now) < self.max_age

    async def get(self) -> Snapshot:
        """Return the current snapshot, refreshing it first if it has expired."""
        if self.is_fresh():
            logger.info("Using cached metrics")
            return self._snapshot
        async with self._lock:
            # Another reader may have refreshed while we waited.
            if self.is_fresh():
                logger.info("Using cached metrics")
                return self._snapshot
            return await self._refresh_locked()

    async def refresh(self) -> Snapshot:
        """Force a new snapshot regardless of the current one's age."""
        async with self._lock:
            return await self._refresh_locked()

    async def _refresh_locked(self) -> Snapshot:
        logger.info("Fetching fresh metrics...")
        fetched_at = self._clock()
        created_at = self._wall_clock()
        metrics = await self._collect(self.settings, now=created_at)
        self._snapshot = Snapshot.build(metrics, created_at=created_at, fetched_at=fetched_at)
        return self._snapshot
