"""Read-through cache in front of the Dreamlo read endpoint.

Serves the cached snapshot while it is fresh, coalesces concurrent misses into
a single upstream fetch, and falls back to the last good snapshot when the
upstream fails.
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from leaderboard_relay.entities.leaderboard import CachedRead, CacheSlot, LeaderboardSnapshot
from leaderboard_relay.errors import UpstreamError
from leaderboard_relay.upstream.dreamlo import DreamloClient

logger = logging.getLogger(__name__)


class LeaderboardCache:
    def __init__(
        self,
        client: DreamloClient,
        ttl_seconds: float = 1.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._slot: CacheSlot | None = None
        self._inflight: asyncio.Task[LeaderboardSnapshot] | None = None

    def peek(self) -> LeaderboardSnapshot | None:
        return self._slot.snapshot if self._slot is not None else None

    @property
    def fetch_in_progress(self) -> bool:
        return self._inflight is not None

    async def read(self) -> CachedRead:
        # No await between the freshness check and publishing the in-flight
        # task: concurrent readers must all see the same handle.
        slot = self._slot
        if slot is not None and self._clock() - slot.fetched_at < self.ttl_seconds:
            return CachedRead(snapshot=slot.snapshot)

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh())
        inflight = self._inflight

        try:
            snapshot = await asyncio.shield(inflight)
        except UpstreamError as exc:
            if self._slot is None:
                raise
            logger.warning("serving stale leaderboard after upstream failure: %s", exc.message)
            return CachedRead(snapshot=self._slot.snapshot, stale=True)

        return CachedRead(snapshot=snapshot)

    async def _refresh(self) -> LeaderboardSnapshot:
        try:
            entries = await self.client.fetch_all()
            snapshot = LeaderboardSnapshot(
                entries=tuple(entries),
                updated_at=datetime.now(timezone.utc),
            )
            self._slot = CacheSlot(fetched_at=self._clock(), snapshot=snapshot)
            logger.info("leaderboard refreshed entries=%d", len(snapshot.entries))
            return snapshot
        finally:
            self._inflight = None
