"""
admit.cache
~~~~~~~~~~~
Request-driven admission cache.  The allow-list is re-fetched at most once
per interval, by whichever request first notices it is stale; everybody
else answers from the snapshot that is current when they look.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from .fetcher import Fetcher, Snapshot
from .keys import NodePublic
from .logger import AdmitLogger

DEFAULT_INTERVAL = 60.0


class AdmissionCache:
    def __init__(
        self,
        fetcher: Fetcher,
        interval: float = DEFAULT_INTERVAL,
        logger: Optional[AdmitLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self._fetcher = fetcher
        self._interval = float(interval)
        self._logger = logger
        self._clock = clock
        self._snapshot: Snapshot = frozenset()
        self._last_attempt: Optional[float] = None
        self._published_from: Optional[float] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def last_attempt(self) -> Optional[float]:
        return self._last_attempt

    async def is_admitted(self, node: NodePublic) -> bool:
        """True if *node* is in the current allow-list.  Never raises."""
        started = self._claim_refresh()
        if started is not None:
            await self._refresh(started)
        return node in self._snapshot

    # ------------------------------------------------------------------ #
    # private
    # ------------------------------------------------------------------ #

    def _claim_refresh(self) -> Optional[float]:
        # No await between the check and the store: one claimant per interval.
        now = self._clock()
        last = self._last_attempt
        if last is not None and now - last < self._interval:
            return None
        self._last_attempt = now
        return now

    async def _refresh(self, started: float) -> None:
        if self._logger:
            self._logger.fetching()
        try:
            nodes = await self._fetcher.fetch()
        except Exception as e:  # noqa: BLE001
            if self._logger:
                self._logger.fetch_failed(e)
            return

        # A fetch that outlived the interval may finish after a newer one.
        if self._published_from is not None and started < self._published_from:
            return
        self._published_from = started
        self._snapshot = frozenset(nodes)
        if self._logger:
            self._logger.updated(len(self._snapshot))
