"""
Per-page loader state: ``idle -> loading -> {ready | error}``.

A view model owns the fetchers for one page, issues them concurrently, and
exposes the combined data only once every fetch has resolved. A load that was
cancelled (page left mid-fetch) or superseded by a newer load never writes its
results.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, Generic, Mapping, Optional, TypeVar

from crm_dashboard.errors import DataFetchError

logger = logging.getLogger(__name__)

D = TypeVar("D")
Fetcher = Callable[[], Any]


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def fetch_all(fetchers: Mapping[str, Fetcher], max_workers: int = 4) -> Dict[str, Any]:
    """Run every fetcher concurrently and wait for all of them.

    The first failure propagates; fetches that have not started yet are
    cancelled, including when the caller is interrupted.
    """
    if not fetchers:
        return {}
    executor = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(fetchers))))
    try:
        futures = {name: executor.submit(fn) for name, fn in fetchers.items()}
        return {name: future.result() for name, future in futures.items()}
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


class ViewModel(Generic[D]):
    def __init__(
        self,
        name: str,
        fetchers: Mapping[str, Fetcher],
        combine: Callable[[Dict[str, Any]], D],
        empty: Callable[[], D],
        max_workers: int = 4,
    ) -> None:
        self.name = name
        self.fetchers = dict(fetchers)
        self.combine = combine
        self.empty = empty
        self.max_workers = max_workers
        self.state = LoadState.IDLE
        self.data: D = empty()
        self.error: Optional[str] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def loading(self) -> bool:
        return self.state is LoadState.LOADING

    def load(self) -> LoadState:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.state = LoadState.LOADING
            self.error = None

        try:
            data = self.combine(fetch_all(self.fetchers, self.max_workers))
        except DataFetchError as exc:
            logger.error(
                "Error loading %s: %s (code=%s, details=%s)",
                self.name,
                exc,
                exc.code,
                exc.details,
            )
            self._settle(generation, LoadState.ERROR, self.empty(), str(exc))
            return self.state
        except BaseException:
            # Streamlit interrupts the script with an exception on rerun/navigation.
            self.cancel()
            raise

        if self._settle(generation, LoadState.READY, data, None):
            logger.debug("Loaded %s", self.name)
        return self.state

    def _settle(self, generation: int, state: LoadState, data: D, error: Optional[str]) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale load of %s", self.name)
                return False
            self.state = state
            self.data = data
            self.error = error
            return True

    def ensure_loaded(self) -> LoadState:
        """Load on first mount only."""
        if self.state is LoadState.IDLE:
            return self.load()
        return self.state

    def invalidate(self) -> LoadState:
        return self.load()

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self.state is LoadState.LOADING:
                self.state = LoadState.IDLE
