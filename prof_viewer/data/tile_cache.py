"""
Tile Cache
==========

This module keeps fetched tiles keyed by (EntryID, TileID) and orchestrates
fetches from a DataSource so that no tile is generated twice.

Each key moves through ABSENT -> IN_FLIGHT -> CACHED. Tiles are fetched
either in the foreground (blocking) or on a TileFetchWorker thread; while a
background fetch is in flight the cache answers None so the layout can draw a
placeholder instead of blocking the interactive loop.

The cache is append-only: nothing is evicted implicitly and cached content is
never replaced. Memory is bounded by the backend's tile granularity.

Author: Prof Viewer Core
Version: 1.0
"""

import logging
import threading
import time
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from PyQt5.QtCore import QCoreApplication, QObject, QThread, pyqtSignal

from prof_viewer.data.data_source import DataSource
from prof_viewer.data.entry import EntryID
from prof_viewer.data.tiles import SlotTile, SummaryTile, TileID
from prof_viewer.timestamp import Interval
from prof_viewer.utils.error_handler import EntryMismatchError, ErrorHandler, TileFetchError

logger = logging.getLogger(__name__)

Tile = Union[SummaryTile, SlotTile]
TileKey = Tuple[EntryID, TileID]


class TileState(Enum):
    ABSENT = "absent"
    IN_FLIGHT = "in_flight"
    CACHED = "cached"


def fetch_tile(data_source: DataSource, entry_id: EntryID, tile_id: TileID) -> Tile:
    """Fetch a summary or slot tile depending on the entry it belongs to."""
    if entry_id.is_summary():
        return data_source.fetch_summary_tile(entry_id, tile_id)
    return data_source.fetch_slot_tile(entry_id, tile_id)


class TileFetchWorker(QThread):
    """Worker thread fetching one tile in the background."""

    # Signals
    tile_fetched = pyqtSignal(object, object, object)  # (entry_id, tile_id, tile)
    fetch_failed = pyqtSignal(object, object, object)  # (entry_id, tile_id, error)

    def __init__(self, data_source: DataSource, entry_id: EntryID, tile_id: TileID):
        """
        Initialize fetch worker.

        Args:
            data_source: Backend to fetch from
            entry_id: Entry the tile belongs to
            tile_id: Tile to fetch
        """
        super().__init__()
        self.data_source = data_source
        self.entry_id = entry_id
        self.tile_id = tile_id
        self._cancelled = False

    def run(self):
        """Execute the fetch in the background thread."""
        if self._cancelled:
            return
        try:
            logger.debug(f"Fetching {self.tile_id} for {self.entry_id} in background")
            tile = fetch_tile(self.data_source, self.entry_id, self.tile_id)
        except Exception as e:
            self.fetch_failed.emit(self.entry_id, self.tile_id, e)
            return
        # Cancellation is advisory: a completed fetch is still delivered and cached
        self.tile_fetched.emit(self.entry_id, self.tile_id, tile)

    def cancel(self):
        """Skip the fetch if it has not started yet."""
        self._cancelled = True


class TileCache(QObject):
    """
    Fetch orchestrator and append-only cache for one data source.

    Signals:
        tile_loaded: A tile became available for display (entry_id, tile_id)
        tile_failed: A fetch failed; the tile stays absent (entry_id, tile_id, message)
        cache_updated: Cache contents changed
    """

    # Signals
    tile_loaded = pyqtSignal(object, object)
    tile_failed = pyqtSignal(object, object, str)
    cache_updated = pyqtSignal()

    def __init__(self, data_source: DataSource, error_handler: Optional[ErrorHandler] = None,
                 background: bool = False):
        """
        Initialize tile cache.

        Args:
            data_source: Backend providing tiles
            error_handler: Handler that records fetch failures
            background: Default fetch mode for tile requests
        """
        super().__init__()
        self.data_source = data_source
        self.error_handler = error_handler or ErrorHandler()
        self.background = background

        self._cache: Dict[TileKey, Tile] = {}
        # key -> worker (None for a foreground fetch)
        self._in_flight: Dict[TileKey, Optional[TileFetchWorker]] = {}
        self._failures: Dict[TileKey, int] = {}
        self._visible_interval: Optional[Interval] = None

        # Lock for thread safety
        self._lock = threading.Lock()

        self.cache_hits = 0
        self.cache_misses = 0
        self.fetch_count = 0
        self.failure_count = 0
        self.stale_results = 0
        self.duplicate_requests = 0

        logger.info("TileCache initialized")

    def set_visible_interval(self, interval: Optional[Interval]):
        """Record the current view window; results outside it are not announced."""
        self._visible_interval = interval

    def request_tiles(self, entry_id: EntryID, interval: Interval) -> List[TileID]:
        """
        Canonical tile partition of a window for an entry.

        Returns:
            List[TileID]: The partition, or an empty list if the backend failed
        """
        try:
            return list(self.data_source.request_tiles(entry_id, interval))
        except EntryMismatchError:
            raise
        except Exception as e:
            with self._lock:
                self.failure_count += 1
            fetch_error = TileFetchError(
                "Tile partition unavailable",
                entry_id=entry_id,
                original_error=e,
            )
            self.error_handler.handle_error(fetch_error, "requesting tiles")
            return []

    def state(self, entry_id: EntryID, tile_id: TileID) -> TileState:
        key = (entry_id, tile_id)
        with self._lock:
            if key in self._cache:
                return TileState.CACHED
            if key in self._in_flight:
                return TileState.IN_FLIGHT
            return TileState.ABSENT

    def get_cached(self, entry_id: EntryID, tile_id: TileID) -> Optional[Tile]:
        with self._lock:
            return self._cache.get((entry_id, tile_id))

    def summary_tile(self, entry_id: EntryID, tile_id: TileID,
                     background: Optional[bool] = None) -> Optional[SummaryTile]:
        if not entry_id.is_summary():
            raise EntryMismatchError("Summary tile requested for an entry that is not a summary", entry_id)
        return self.tile(entry_id, tile_id, background)

    def slot_tile(self, entry_id: EntryID, tile_id: TileID,
                  background: Optional[bool] = None) -> Optional[SlotTile]:
        if entry_id.is_summary():
            raise EntryMismatchError("Slot tile requested for a summary entry", entry_id)
        return self.tile(entry_id, tile_id, background)

    def summary_tiles(self, entry_id: EntryID, interval: Interval,
                      background: Optional[bool] = None) -> List[Tuple[TileID, Optional[SummaryTile]]]:
        return [(tile_id, self.summary_tile(entry_id, tile_id, background))
                for tile_id in self.request_tiles(entry_id, interval)]

    def slot_tiles(self, entry_id: EntryID, interval: Interval,
                   background: Optional[bool] = None) -> List[Tuple[TileID, Optional[SlotTile]]]:
        return [(tile_id, self.slot_tile(entry_id, tile_id, background))
                for tile_id in self.request_tiles(entry_id, interval)]

    def tile(self, entry_id: EntryID, tile_id: TileID,
             background: Optional[bool] = None) -> Optional[Tile]:
        """
        Get a tile, fetching it if it is not cached.

        Args:
            entry_id: Summary or slot entry
            tile_id: Tile to get
            background: Fetch on a worker thread; defaults to the cache setting

        Returns:
            Optional[Tile]: The tile, or None while it is in flight or after a failed fetch
        """
        if background is None:
            background = self.background
        key = (entry_id, tile_id)

        with self._lock:
            if key in self._cache:
                self.cache_hits += 1
                return self._cache[key]
            if key in self._in_flight:
                self.duplicate_requests += 1
                return None
            self.cache_misses += 1
            if background and QCoreApplication.instance() is None:
                logger.warning("No Qt application running; fetching in foreground")
                background = False
            self._in_flight[key] = None

        if background:
            self._fetch_background(entry_id, tile_id)
            return None
        return self._fetch_foreground(entry_id, tile_id)

    def _fetch_foreground(self, entry_id: EntryID, tile_id: TileID) -> Optional[Tile]:
        key = (entry_id, tile_id)
        logger.debug(f"Fetching {tile_id} for {entry_id}")
        try:
            tile = fetch_tile(self.data_source, entry_id, tile_id)
        except EntryMismatchError:
            with self._lock:
                self._in_flight.pop(key, None)
            raise
        except Exception as e:
            self._record_failure(entry_id, tile_id, e)
            return None

        tile = self._store(entry_id, tile_id, tile)
        self.tile_loaded.emit(entry_id, tile_id)
        return tile

    def _fetch_background(self, entry_id: EntryID, tile_id: TileID):
        worker = TileFetchWorker(self.data_source, entry_id, tile_id)
        worker.tile_fetched.connect(self._on_tile_fetched)
        worker.fetch_failed.connect(self._on_fetch_failed)

        with self._lock:
            self._in_flight[(entry_id, tile_id)] = worker

        worker.start()
        logger.debug(f"Started background fetch of {tile_id} for {entry_id}")

    def _on_tile_fetched(self, entry_id: EntryID, tile_id: TileID, tile: Tile):
        self._release_worker(entry_id, tile_id)
        self._store(entry_id, tile_id, tile)

        visible = self._visible_interval
        if visible is not None and not tile_id.interval.overlaps(visible):
            self.stale_results += 1
            logger.debug(f"Fetched {tile_id} for {entry_id} is outside the view; cached only")
            return
        self.tile_loaded.emit(entry_id, tile_id)

    def _on_fetch_failed(self, entry_id: EntryID, tile_id: TileID, error: Exception):
        self._release_worker(entry_id, tile_id)
        if isinstance(error, EntryMismatchError):
            # Cannot propagate across threads; report at critical severity
            self.error_handler.handle_error(error, "fetching tile in background")
            self.tile_failed.emit(entry_id, tile_id, error.message)
            return
        self._record_failure(entry_id, tile_id, error)

    def _release_worker(self, entry_id: EntryID, tile_id: TileID):
        with self._lock:
            worker = self._in_flight.pop((entry_id, tile_id), None)
        if worker is not None:
            # The worker emitted its result as the last step of run()
            worker.wait()

    def _store(self, entry_id: EntryID, tile_id: TileID, tile: Tile) -> Tile:
        key = (entry_id, tile_id)
        with self._lock:
            self._in_flight.pop(key, None)
            self._failures.pop(key, None)
            self.fetch_count += 1
            # Append-only: the first stored content wins
            tile = self._cache.setdefault(key, tile)
        self.cache_updated.emit()
        logger.debug(f"Cached {tile_id} for {entry_id}")
        return tile

    def _record_failure(self, entry_id: EntryID, tile_id: TileID, error: Exception):
        key = (entry_id, tile_id)
        with self._lock:
            self._in_flight.pop(key, None)
            self._failures[key] = self._failures.get(key, 0) + 1
            self.failure_count += 1

        fetch_error = TileFetchError(
            "Tile unavailable",
            entry_id=entry_id,
            tile_id=tile_id,
            original_error=error,
        )
        self.error_handler.handle_error(fetch_error, "fetching tile")
        self.tile_failed.emit(entry_id, tile_id, str(error))

    def failure_attempts(self, entry_id: EntryID, tile_id: TileID) -> int:
        """Number of consecutive failed fetches of a tile."""
        with self._lock:
            return self._failures.get((entry_id, tile_id), 0)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def wait_for_pending(self, timeout_s: float = 5.0) -> bool:
        """
        Process Qt events until all background fetches are delivered.

        Returns:
            bool: True if nothing is pending anymore, False on timeout
        """
        deadline = time.monotonic() + timeout_s
        while self.pending_count():
            QCoreApplication.processEvents()
            if time.monotonic() > deadline:
                logger.warning(f"{self.pending_count()} tile fetches still pending after {timeout_s}s")
                return False
            time.sleep(0.001)
        return True

    def cancel_all(self):
        """Cancel all background fetches that have not started and wait for the rest."""
        with self._lock:
            workers = {key: worker for key, worker in self._in_flight.items() if worker is not None}

        for worker in workers.values():
            worker.cancel()
        for worker in workers.values():
            worker.wait()

        with self._lock:
            for key in workers:
                self._in_flight.pop(key, None)
        if workers:
            logger.info(f"Cancelled {len(workers)} background fetches")

    def shutdown(self):
        """Stop all workers; call before dropping the cache."""
        self.cancel_all()

    def clear(self):
        """Drop all cached tiles."""
        with self._lock:
            self._cache.clear()
            self._failures.clear()
        self.cache_updated.emit()
        logger.info("Tile cache cleared")

    def __len__(self):
        with self._lock:
            return len(self._cache)

    def get_cache_stats(self) -> Dict:
        """
        Get cache statistics.

        Returns:
            Dict: Cache statistics
        """
        with self._lock:
            total_requests = self.cache_hits + self.cache_misses
            hit_rate = (self.cache_hits / total_requests * 100) if total_requests > 0 else 0

            return {
                'cached_tiles': len(self._cache),
                'in_flight': len(self._in_flight),
                'cache_hits': self.cache_hits,
                'cache_misses': self.cache_misses,
                'hit_rate_percent': hit_rate,
                'fetches': self.fetch_count,
                'failures': self.failure_count,
                'stale_results': self.stale_results,
                'duplicate_requests': self.duplicate_requests,
            }
