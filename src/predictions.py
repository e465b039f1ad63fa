"""
Prediction service: orchestrates the TrueTime client, snapshot cache and
transformation.

Serves a time-adjusted copy of the cached response while it is fresh and
refreshes it from TrueTime once the TTL has passed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.cache import SnapshotCache
from src.config import AppConfig
from src.models import CachedResponse
from src.prt_client import PRTClient
from src.transform import extrapolate, transform_predictions

logger = logging.getLogger(__name__)


class PredictionService:
    """
    Main service class. Produces the CachedResponse for all configured stops.

    The cache and the in-flight refresh marker are only touched while
    holding `_lock`. The upstream fetch and transform run outside it.
    Cached responses are replaced wholesale and never mutated in place.
    """

    def __init__(
        self, config: AppConfig, prt_client: PRTClient, cache: SnapshotCache
    ) -> None:
        self._config = config
        self._prt = prt_client
        self._cache = cache
        self._lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Task] = None

    async def get_predictions(self) -> CachedResponse:
        """
        Return predictions for all configured stops.

        Raises UpstreamError / DecodeError when a refresh is needed and fails;
        the cache is left as it was.
        """
        cached: Optional[CachedResponse] = None
        refresh: Optional[asyncio.Task] = None

        async with self._lock:
            entry = self._cache.get()
            if entry is not None:
                cached = entry.value
                elapsed = int(entry.age(self._cache.now()))
            elif self._config.single_flight:
                if self._inflight is None:
                    self._inflight = asyncio.create_task(self._refresh())
                    self._inflight.add_done_callback(self._retrieve_exception)
                else:
                    logger.debug("Joining in-flight refresh")
                refresh = self._inflight

        if cached is not None:
            logger.debug("Returning cached predictions (age %ds)", elapsed)
            return extrapolate(
                cached, elapsed, self._config.extrapolation_threshold
            )

        if refresh is None:
            response = await self._refresh()
        else:
            # Shield so one cancelled caller does not abort the shared fetch
            response = await asyncio.shield(refresh)
        # Each caller gets its own copy; the stored snapshot stays untouched
        return extrapolate(response, 0, self._config.extrapolation_threshold)

    async def _refresh(self) -> CachedResponse:
        """Fetch, transform and store. Upstream errors propagate."""
        try:
            response = await self._fetch_and_transform()
        except BaseException:
            async with self._lock:
                self._release_inflight()
            raise

        async with self._lock:
            self._cache.set(response)
            self._release_inflight()
        return response

    async def _fetch_and_transform(self) -> CachedResponse:
        logger.info(
            "Fetching predictions from TrueTime for stops %s",
            ",".join(self._config.stops),
        )
        feed = await self._prt.fetch_predictions()

        if feed.errors:
            for message in feed.errors:
                logger.warning("TrueTime feed error: %s", message)
            response: CachedResponse = {}
        else:
            result = transform_predictions(feed.predictions)
            if result.skipped:
                logger.warning(
                    "Skipped %d of %d predictions with unparsable timestamps",
                    len(result.skipped),
                    len(feed.predictions),
                )
                for prediction in result.skipped:
                    logger.debug(
                        "Skipped vehicle %s at stop %s: tmstmp=%r prdtm=%r",
                        prediction.vehicle_id,
                        prediction.stop_id,
                        prediction.observed_at,
                        prediction.predicted_at,
                    )
            response = result.response
        return response

    def _release_inflight(self) -> None:
        # Caller holds _lock. Only the shared refresh task owns the marker.
        if self._inflight is not None and self._inflight is asyncio.current_task():
            self._inflight = None

    @staticmethod
    def _retrieve_exception(task: asyncio.Task) -> None:
        # Mark a failure as seen even when every waiter was cancelled
        if not task.cancelled():
            task.exception()
