"""
Async Port Authority TrueTime API client.

Thin wrapper around httpx. Fetches predictions for the configured stops.
Raises UpstreamError / DecodeError on failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from src.models import PrtResponse, RawPrediction

logger = logging.getLogger(__name__)


class PRTError(Exception):
    """Base class for TrueTime API failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(PRTError):
    """The feed could not be reached, timed out, or answered non-200."""


class DecodeError(PRTError):
    """The feed answered but the body is not a valid predictions payload."""


@dataclass
class FeedResult:
    """Decoded predictions plus any error messages the feed reported."""

    predictions: list[RawPrediction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class PRTClient:
    """Async client for the TrueTime v3 `getpredictions` endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str],
        stops: Sequence[str],
        base_url: str = "http://truetime.portauthority.org/bustime/api/v3",
        feed_name: str = "Port Authority Bus",
        time_resolution: str = "s",
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._stops = list(stops)
        self._base_url = base_url.rstrip("/")
        self._feed_name = feed_name
        self._time_resolution = time_resolution
        self._timeout = timeout

    def _params(self) -> dict[str, str]:
        return {
            "key": self._api_key or "",
            "stpid": ",".join(self._stops),
            "tmres": self._time_resolution,
            "rtpidatafeed": self._feed_name,
            "format": "json",
        }

    async def fetch_predictions(self) -> FeedResult:
        """
        Fetch raw predictions for all configured stops.

        Returns a FeedResult. Feed-reported errors are returned, not raised.
        Raises UpstreamError on HTTP or connection failures and DecodeError
        when the body cannot be parsed.
        """
        url = f"{self._base_url}/getpredictions"
        try:
            response = await self._http.get(
                url, params=self._params(), timeout=self._timeout
            )
        except httpx.HTTPError as exc:
            logger.error("TrueTime request failed: %s %s -> %s", "GET", url, exc)
            raise UpstreamError(f"Connection error: {exc}") from exc

        if response.status_code != 200:
            raise UpstreamError(
                f"TrueTime returned {response.status_code}",
                status_code=response.status_code,
            )

        # The feed emits stray backslashes that are not valid JSON escapes.
        body = response.text.replace("\\", "/")
        try:
            payload = PrtResponse.model_validate_json(body)
        except ValidationError as exc:
            logger.error("TrueTime payload could not be decoded: %s", exc)
            raise DecodeError(f"Invalid payload: {exc}") from exc

        return FeedResult(
            predictions=payload.response.predictions or [],
            errors=[err.msg for err in payload.response.errors or []],
        )
