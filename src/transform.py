"""
Pure transformation logic for bus predictions.

No I/O. Turns flat TrueTime predictions into the stop -> route group shape
and adjusts cached responses for elapsed time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from src.models import Arrival, CachedResponse, RawPrediction, RouteGroup

TIMESTAMP_FORMAT = "%Y%m%d %H:%M:%S"


@dataclass
class TransformResult:
    """Grouped response plus the records dropped for bad timestamps."""

    response: CachedResponse = field(default_factory=dict)
    skipped: list[RawPrediction] = field(default_factory=list)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse a TrueTime timestamp such as '20240115 14:30:00'. None if invalid."""
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except (TypeError, ValueError):
        return None


def compute_seconds(observed: datetime, predicted: datetime) -> int:
    """
    Compute seconds until arrival.

    Whole seconds of (predicted - observed), truncated toward zero.
    """
    return int((predicted - observed).total_seconds())


def _find_group(
    groups: list[RouteGroup], route: str, destination: str
) -> Optional[RouteGroup]:
    for group in groups:
        if group.route == route and group.destination == destination:
            return group
    return None


def transform_predictions(predictions: Iterable[RawPrediction]) -> TransformResult:
    """
    Group predictions by stop, then by (route, destination).

    Args:
        predictions: Raw predictions in feed order.

    Returns:
        TransformResult. Route groups keep first-seen order per stop and
        their arrivals are sorted ascending by seconds. Predictions whose
        timestamps do not parse are left out and listed in `skipped`.
    """
    result = TransformResult()

    for prediction in predictions:
        observed = parse_timestamp(prediction.observed_at)
        predicted = parse_timestamp(prediction.predicted_at)
        if observed is None or predicted is None:
            result.skipped.append(prediction)
            continue

        arrival = Arrival(
            bus_id=prediction.vehicle_id,
            seconds=compute_seconds(observed, predicted),
            capacity=prediction.capacity,
        )

        groups = result.response.setdefault(prediction.stop_id, [])
        group = _find_group(groups, prediction.route, prediction.destination)
        if group is None:
            groups.append(
                RouteGroup(
                    route=prediction.route,
                    destination=prediction.destination,
                    arrivals=[arrival],
                )
            )
        else:
            group.arrivals.append(arrival)
            group.arrivals.sort(key=lambda a: a.seconds)

    return result


def extrapolate(
    response: CachedResponse, elapsed_seconds: int, threshold: int = 30
) -> CachedResponse:
    """
    Return a copy of `response` counted down by `elapsed_seconds`.

    Only arrivals strictly above `threshold` are adjusted; imminent ones are
    frozen at their cached value. The input is never modified.
    """
    adjusted: CachedResponse = {}
    for stop_id, groups in response.items():
        adjusted[stop_id] = [
            RouteGroup(
                route=group.route,
                destination=group.destination,
                arrivals=[
                    Arrival(
                        bus_id=a.bus_id,
                        seconds=a.seconds - elapsed_seconds
                        if a.seconds > threshold
                        else a.seconds,
                        capacity=a.capacity,
                    )
                    for a in group.arrivals
                ],
            )
            for group in groups
        ]
    return adjusted
