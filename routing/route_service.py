#Purpose: Multi-stop route planning for a contractor's day.
#Orders a set of job sites by greedy nearest-neighbour and reports per-leg
#and total distance / travel time.
#Pickup-aware: a stop may require collecting materials first, so the leg
#cost is current -> pickup -> site.
#Routes are computed per planning session and never persisted or cached.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from .geo import GeoPoint, TravelMode, TravelTime, distance_m, estimate_travel_time

logger = logging.getLogger(__name__)

# (a, b) -> meters, or None when the pair can't be measured.
DistanceFn = Callable[[Optional[GeoPoint], Optional[GeoPoint]], Optional[float]]


@dataclass(frozen=True)
class RouteStop:
    job_id: str
    site: Optional[GeoPoint]
    pickup: Optional[GeoPoint] = None


@dataclass(frozen=True)
class RouteLeg:
    job_id: str
    origin: GeoPoint
    destination: GeoPoint
    distance_m: float
    travel_time: TravelTime
    # Only set on pickup-aware legs: origin -> pickup and pickup -> site.
    pickup_distance_m: Optional[float] = None
    delivery_distance_m: Optional[float] = None


@dataclass(frozen=True)
class Route:
    legs: List[RouteLeg]
    total_distance_m: float
    total_travel_time: TravelTime
    # Stops whose site (or pickup) could not be measured, in input order.
    unreachable: List[RouteStop] = field(default_factory=list)

    @property
    def order(self) -> List[str]:
        return [leg.job_id for leg in self.legs] + [s.job_id for s in self.unreachable]


@dataclass(frozen=True)
class RouteTotals:
    total_distance_m: float
    total_travel_time: TravelTime


def sequence_route(
    stops: Sequence[RouteStop],
    start: Any = None,
    *,
    mode: Any = TravelMode.CAR,
    distance_fn: DistanceFn = distance_m,
) -> Route:
    """
    Greedy nearest-neighbour ordering of `stops`, O(n^2) distance lookups.

    - When `start` is None the first stop with a known site is visited first
      (its leg starts at its own pickup, or is zero-length).
    - Ties keep input order.
    - Stops with unknown geography are appended at the end, flagged unreachable.
    """
    mode = TravelMode.parse(mode)
    current = GeoPoint.parse(start)

    remaining = [s for s in stops if s.site is not None]
    unreachable = [s for s in stops if s.site is None]
    legs: List[RouteLeg] = []

    # No start: the first stop whose own leg can be measured leads.
    while current is None and remaining:
        first = remaining.pop(0)
        origin = first.pickup if first.pickup is not None else first.site
        leg = _build_leg(first, origin, mode, distance_fn)
        if leg is None:
            unreachable.append(first)
            continue
        legs.append(leg)
        current = first.site

    while remaining and current is not None:
        best_idx = None
        best_cost = None
        for idx, stop in enumerate(remaining):
            cost = _leg_cost(current, stop, distance_fn)
            if cost is None:
                continue
            # Strictly less keeps the earlier stop on ties.
            if best_cost is None or cost < best_cost:
                best_idx = idx
                best_cost = cost

        if best_idx is None:
            break

        stop = remaining.pop(best_idx)
        legs.append(_build_leg(stop, current, mode, distance_fn))
        current = stop.site

    if remaining:
        logger.debug("%d stops unreachable from the current position", len(remaining))
        unreachable.extend(remaining)

    # Keep input order among unreachable stops.
    position = {id(s): i for i, s in enumerate(stops)}
    unreachable.sort(key=lambda s: position.get(id(s), len(stops)))

    total_distance = sum(leg.distance_m for leg in legs)
    total_time = TravelTime.zero()
    for leg in legs:
        total_time = total_time + leg.travel_time

    return Route(
        legs=legs,
        total_distance_m=total_distance,
        total_travel_time=total_time,
        unreachable=unreachable,
    )


def aggregate_route(
    points: Sequence[Any],
    mode: Any = TravelMode.CAR,
    distance_fn: DistanceFn = distance_m,
) -> RouteTotals:
    """
    Totals over consecutive points in the given order.
    Unknown points are skipped; fewer than two known points gives zero.
    """
    mode = TravelMode.parse(mode)
    known = [p for p in (GeoPoint.parse(x) for x in points) if p is not None]

    if len(known) < 2:
        return RouteTotals(0.0, TravelTime.zero())

    total_distance = 0.0
    total_time = TravelTime.zero()
    for a, b in zip(known, known[1:]):
        meters = distance_fn(a, b)
        if meters is None:
            continue
        total_distance += meters
        total_time = total_time + estimate_travel_time(meters, mode)

    return RouteTotals(total_distance, total_time)


# ---- Internal helpers ----

def _leg_cost(current: GeoPoint, stop: RouteStop, distance_fn: DistanceFn) -> Optional[float]:
    if stop.pickup is None:
        return distance_fn(current, stop.site)
    to_pickup = distance_fn(current, stop.pickup)
    to_site = distance_fn(stop.pickup, stop.site)
    if to_pickup is None or to_site is None:
        return None
    return to_pickup + to_site


def _build_leg(stop: RouteStop, origin: GeoPoint, mode: TravelMode, distance_fn: DistanceFn) -> Optional[RouteLeg]:
    if stop.pickup is None:
        meters = distance_fn(origin, stop.site)
        if meters is None:
            return None
        return RouteLeg(stop.job_id, origin, stop.site, meters, estimate_travel_time(meters, mode))

    pickup_leg = distance_fn(origin, stop.pickup)
    delivery_leg = distance_fn(stop.pickup, stop.site)
    if pickup_leg is None or delivery_leg is None:
        return None
    meters = pickup_leg + delivery_leg
    return RouteLeg(
        stop.job_id,
        origin,
        stop.site,
        meters,
        estimate_travel_time(meters, mode),
        pickup_distance_m=pickup_leg,
        delivery_distance_m=delivery_leg,
    )
