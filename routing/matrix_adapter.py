from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .geo import GeoPoint, distance_m
from .osrm_client import OSRMError

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]
DistanceFn = Callable[[Optional[GeoPoint], Optional[GeoPoint]], Optional[float]]


class RoadDistanceProvider:
    """
    Adapts routing.osrm_client.OSRMClient into a `distance_fn` for
    route sequencing and matching, with caching and bulk prefetching.

    One provider per planning session: the cache lives exactly as long as
    the instance and is never shared across requests.
    """
    def __init__(self, osrm_client, fallback: Optional[DistanceFn] = distance_m):
        self.osrm_client = osrm_client
        self.fallback = fallback
        self._cache = {}  # type: Dict[Tuple[LatLon, LatLon], Optional[float]]

    def prefetch(self, points: Sequence[Optional[GeoPoint]]) -> None:
        """
        Takes the session's points and fetches the entire NxN table from OSRM once.
        Unknown points are skipped.
        """
        coordinates = _unique([p.as_tuple() for p in points if p is not None])
        if not coordinates:
            return
        try:
            self._store(coordinates, self.osrm_client.compute_table(coordinates, coordinates))
        except OSRMError:
            logger.exception("Prefetch of %d points failed; lookups will fetch on demand", len(coordinates))

    def __call__(self, a: Optional[GeoPoint], b: Optional[GeoPoint]) -> Optional[float]:
        if a is None or b is None:
            return None
        if a == b:
            return 0.0

        key = (a.as_tuple(), b.as_tuple())
        if key not in self._cache:
            # Fetch just the missing pair.
            coordinates = [a.as_tuple(), b.as_tuple()]
            try:
                self._store(coordinates, self.osrm_client.compute_table(coordinates, coordinates))
            except OSRMError:
                if self.fallback is None:
                    raise
                logger.warning("OSRM lookup failed for %s -> %s, using fallback distance", a, b)
                return self.fallback(a, b)

        return self._cache.get(key)

    # ---- Internal helpers ----

    def _store(self, coordinates: List[LatLon], table) -> None:
        distances = table.get("distances", [])
        for src_idx, src in enumerate(coordinates):
            if src_idx >= len(distances):
                break
            row = distances[src_idx]
            for dest_idx, dest in enumerate(coordinates):
                if dest_idx >= len(row):
                    break
                value = row[dest_idx]
                self._cache[(src, dest)] = None if value is None else float(value)


def _unique(coordinates: List[LatLon]) -> List[LatLon]:
    seen = set()
    out = []
    for c in coordinates:
        if c not in seen:
            seen.add(c)
            out.append(c)
    return out
