#Marks routing as a package.
#Re-exports the public API so other modules import from routing without
#knowing internal file names.
#No business logic.

from .geo import GeoPoint, TravelMode, TravelTime, distance_m, distance_km, estimate_travel_time
from .route_service import RouteStop, RouteLeg, Route, RouteTotals, sequence_route, aggregate_route
from .osrm_client import OSRMClient, OSRMError
from .matrix_adapter import RoadDistanceProvider

__all__ = [
    "GeoPoint",
    "TravelMode",
    "TravelTime",
    "distance_m",
    "distance_km",
    "estimate_travel_time",
    "RouteStop",
    "RouteLeg",
    "Route",
    "RouteTotals",
    "sequence_route",
    "aggregate_route",
    "OSRMClient",
    "OSRMError",
    "RoadDistanceProvider",
]
