#Purpose: The OSRM "adapter/client".
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route, /table)
#timeouts and error handling
#parsing response JSON into our internal shape
#It should not contain matching rules or scoring.

from dotenv import load_dotenv
import logging
import os
from typing import List, Tuple, Dict, Any, Optional
import requests

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=http://router.project-osrm.org
load_dotenv()
BASE_URL = os.getenv("OSRM_BASE_URL")

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

class OSRMError(Exception):
    """Raised when OSRM is unreachable or answers with a non-Ok code."""
    pass

class OSRMClient:
    """
    OSRM Adapter / Client

    - Talk to OSRM via HTTP
    - Convert internal (lat, lon) -> OSRM (lon,lat)
    - Return distances in meters and durations in seconds
    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: int = 5):
        self.base_url = base_url or BASE_URL
        self.timeout = timeout #seconds to wait for OSRM before giving up
        self.profile = profile #driving, walking, cycling

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set OSRM_BASE_URL in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lat, lon in coords])

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("OSRM request failed: %s", exc)
            raise OSRMError(f"OSRM request failed: {exc}") from exc

        data = response.json()
        if data.get("code") != "Ok":
            raise OSRMError(f"OSRM error: {data.get('message', 'Unknown error')}")
        return data

    #----------------
    # Public methods
    #----------------
    def compute_route(self, coordinates: List[LatLon]) -> Dict[str, float]:
        """
        Calls the OSRM /route endpoint for the given coordinates (in visiting order).

        Returns:
            {
                "distance": float, # meters
                "duration": float, # seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        data = self._get(url, {"overview": "false"})

        route = data["routes"][0]
        return {
            "distance": route["distance"],
            "duration": route["duration"],
        }

    def compute_table(self, sources: List[LatLon],
                      destinations: List[LatLon]
                      ) -> Dict[str, List[List[Optional[float]]]]:
        """
        Calls the OSRM /table endpoint.
        Used by RoadDistanceProvider to prefetch a whole planning session at once.

        Returns the full matrices, row = source index, column = destination index:
            {
                "distances": [[meters | None, ...], ...],
                "durations": [[seconds | None, ...], ...],
            }
        Unroutable pairs come back from OSRM as null and stay None.
        """
        if not sources or not destinations:
            return {"durations": [], "distances": []}

        # For an NxN matrix don't duplicate the coordinates in the URL.
        if sources == destinations:
            coordinates = self.format_coordinates(sources)
            params = {"annotations": "duration,distance"}
        else:
            coordinates = self.format_coordinates(sources + destinations)
            params = {
                "sources": ";".join(str(i) for i in range(len(sources))),
                "destinations": ";".join(
                    str(i) for i in range(len(sources), len(sources) + len(destinations))
                ),
                "annotations": "duration,distance",
            }

        url = f"{self.base_url}/table/v1/{self.profile}/{coordinates}"
        data = self._get(url, params)

        return {
            "durations": data.get("durations", []),
            "distances": data.get("distances", []),
        }
