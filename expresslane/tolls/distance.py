"""
Driving distance lookups.

``DistanceProvider`` is the seam between booking eligibility and the remote
routing service. Results are always returned in destination order, one
``DistanceResult`` per destination, so callers can zip them with the toll
booths they asked about.

There is no straight-line fallback: when the routing
service cannot answer, the lookup fails with
``DistanceServiceUnavailableError`` and the booking flow stops.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import requests

from expresslane.config import settings
from expresslane.exceptions import DistanceServiceUnavailableError

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"


@dataclass(frozen=True)
class Coordinate:
    """Geographic point with latitude and longitude"""
    lat: float
    lng: float

    def __post_init__(self):
        if not (-90 <= self.lat <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        if not (-180 <= self.lng <= 180):
            raise ValueError("Longitude must be between -180 and 180")

    def as_param(self) -> str:
        return f"{self.lat},{self.lng}"


@dataclass(frozen=True)
class DistanceResult:
    """Outcome for one destination: a distance and duration, or an error"""
    distance_meters: Optional[int] = None
    duration_seconds: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.distance_meters is not None

    @property
    def distance_km(self) -> Optional[Decimal]:
        if self.distance_meters is None:
            return None
        return Decimal(self.distance_meters) / Decimal(1000)

    @property
    def duration_minutes(self) -> Optional[float]:
        if self.duration_seconds is None:
            return None
        return self.duration_seconds / 60


class DistanceProvider(ABC):
    """Driving distance from one origin to many destinations"""

    @abstractmethod
    def get_distances(self, origin: Coordinate, destinations: List[Coordinate]) -> List[DistanceResult]:
        """Return one result per destination, in order.

        A multi-destination lookup reports per-destination failures as
        ``DistanceResult(error=...)``. A single-destination lookup raises
        ``DistanceServiceUnavailableError`` instead. Failure of the service
        as a whole always raises.
        """


class GoogleDistanceProvider(DistanceProvider):
    """Google Maps implementation: Directions for one target, Distance Matrix for many"""

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 10.0,
        batch_size: int = 25,
        http: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.batch_size = batch_size
        self.http = http or requests.Session()

    def get_distances(self, origin: Coordinate, destinations: List[Coordinate]) -> List[DistanceResult]:
        if not self.api_key:
            raise DistanceServiceUnavailableError("Google Maps API key not configured")
        if not destinations:
            return []
        if len(destinations) == 1:
            return [self._route_single(origin, destinations[0])]

        batches = [
            destinations[i:i + self.batch_size]
            for i in range(0, len(destinations), self.batch_size)
        ]
        # Every batch must answer before any result is used
        with ThreadPoolExecutor(max_workers=len(batches)) as executor:
            batch_results = list(executor.map(lambda batch: self._matrix(origin, batch), batches))

        return [result for batch in batch_results for result in batch]

    def _get_json(self, url: str, params: dict) -> dict:
        params = dict(params, key=self.api_key)
        try:
            response = self.http.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            logger.warning("Distance lookup timed out after %ss", self.timeout)
            raise DistanceServiceUnavailableError("Distance service timed out") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Distance lookup failed: %s", e)
            raise DistanceServiceUnavailableError("Distance service unavailable") from e

    def _matrix(self, origin: Coordinate, destinations: List[Coordinate]) -> List[DistanceResult]:
        data = self._get_json(DISTANCE_MATRIX_URL, {
            "origins": origin.as_param(),
            "destinations": "|".join(d.as_param() for d in destinations),
            "units": "metric",
            "mode": "driving",
            "departure_time": "now",
            "traffic_model": "best_guess",
        })

        if data.get("status") != "OK":
            logger.error("Distance Matrix error: %s", data.get("error_message") or data.get("status"))
            raise DistanceServiceUnavailableError(f"Distance service error: {data.get('status')}")

        elements = data["rows"][0]["elements"]
        if len(elements) != len(destinations):
            raise DistanceServiceUnavailableError("Distance service returned an incomplete result")

        results = []
        for element in elements:
            if element.get("status") == "OK":
                duration = element.get("duration_in_traffic") or element["duration"]
                results.append(DistanceResult(
                    distance_meters=element["distance"]["value"],
                    duration_seconds=duration["value"]
                ))
            else:
                results.append(DistanceResult(error=element.get("status", "UNKNOWN_ERROR")))
        return results

    def _route_single(self, origin: Coordinate, destination: Coordinate) -> DistanceResult:
        data = self._get_json(DIRECTIONS_URL, {
            "origin": origin.as_param(),
            "destination": destination.as_param(),
            "mode": "driving",
            "departure_time": "now",
        })

        if data.get("status") != "OK" or not data.get("routes"):
            logger.warning("Directions lookup failed: %s", data.get("status"))
            raise DistanceServiceUnavailableError(f"Distance service error: {data.get('status')}")

        leg = data["routes"][0]["legs"][0]
        duration = leg.get("duration_in_traffic") or leg["duration"]
        return DistanceResult(
            distance_meters=leg["distance"]["value"],
            duration_seconds=duration["value"]
        )


def get_distance_provider() -> DistanceProvider:
    """FastAPI dependency returning the configured provider"""
    return GoogleDistanceProvider(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        timeout=settings.DISTANCE_TIMEOUT_SECONDS,
        batch_size=settings.DISTANCE_BATCH_SIZE
    )
