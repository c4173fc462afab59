"""
Toll Booth Module

Toll booth reference data and driving-distance lookups against them.

Key Components:
- distance.py: DistanceProvider interface and the Google Maps implementation
- service.py: Toll booth queries and nearest-booth ranking
- router.py: FastAPI endpoints for listing and locating toll booths
"""

from . import router
from .distance import Coordinate, DistanceProvider, DistanceResult, GoogleDistanceProvider, get_distance_provider
from .service import TollBoothService

__all__ = [
    "router",
    "Coordinate",
    "DistanceProvider",
    "DistanceResult",
    "GoogleDistanceProvider",
    "get_distance_provider",
    "TollBoothService"
]
