from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

class TollBooth(BaseModel):
    id: int
    name: str
    highway: str
    latitude: Decimal
    longitude: Decimal
    express_lane_fee: Decimal
    created_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class Location(BaseModel):
    """Driver position as reported by the client"""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

class TollCandidate(BaseModel):
    toll_booth: TollBooth
    distance_km: Optional[Decimal] = None
    duration_minutes: Optional[float] = None
    eligibility: str
    is_bookable: bool
    error: Optional[str] = None

class NearbyTollsResponse(BaseModel):
    candidates: List[TollCandidate]
    unavailable: List[TollCandidate]
    min_distance_km: Decimal
    max_distance_km: Decimal
