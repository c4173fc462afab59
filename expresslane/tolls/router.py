from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from expresslane.auth.dependencies import get_current_session
from expresslane.auth.schemas import UserSession
from expresslane.bookings.eligibility import MAX_BOOKING_DISTANCE_KM, MAX_CANDIDATES, MIN_BOOKING_DISTANCE_KM
from expresslane.database import get_db
from expresslane.exceptions import ExpressLaneError
from expresslane.tolls import schemas
from expresslane.tolls.distance import Coordinate, DistanceProvider, get_distance_provider
from expresslane.tolls.service import TollBoothService

router = APIRouter()

def _candidate_out(candidate) -> schemas.TollCandidate:
    return schemas.TollCandidate(
        toll_booth=schemas.TollBooth.model_validate(candidate.toll),
        distance_km=candidate.distance_km,
        duration_minutes=candidate.duration_minutes,
        eligibility=candidate.eligibility.value,
        is_bookable=candidate.is_bookable,
        error=candidate.error
    )

@router.get("/", response_model=List[schemas.TollBooth])
def get_toll_booths(
    highway: Optional[str] = Query(None, description="Filter by highway, e.g. NH66"),
    db: Session = Depends(get_db)
):
    """List toll booths"""
    return TollBoothService.get_toll_booths(db, highway=highway)

@router.get("/nearby", response_model=schemas.NearbyTollsResponse)
def get_nearby_toll_booths(
    lat: float = Query(..., ge=-90, le=90, description="Current latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Current longitude"),
    limit: int = Query(MAX_CANDIDATES, ge=1, le=MAX_CANDIDATES, description="Maximum candidates"),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    provider: DistanceProvider = Depends(get_distance_provider)
):
    """Nearest toll booths by driving distance, flagged bookable or not"""
    try:
        candidates, unavailable = TollBoothService.find_nearby(
            db, provider, Coordinate(lat=lat, lng=lng), limit=limit
        )
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    
    return schemas.NearbyTollsResponse(
        candidates=[_candidate_out(c) for c in candidates],
        unavailable=[_candidate_out(c) for c in unavailable],
        min_distance_km=MIN_BOOKING_DISTANCE_KM,
        max_distance_km=MAX_BOOKING_DISTANCE_KM
    )

@router.get("/{toll_booth_id}", response_model=schemas.TollBooth)
def get_toll_booth(toll_booth_id: int, db: Session = Depends(get_db)):
    """Get toll booth details"""
    try:
        return TollBoothService.get_toll_booth(db, toll_booth_id)
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
