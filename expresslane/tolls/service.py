import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from expresslane.bookings.eligibility import MAX_CANDIDATES, TollCandidate, rank_candidates
from expresslane.exceptions import TollBoothNotFoundError
from expresslane.models import TollBooth
from expresslane.tolls.distance import Coordinate, DistanceProvider, DistanceResult

logger = logging.getLogger(__name__)

class TollBoothService:
    @staticmethod
    def get_toll_booths(db: Session, highway: Optional[str] = None) -> List[TollBooth]:
        """All toll booths in a stable order, optionally for one highway"""
        query = db.query(TollBooth)
        if highway:
            query = query.filter(TollBooth.highway == highway)
        return query.order_by(TollBooth.id).all()
    
    @staticmethod
    def get_toll_booth(db: Session, toll_booth_id: int) -> TollBooth:
        toll = db.query(TollBooth).filter(TollBooth.id == toll_booth_id).first()
        if toll is None:
            raise TollBoothNotFoundError(f"Toll booth {toll_booth_id} not found")
        return toll
    
    @staticmethod
    def distances_to(
        provider: DistanceProvider,
        origin: Coordinate,
        tolls: List[TollBooth]
    ) -> List[DistanceResult]:
        destinations = [
            Coordinate(lat=float(t.latitude), lng=float(t.longitude))
            for t in tolls
        ]
        return provider.get_distances(origin, destinations)
    
    @staticmethod
    def find_nearby(
        db: Session,
        provider: DistanceProvider,
        origin: Coordinate,
        limit: int = MAX_CANDIDATES
    ) -> Tuple[List[TollCandidate], List[TollCandidate]]:
        """Nearest reachable booths plus the booths the provider could not route to"""
        tolls = TollBoothService.get_toll_booths(db)
        if not tolls:
            return [], []
        
        results = TollBoothService.distances_to(provider, origin, tolls)
        candidates, unavailable = rank_candidates(tolls, results, limit=limit)
        
        if unavailable:
            logger.info(
                "%d of %d toll booths unreachable from %s",
                len(unavailable), len(tolls), origin.as_param()
            )
        return candidates, unavailable
