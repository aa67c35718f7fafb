# farm_advisory/advisory_service.py
from __future__ import annotations
import logging
import uuid
from typing import Any, Callable, Dict, List
from datetime import datetime, timezone

from farm_advisory import schemas
from farm_advisory.kv_store import KeyValueStore
from farm_advisory.recommenders import Recommender, SeasonalRecommender
from farm_advisory.utils import epoch_millis, iso_timestamp

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

class AdvisoryService:
    """Recommendations and consultation tickets; both are append-only records."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        recommender: Recommender | None = None,
        clock: Clock | None = None,
    ):
        # DI
        self._store = store
        self._recommender = recommender or SeasonalRecommender()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def recommend(self, user_id: str, request: schemas.RecommendationRequest) -> List[Dict[str, Any]]:
        recs = [r.model_dump(by_alias=True) for r in self._recommender.recommend(request)]
        now = self._clock()
        try:
            self._store.set(
                f"recommendation_request:{user_id}:{epoch_millis(now)}",
                {
                    "location": request.location,
                    "season": request.season,
                    "soilType": request.soil_type,
                    "timestamp": iso_timestamp(now),
                    "recommendations": recs,
                },
            )
        except Exception:
            # analytics only; the caller still gets the recommendations
            logger.exception("could not log recommendation request for user %s", user_id)
        return recs

    def submit_consultation(self, user_id: str, request: schemas.ConsultationRequest) -> Dict[str, Any]:
        consultation = {
            "id": str(uuid.uuid4()),
            "userId": user_id,
            "question": request.question,
            "category": request.category,
            "urgency": request.urgency,
            "status": "pending",
            "createdAt": iso_timestamp(self._clock()),
        }
        self._store.set(f"consultation:{consultation['id']}", consultation)
        logger.info("consultation %s submitted by user %s", consultation["id"], user_id)
        return consultation
