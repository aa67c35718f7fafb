# farm_advisory/recommenders.py
from __future__ import annotations
from typing import List, Protocol

from farm_advisory.schemas import Recommendation, RecommendationRequest

class Recommender(Protocol):
    def recommend(self, request: RecommendationRequest) -> List[Recommendation]:
        """Return recommendations ordered best-first."""
        ...

_WINTER_CROPS = [
    Recommendation(
        crop="Wheat",
        suitability=90,
        reason="Excellent for winter season in your region",
        expected_yield="40-45 quintals per hectare",
        planting_time="November - December",
        harvest_time="April - May",
    ),
    Recommendation(
        crop="Mustard",
        suitability=85,
        reason="Good oil seed crop for winter",
        expected_yield="15-20 quintals per hectare",
        planting_time="October - November",
        harvest_time="February - March",
    ),
    Recommendation(
        crop="Gram (Chickpea)",
        suitability=80,
        reason="Suitable for clay loam soil",
        expected_yield="20-25 quintals per hectare",
        planting_time="October - November",
        harvest_time="March - April",
    ),
]

class SeasonalRecommender(Recommender):
    """Fixed catalogue used until a trained model is plugged in."""

    def __init__(self, catalogue: List[Recommendation] | None = None):
        self._catalogue = list(catalogue if catalogue is not None else _WINTER_CROPS)

    def recommend(self, request: RecommendationRequest) -> List[Recommendation]:
        return sorted(self._catalogue, key=lambda r: r.suitability, reverse=True)
