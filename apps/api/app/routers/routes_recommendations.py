import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query

from app.deps.auth import get_current_user_id
from app.deps.deps import get_engine
from app.errors import to_http
from app.schemas import RecommendationItem, RecommendationsResponse
from eventrec_core.config import DEFAULT_RESULT_LIMIT
from eventrec_core.errors import DomainError
from eventrec_core.types import InternalFilter
from eventrec_recommendation.engine import PersonalizationEngine

log = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/recommendations", tags=["recommendations"])


@router.get("/me", response_model=RecommendationsResponse)
async def recommend_me(
    limit: int = Query(DEFAULT_RESULT_LIMIT, ge=1, le=100),
    q: str | None = None,
    categories: List[str] | None = Query(None),
    country_code: str | None = None,
    price_min: float | None = Query(None, ge=0),
    price_max: float | None = Query(None, ge=0),
    start_after: datetime | None = None,
    start_before: datetime | None = None,
    upcoming_only: bool = True,
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    flt = InternalFilter(
        q=q,
        categories=categories or [],
        country_code=country_code,
        price_min=price_min,
        price_max=price_max,
        start_after=start_after,
        start_before=start_before,
    )
    try:
        ranked = await engine.rank_internal_candidates(
            user_id, flt, limit, upcoming_only=upcoming_only
        )
    except DomainError as e:
        raise to_http(e) from e
    return RecommendationsResponse(
        mode="internal", items=[RecommendationItem.from_scored(s) for s in ranked]
    )


@router.get("/live", response_model=RecommendationsResponse)
async def recommend_live(
    limit: int = Query(DEFAULT_RESULT_LIMIT, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    try:
        ranked = await engine.rank_live_candidates(user_id, limit)
    except DomainError as e:
        log.warning("live recommendations unavailable for %s: %s", user_id, e)
        raise to_http(e) from e
    return RecommendationsResponse(
        mode="live", items=[RecommendationItem.from_scored(s) for s in ranked]
    )
