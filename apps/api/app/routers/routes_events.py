import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.deps.auth import get_current_user_id
from app.deps.deps import get_engine, get_ingestion_service, get_repo
from app.errors import to_http
from app.schemas import ImportRequest, ImportResponse, RecommendationItem, RecommendationsResponse
from eventrec_core.config import DEFAULT_RESULT_LIMIT
from eventrec_core.errors import DomainError
from eventrec_core.types import EventRecord
from eventrec_recommendation.engine import PersonalizationEngine
from eventrec_sources.ingestion import EventIngestionService
from eventrec_user.signals.schemas import SearchSignal
from eventrec_user.store import Repository

log = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/events", tags=["events"])


# ---- Import (declare BEFORE `/{id}`) ----
@router.post("/import", response_model=ImportResponse)
async def import_events(
    req: ImportRequest,
    _user_id: str = Depends(get_current_user_id),
    service: EventIngestionService = Depends(get_ingestion_service),
):
    try:
        result = await service.ingest(req.keyword, req.country_code, page_size=req.page_size)
    except DomainError as e:
        raise to_http(e) from e
    except Exception as e:
        log.exception("event import failed (keyword=%r, country=%r)", req.keyword, req.country_code)
        raise HTTPException(status_code=500, detail="Failed to import events") from e
    return ImportResponse(**vars(result))


# ---- Personalized live search (declare BEFORE `/{id}`) ----
@router.get("/search", response_model=RecommendationsResponse)
async def search_events(
    q: str | None = None,
    category: str | None = None,
    country: str | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    limit: int = Query(DEFAULT_RESULT_LIMIT, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    signal = SearchSignal(
        query=q,
        category=category,
        country=country,
        source="external",
        price_min=min_price,
        price_max=max_price,
    )
    try:
        ranked = await engine.search_live(user_id, signal, limit)
    except DomainError as e:
        raise to_http(e) from e
    return RecommendationsResponse(
        mode="search", items=[RecommendationItem.from_scored(s) for s in ranked]
    )


# ---- Get by id (counts as a view) ----
@router.get("/{id}", response_model=EventRecord)
async def get_event(id: str, repo: Repository = Depends(get_repo)):
    try:
        await repo.increment_click_count(id)
        return await repo.get_event(id)
    except DomainError as e:
        raise to_http(e) from e
