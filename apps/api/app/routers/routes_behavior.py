from fastapi import APIRouter, Depends

from app.deps.auth import get_current_user_id
from app.deps.deps import get_engine
from app.errors import to_http
from app.schemas import OkResponse
from eventrec_core.errors import DomainError
from eventrec_recommendation.engine import PersonalizationEngine
from eventrec_user.signals.schemas import ClickSignal, SearchSignal

router = APIRouter(prefix="/v1/behavior", tags=["behavior"])


@router.post("/search", response_model=OkResponse)
async def log_search(
    signal: SearchSignal,
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    try:
        await engine.record_search_signal(user_id, signal)
    except DomainError as e:
        raise to_http(e) from e
    return OkResponse()


@router.post("/click", response_model=OkResponse)
async def log_click(
    signal: ClickSignal,
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    try:
        await engine.record_click_signal(user_id, signal)
    except DomainError as e:
        raise to_http(e) from e
    return OkResponse()
