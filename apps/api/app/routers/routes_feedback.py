from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.deps.auth import get_current_user_id
from app.deps.deps import get_engine
from app.errors import to_http
from app.schemas import FeedbackRequest
from eventrec_core.errors import DomainError
from eventrec_recommendation.engine import PersonalizationEngine
from eventrec_user.feedback.schemas import Feedback

router = APIRouter(prefix="/v1/feedback", tags=["feedback"])


# ---- Create or update (one rating per user and event) ----
@router.post("", response_model=Feedback)
async def rate_event(
    req: FeedbackRequest,
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    try:
        return await engine.record_rating_signal(
            user_id, req.event_id, req.rating, req.comment
        )
    except DomainError as e:
        raise to_http(e) from e


# ---- Caller's own rating for one event ----
@router.get("/{event_id}/me", response_model=Feedback)
async def get_own_feedback(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    fb = await engine.feedback.get(user_id, event_id)
    if fb is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    return fb


# ---- Every rating for one event, newest first ----
@router.get("/{event_id}", response_model=List[Feedback])
async def list_feedback(
    event_id: str,
    _user_id: str = Depends(get_current_user_id),
    engine: PersonalizationEngine = Depends(get_engine),
):
    return await engine.feedback.list_for_event(event_id)
