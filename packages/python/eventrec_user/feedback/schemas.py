from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from eventrec_core.types import EventId, UserId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedbackCreate(BaseModel):
    user_id: UserId
    event_id: EventId
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None


class Feedback(BaseModel):
    """One rating per (user, event); updated in place on re-rating."""

    user_id: UserId
    event_id: EventId
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
