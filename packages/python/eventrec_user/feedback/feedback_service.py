from __future__ import annotations

from eventrec_core.types import EventId, UserId
from eventrec_user.signals import learner
from eventrec_user.signals.weights import DEFAULT_WEIGHTS, SignalWeights
from eventrec_user.store import Repository, update_user
from eventrec_user.types import UserRecord

from .schemas import Feedback, FeedbackCreate


class FeedbackService:
    def __init__(self, repo: Repository, params: SignalWeights = DEFAULT_WEIGHTS):
        self.repo = repo
        self.params = params

    async def rate(self, dto: FeedbackCreate) -> Feedback:
        """
        Upsert a (user, event) rating and learn from it.

        A re-rating replaces the previous rating's share of the event
        aggregates instead of adding a second one: rating_sum moves by
        (new - old), rating_count and bookmark_count stay put. The learner
        update runs on every call, re-ratings included.

        The learner write goes first: if it gives up on a version conflict,
        neither the feedback row nor the aggregates have been touched.
        """
        event = await self.repo.get_event(dto.event_id)

        def apply(user: UserRecord) -> None:
            user.interactions.append(
                learner.on_rating(user.preferences, event, dto.rating, self.params)
            )

        await update_user(self.repo, dto.user_id, apply)
        saved, _previous = await self.repo.upsert_feedback(
            Feedback(
                user_id=dto.user_id,
                event_id=dto.event_id,
                rating=dto.rating,
                comment=dto.comment,
            )
        )
        return saved

    async def get(self, user_id: UserId, event_id: EventId) -> Feedback | None:
        return await self.repo.get_feedback(user_id, event_id)

    async def list_for_event(self, event_id: EventId) -> list[Feedback]:
        return await self.repo.list_feedback_for_event(event_id)
