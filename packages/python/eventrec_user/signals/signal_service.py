from __future__ import annotations

import logging

from eventrec_core.errors import NotFound, RuleViolation
from eventrec_core.types import EventRecord, UserId
from eventrec_user.store import Repository, update_user
from eventrec_user.types import UserRecord

from . import learner
from .schemas import ClickSignal, SearchSignal
from .weights import DEFAULT_WEIGHTS, SignalWeights

log = logging.getLogger(__name__)


class SignalService:
    """Applies behavioral signals to a user's preference state and persists them."""

    def __init__(self, repo: Repository, params: SignalWeights = DEFAULT_WEIGHTS):
        self.repo = repo
        self.params = params

    async def record_search(self, user_id: UserId, signal: SearchSignal) -> UserRecord:
        def apply(user: UserRecord) -> None:
            interaction = learner.on_search(user.preferences, signal, self.params)
            user.interactions.append(interaction)

        saved, _ = await update_user(self.repo, user_id, apply)
        return saved

    async def record_click(self, user_id: UserId, signal: ClickSignal) -> UserRecord:
        if not signal.event_id and not signal.external_id:
            raise RuleViolation("click requires event_id or external_id", status=400)

        event = await self._resolve_event(signal.event_id)

        def apply(user: UserRecord) -> None:
            interaction = learner.on_click(user.preferences, signal, event, self.params)
            user.interactions.append(interaction)

        saved, _ = await update_user(self.repo, user_id, apply)
        return saved

    async def _resolve_event(self, event_id: str | None) -> EventRecord | None:
        if not event_id:
            return None
        try:
            return await self.repo.get_event(event_id)
        except NotFound:
            # unknown ids still count as a click; only the payload is learned from
            log.warning("click references unknown event %s", event_id)
            return None
