from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol, TypeVar

from anyio import to_thread

from eventrec_core.errors import Conflict, NotFound
from eventrec_core.normalize import coerce_float, ensure_ts, normalize_country_code
from eventrec_core.types import EventId, EventRecord, InternalFilter, UserId
from eventrec_retrieval.tokenizer import tokenize

from .feedback.schemas import Feedback
from .types import UserRecord

log = logging.getLogger(__name__)

T = TypeVar("T")


class Repository(Protocol):
    """Persistence boundary. Implementations own durability and atomicity."""

    async def get_user(self, user_id: UserId) -> UserRecord: ...

    async def ensure_user(self, user_id: UserId) -> UserRecord: ...

    async def save_user(self, user: UserRecord, expected_version: int) -> UserRecord: ...

    async def get_event(self, event_id: EventId) -> EventRecord: ...

    async def upsert_event_by_provider_id(self, event: EventRecord) -> tuple[EventRecord, bool]: ...

    async def find_events_by_filter(self, flt: InternalFilter, limit: int) -> list[EventRecord]: ...

    async def increment_click_count(self, event_id: EventId) -> None: ...

    async def get_feedback(self, user_id: UserId, event_id: EventId) -> Feedback | None: ...

    async def upsert_feedback(self, feedback: Feedback) -> tuple[Feedback, int | None]: ...

    async def list_feedback_for_event(self, event_id: EventId) -> list[Feedback]: ...

    async def find_rated_event_ids(self, user_id: UserId, min_rating: int) -> set[EventId]: ...

    async def find_neighbor_ratings(
        self, event_ids: Iterable[EventId], excluding_user: UserId, min_rating: int
    ) -> dict[EventId, int]: ...


def _event_price(event: EventRecord) -> float | None:
    price = coerce_float(event.price_min)
    return price if price is not None else coerce_float(event.price_max)


def _matches(event: EventRecord, flt: InternalFilter) -> bool:
    start = ensure_ts(event.start_utc)
    after, before = ensure_ts(flt.start_after), ensure_ts(flt.start_before)
    if after is not None:
        if start is None or start < after:
            return False
    if before is not None:
        if start is None or start > before:
            return False
    if flt.categories and event.category not in flt.categories:
        return False
    code = normalize_country_code(flt.country_code)
    if code and normalize_country_code(event.country_code) != code:
        return False
    # price-less events are kept; only priced events are range-checked
    price = _event_price(event)
    if price is not None:
        if flt.price_min is not None and price < flt.price_min:
            return False
        if flt.price_max is not None and price > flt.price_max:
            return False
    if flt.q:
        wanted = set(tokenize(flt.q))
        have = set(tokenize(event.title)) | set(tokenize(event.description))
        if wanted and not wanted & have:
            return False
    return True


class InMemoryRepository:
    """
    Process-local reference store.

    Same async facade as a database-backed repo: every call runs its sync
    implementation in a worker thread, guarded by one lock so read-modify-write
    operations (versioned user saves, counter increments) are atomic.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[UserId, UserRecord] = {}
        self._events: dict[EventId, EventRecord] = {}
        self._feedback: dict[tuple[UserId, EventId], Feedback] = {}

    # ---------- Seeding helpers (sync, used by app bootstrap and tests) ----------
    def add_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            self._users[user.id] = user.model_copy(deep=True)
        return user

    def add_event(self, event: EventRecord) -> EventRecord:
        with self._lock:
            self._events[event.id] = event.model_copy(deep=True)
        return event

    # ---------- Async facade ----------
    async def get_user(self, user_id: UserId) -> UserRecord:
        return await to_thread.run_sync(self._get_user_sync, user_id)

    async def ensure_user(self, user_id: UserId) -> UserRecord:
        return await to_thread.run_sync(self._ensure_user_sync, user_id)

    async def save_user(self, user: UserRecord, expected_version: int) -> UserRecord:
        return await to_thread.run_sync(self._save_user_sync, user, expected_version)

    async def get_event(self, event_id: EventId) -> EventRecord:
        return await to_thread.run_sync(self._get_event_sync, event_id)

    async def upsert_event_by_provider_id(self, event: EventRecord) -> tuple[EventRecord, bool]:
        return await to_thread.run_sync(self._upsert_event_sync, event)

    async def find_events_by_filter(self, flt: InternalFilter, limit: int) -> list[EventRecord]:
        return await to_thread.run_sync(self._find_events_sync, flt, limit)

    async def increment_click_count(self, event_id: EventId) -> None:
        await to_thread.run_sync(self._increment_click_sync, event_id)

    async def get_feedback(self, user_id: UserId, event_id: EventId) -> Feedback | None:
        return await to_thread.run_sync(self._get_feedback_sync, user_id, event_id)

    async def upsert_feedback(self, feedback: Feedback) -> tuple[Feedback, int | None]:
        return await to_thread.run_sync(self._upsert_feedback_sync, feedback)

    async def list_feedback_for_event(self, event_id: EventId) -> list[Feedback]:
        return await to_thread.run_sync(self._list_feedback_sync, event_id)

    async def find_rated_event_ids(self, user_id: UserId, min_rating: int) -> set[EventId]:
        return await to_thread.run_sync(self._rated_ids_sync, user_id, min_rating)

    async def find_neighbor_ratings(
        self, event_ids: Iterable[EventId], excluding_user: UserId, min_rating: int
    ) -> dict[EventId, int]:
        return await to_thread.run_sync(
            self._neighbor_ratings_sync, set(event_ids), excluding_user, min_rating
        )

    # ---------- Private sync impls ----------
    def _get_user_sync(self, user_id: UserId) -> UserRecord:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFound(f"user {user_id} not found")
            return user.model_copy(deep=True)

    def _ensure_user_sync(self, user_id: UserId) -> UserRecord:
        # first sight of an authenticated id provisions an empty profile
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                user = UserRecord(id=user_id)
                self._users[user_id] = user
            return user.model_copy(deep=True)

    def _save_user_sync(self, user: UserRecord, expected_version: int) -> UserRecord:
        with self._lock:
            current = self._users.get(user.id)
            current_version = current.version if current else 0
            if current_version != expected_version:
                raise Conflict(
                    f"user {user.id} changed (expected v{expected_version}, found v{current_version})"
                )
            stored = user.model_copy(deep=True, update={"version": expected_version + 1})
            self._users[user.id] = stored
            return stored.model_copy(deep=True)

    def _get_event_sync(self, event_id: EventId) -> EventRecord:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                raise NotFound(f"event {event_id} not found")
            return event.model_copy(deep=True)

    def _upsert_event_sync(self, event: EventRecord) -> tuple[EventRecord, bool]:
        with self._lock:
            existing = next(
                (
                    e
                    for e in self._events.values()
                    if e.provider == event.provider and e.event_id == event.event_id
                ),
                None,
            )
            if existing is None:
                stored = event.model_copy(
                    deep=True, update={"ingested_at": datetime.now(timezone.utc)}
                )
                self._events[stored.id] = stored
                return stored.model_copy(deep=True), True

            # refresh descriptive fields, keep identity / counters / ingest time
            keep = {
                "id", "click_count", "rating_count", "rating_sum", "bookmark_count", "ingested_at",
            }
            updates = event.model_dump(exclude=keep)
            stored = existing.model_copy(update=updates)
            self._events[stored.id] = stored
            return stored.model_copy(deep=True), False

    def _find_events_sync(self, flt: InternalFilter, limit: int) -> list[EventRecord]:
        with self._lock:
            rows = [e for e in self._events.values() if _matches(e, flt)]
        latest = datetime.max.replace(tzinfo=timezone.utc)
        rows.sort(key=lambda e: (e.start_utc is None, ensure_ts(e.start_utc) or latest))
        return [e.model_copy(deep=True) for e in rows[: max(limit, 0)]]

    def _increment_click_sync(self, event_id: EventId) -> None:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                raise NotFound(f"event {event_id} not found")
            event.click_count += 1

    def _get_feedback_sync(self, user_id: UserId, event_id: EventId) -> Feedback | None:
        with self._lock:
            fb = self._feedback.get((user_id, event_id))
            return fb.model_copy() if fb else None

    def _upsert_feedback_sync(self, feedback: Feedback) -> tuple[Feedback, int | None]:
        # feedback row and event aggregates change together under one lock
        with self._lock:
            event = self._events.get(feedback.event_id)
            if event is None:
                raise NotFound(f"event {feedback.event_id} not found")
            key = (feedback.user_id, feedback.event_id)
            previous = self._feedback.get(key)
            if previous is None:
                stored = feedback.model_copy()
                event.rating_sum += feedback.rating
                event.rating_count += 1
                event.bookmark_count += 1
                old_rating = None
            else:
                stored = previous.model_copy(
                    update={
                        "rating": feedback.rating,
                        "comment": feedback.comment
                        if feedback.comment is not None
                        else previous.comment,
                        "updated_at": feedback.updated_at,
                    }
                )
                event.rating_sum += feedback.rating - previous.rating
                old_rating = previous.rating
            self._feedback[key] = stored
            return stored.model_copy(), old_rating

    def _list_feedback_sync(self, event_id: EventId) -> list[Feedback]:
        with self._lock:
            rows = [fb.model_copy() for (_, eid), fb in self._feedback.items() if eid == event_id]
        # newest first; equal timestamps fall back to the later insert
        rows.reverse()
        rows.sort(key=lambda fb: fb.created_at, reverse=True)
        return rows

    def _rated_ids_sync(self, user_id: UserId, min_rating: int) -> set[EventId]:
        with self._lock:
            return {
                eid
                for (uid, eid), fb in self._feedback.items()
                if uid == user_id and fb.rating >= min_rating
            }

    def _neighbor_ratings_sync(
        self, event_ids: set[EventId], excluding_user: UserId, min_rating: int
    ) -> dict[EventId, int]:
        if not event_ids:
            return {}
        with self._lock:
            liked_by: dict[UserId, set[EventId]] = defaultdict(set)
            for (uid, eid), fb in self._feedback.items():
                if uid != excluding_user and fb.rating >= min_rating:
                    liked_by[uid].add(eid)
        neighbors = [uid for uid, liked in liked_by.items() if liked & event_ids]
        counts: dict[EventId, int] = defaultdict(int)
        for uid in neighbors:
            for eid in liked_by[uid]:
                counts[eid] += 1
        return dict(counts)


SAVE_ATTEMPTS = 3


async def update_user(
    repo: Repository,
    user_id: UserId,
    mutate: Callable[[UserRecord], T],
    *,
    attempts: int = SAVE_ATTEMPTS,
) -> tuple[UserRecord, T]:
    """
    Versioned read-modify-write of one user record.

    `mutate` edits the freshly read record in place and may return a value.
    On a version conflict the record is re-read and `mutate` re-applied, so it
    must depend only on the record it is given.
    """
    for attempt in range(1, attempts + 1):
        user = await repo.get_user(user_id)
        expected = user.version
        result = mutate(user)
        try:
            saved = await repo.save_user(user, expected)
        except Conflict:
            if attempt == attempts:
                raise
            log.info("user %s save conflict (attempt %d/%d), retrying", user_id, attempt, attempts)
            continue
        return saved, result
    raise Conflict(f"user {user_id} could not be saved")
