from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Sequence

from eventrec_core.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_REGION_TIMEOUT_S,
    INTERNAL_CANDIDATE_LIMIT,
    REGION_CATALOG,
    SEARCH_PAGE_SIZE,
)
from eventrec_core.errors import DomainError, EventSourceUnavailable
from eventrec_core.normalize import (
    clamp_price,
    coerce_float,
    ensure_ts,
    normalize_category,
    normalize_country_code,
    start_time_of,
)
from eventrec_core.types import (
    EventId,
    EventRecord,
    GeoPoint,
    InternalFilter,
    RankingContext,
    SourceKind,
    UserId,
)
from eventrec_ranking import popularity as pop
from eventrec_ranking.cf_lite import cf_lite_scores
from eventrec_ranking.context import context_score, point_of
from eventrec_ranking.diversification import diversify_by_country
from eventrec_ranking.hybrid import DEFAULT_HYBRID, HybridWeights, rank_internal, rank_live
from eventrec_ranking.preference_model import DEFAULT_SCORING, ScoringWeights, explain
from eventrec_ranking.types import Candidate, ScoredEvent
from eventrec_retrieval.fanout import dedup_by_id, fan_out_regions
from eventrec_retrieval.feature_extractor import extract
from eventrec_sources.types import EventSource
from eventrec_user.feedback.feedback_service import FeedbackService
from eventrec_user.feedback.schemas import Feedback, FeedbackCreate
from eventrec_user.signals.projection import top_category
from eventrec_user.signals.schemas import ClickSignal, SearchSignal
from eventrec_user.signals.signal_service import SignalService
from eventrec_user.signals.weights import DEFAULT_WEIGHTS, SignalWeights
from eventrec_user.store import Repository
from eventrec_user.types import UserRecord

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def internal_candidate(event: EventRecord) -> Candidate:
    payload = event.model_dump()
    return Candidate(
        id=event.id,
        payload=payload,
        source_kind=SourceKind.INTERNAL,
        features=extract(payload, SourceKind.INTERNAL),
        start=ensure_ts(event.start_utc),
    )


def external_candidate(raw: dict[str, Any]) -> Candidate:
    return Candidate(
        id=str(raw.get("id")),
        payload=raw,
        source_kind=SourceKind.EXTERNAL,
        features=extract(raw, SourceKind.EXTERNAL),
        start=start_time_of(raw),
    )


def within_budget(raw: dict[str, Any], lo: float | None, hi: float | None) -> bool:
    """
    True when the event's price range overlaps [lo, hi].

    Once a budget is given, events without any price are dropped; a single
    known bound stands in for the missing one.
    """
    if lo is None and hi is None:
        return True
    p_min, p_max = coerce_float(raw.get("priceMin")), coerce_float(raw.get("priceMax"))
    if p_min is None and p_max is None:
        return False
    p_min = p_min if p_min is not None else p_max
    p_max = p_max if p_max is not None else p_min
    if lo is not None and p_max < lo:
        return False
    if hi is not None and p_min > hi:
        return False
    return True


class PersonalizationEngine:
    """
    Entry point for learning from behavior and ranking events for a user.

    Ranking modes:
      - internal: the stored dataset, hybrid of content / context / CF-lite /
        popularity, each min-max normalized over the candidate set
      - live: regional fan-out over an external source, content + context,
        then preferred-country diversification
      - search: one keyword query against the live source, budget-filtered,
        scored like live mode without diversification
    """

    def __init__(
        self,
        repo: Repository,
        source: EventSource | None = None,
        *,
        default_location: GeoPoint | None = None,
        signal_weights: SignalWeights = DEFAULT_WEIGHTS,
        scoring: ScoringWeights = DEFAULT_SCORING,
        hybrid: HybridWeights = DEFAULT_HYBRID,
        regions: Sequence[str] = REGION_CATALOG,
        page_size: int = DEFAULT_PAGE_SIZE,
        region_timeout_s: float = DEFAULT_REGION_TIMEOUT_S,
        search_page_size: int = SEARCH_PAGE_SIZE,
        internal_candidate_limit: int = INTERNAL_CANDIDATE_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repo = repo
        self.source = source
        self.default_location = default_location
        self.scoring = scoring
        self.hybrid = hybrid
        self.regions = tuple(regions)
        self.page_size = page_size
        self.region_timeout_s = region_timeout_s
        self.search_page_size = search_page_size
        self.internal_candidate_limit = internal_candidate_limit
        self.clock = clock
        self.signals = SignalService(repo, signal_weights)
        self.feedback = FeedbackService(repo, signal_weights)

    # ---------- Learning ----------
    async def record_search_signal(self, user_id: UserId, signal: SearchSignal) -> None:
        await self.signals.record_search(user_id, signal)

    async def record_click_signal(self, user_id: UserId, signal: ClickSignal) -> None:
        await self.signals.record_click(user_id, signal)

    async def record_rating_signal(
        self, user_id: UserId, event_id: EventId, rating: int, comment: str | None = None
    ) -> Feedback:
        dto = FeedbackCreate(user_id=user_id, event_id=event_id, rating=rating, comment=comment)
        return await self.feedback.rate(dto)

    # ---------- Ranking ----------
    def _context_for(self, user: UserRecord) -> RankingContext:
        location = point_of(user.lat, user.lon) or self.default_location
        return RankingContext(
            now=self.clock(),
            user_location=location,
            max_distance_km=user.preferences.max_distance_km,
        )

    def _context_scores(self, ctx: RankingContext, candidates: List[Candidate]) -> List[float]:
        return [
            context_score(ctx, point_of(c.payload.get("lat"), c.payload.get("lon")), c.start)
            for c in candidates
        ]

    def _internal_filter(
        self, flt: InternalFilter | None, user: UserRecord, upcoming_only: bool
    ) -> InternalFilter:
        # the user's saved date window fills whatever bound the caller left open
        flt = flt or InternalFilter()
        prefs = user.preferences
        after = flt.start_after if flt.start_after is not None else prefs.start_date
        before = flt.start_before if flt.start_before is not None else prefs.end_date
        if upcoming_only:
            now = ensure_ts(self.clock())
            after = now if after is None else max(ensure_ts(after), now)
        return flt.model_copy(update={"start_after": after, "start_before": before})

    async def rank_internal_candidates(
        self,
        user_id: UserId,
        flt: InternalFilter | None,
        limit: int,
        *,
        upcoming_only: bool = False,
    ) -> List[ScoredEvent]:
        if limit <= 0:
            return []
        user = await self.repo.get_user(user_id)
        events = await self.repo.find_events_by_filter(
            self._internal_filter(flt, user, upcoming_only), self.internal_candidate_limit
        )
        if not events:
            return []

        prefs = user.preferences
        candidates = [internal_candidate(e) for e in events]
        ctx = self._context_for(user)

        content = [explain(prefs, c.features, self.scoring) for c in candidates]
        context = self._context_scores(ctx, candidates)
        cf = await cf_lite_scores(self.repo, user_id, [c.id for c in candidates])
        popularity = [
            pop.popularity_score(e.avg_rating, e.click_count, e.bookmark_count) for e in events
        ]

        ranked = rank_internal(
            candidates,
            content=content,
            context=context,
            cf=cf,
            popularity=popularity,
            weights=self.hybrid,
        )
        return ranked[:limit]

    async def rank_live_candidates(self, user_id: UserId, limit: int) -> List[ScoredEvent]:
        if limit <= 0:
            return []
        if self.source is None:
            raise EventSourceUnavailable("no live event source configured")

        user = await self.repo.get_user(user_id)
        prefs = user.preferences

        raws = await fan_out_regions(
            self.source,
            category=top_category(prefs),
            preferred_country=prefs.preferred_country,
            regions=self.regions,
            page_size=self.page_size,
            timeout_s=self.region_timeout_s,
        )
        if not raws:
            return []

        candidates = [external_candidate(r) for r in raws]
        ctx = self._context_for(user)
        content = [explain(prefs, c.features, self.scoring) for c in candidates]
        context = self._context_scores(ctx, candidates)

        ranked = rank_live(candidates, content=content, context=context)
        return diversify_by_country(
            ranked, preferred_country=prefs.preferred_country, limit=limit
        )

    async def search_live(
        self, user_id: UserId, signal: SearchSignal, limit: int
    ) -> List[ScoredEvent]:
        """
        Keyword search against the live source, ranked for the user.

        The search is learned from first, so the ranking already reflects it.
        Learning is best-effort and a failed upstream query yields [];
        only a source that is unusable as a whole raises.
        """
        if self.source is None:
            raise EventSourceUnavailable("no live event source configured")
        try:
            await self.signals.record_search(user_id, signal)
        except DomainError as e:
            log.warning("search signal for %s not recorded: %s", user_id, e)
        if limit <= 0:
            return []

        try:
            raws = await asyncio.wait_for(
                self.source.search(
                    keyword=(signal.query or "").strip() or None,
                    category=normalize_category(signal.category),
                    country_code=normalize_country_code(signal.country),
                    page_size=self.search_page_size,
                ),
                timeout=self.region_timeout_s,
            )
        except EventSourceUnavailable:
            raise
        except asyncio.TimeoutError:
            log.warning("live search timed out after %.1fs", self.region_timeout_s)
            return []
        except Exception as e:
            log.warning("live search failed: %s", e)
            return []

        lo, hi = clamp_price(signal.price_min), clamp_price(signal.price_max)
        raws = [r for r in dedup_by_id([raws]) if within_budget(r, lo, hi)]
        if not raws:
            return []

        user = await self.repo.get_user(user_id)
        prefs = user.preferences
        candidates = [external_candidate(r) for r in raws]
        ctx = self._context_for(user)
        content = [explain(prefs, c.features, self.scoring) for c in candidates]
        context = self._context_scores(ctx, candidates)
        return rank_live(candidates, content=content, context=context)[:limit]
