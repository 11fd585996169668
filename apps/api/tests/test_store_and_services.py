import pytest

from conftest import TEST_USER_ID, make_event
from eventrec_core.errors import Conflict, NotFound, RuleViolation
from eventrec_core.types import InternalFilter
from eventrec_ranking.cf_lite import cf_lite_scores
from eventrec_user.feedback.feedback_service import FeedbackService
from eventrec_user.feedback.schemas import FeedbackCreate
from eventrec_user.preferences.preferences_service import PreferencesService
from eventrec_user.preferences.schemas import PreferencesUpdate
from eventrec_user.signals.schemas import ClickSignal, SearchSignal
from eventrec_user.signals.signal_service import SignalService
from eventrec_user.store import InMemoryRepository, update_user
from eventrec_user.types import UserRecord

pytestmark = pytest.mark.anyio


async def test_versioned_save_rejects_stale_writes(repo):
    user = await repo.get_user(TEST_USER_ID)
    saved = await repo.save_user(user, user.version)
    assert saved.version == user.version + 1

    with pytest.raises(Conflict):
        await repo.save_user(user, user.version)  # stale token


async def test_update_user_retries_after_conflict(repo):
    calls = []

    def mutate(u: UserRecord):
        calls.append(u.version)
        if len(calls) == 1:
            # a concurrent writer lands between our read and our save
            other = repo._get_user_sync(TEST_USER_ID)
            repo._save_user_sync(other, other.version)
        u.preferences.categories = ["Film"]

    saved, _ = await update_user(repo, TEST_USER_ID, mutate)
    assert calls == [0, 1]
    assert saved.version == 2
    assert saved.preferences.categories == ["Film"]


async def test_update_user_gives_up_after_three_attempts(repo):
    def always_conflicting(u: UserRecord):
        other = repo._get_user_sync(TEST_USER_ID)
        repo._save_user_sync(other, other.version)

    with pytest.raises(Conflict):
        await update_user(repo, TEST_USER_ID, always_conflicting)


async def test_signal_service_appends_one_interaction_per_signal(repo):
    svc = SignalService(repo)
    await svc.record_search(TEST_USER_ID, SearchSignal(query="jazz", country="US"))
    repo.add_event(make_event("e1", title="Jazz Club", category="Music", country_code="GB"))
    await svc.record_click(TEST_USER_ID, ClickSignal(event_id="e1"))

    user = await repo.get_user(TEST_USER_ID)
    assert [i.type.value for i in user.interactions] == ["search", "click"]
    assert user.preferences.preferred_country == "GB"
    assert user.preferences.keyword_scores["jazz"] == pytest.approx(0.3 + 0.5)
    assert user.version == 2


async def test_click_requires_a_reference(repo):
    with pytest.raises(RuleViolation) as exc:
        await SignalService(repo).record_click(TEST_USER_ID, ClickSignal(title="x"))
    assert exc.value.status == 400


async def test_click_on_unknown_event_learns_from_payload(repo):
    await SignalService(repo).record_click(
        TEST_USER_ID, ClickSignal(event_id="missing", category="Sports")
    )
    user = await repo.get_user(TEST_USER_ID)
    assert user.preferences.category_scores == {"Sports": 1.0}
    assert user.interactions[0].event_ref is None


async def test_rerating_replaces_aggregate_contribution(repo):
    repo.add_event(make_event("e1"))
    svc = FeedbackService(repo)

    first = await svc.rate(FeedbackCreate(user_id=TEST_USER_ID, event_id="e1", rating=4, comment="good"))
    second = await svc.rate(FeedbackCreate(user_id=TEST_USER_ID, event_id="e1", rating=2))

    event = await repo.get_event("e1")
    assert event.rating_sum == 2
    assert event.rating_count == 1
    assert event.bookmark_count == 1
    assert event.avg_rating == 2.0
    assert second.created_at == first.created_at
    assert second.comment == "good"

    # learner runs on every rating: +1.5 then -0.5
    user = await repo.get_user(TEST_USER_ID)
    assert user.preferences.category_scores["Music"] == pytest.approx(1.0)
    assert [i.type.value for i in user.interactions] == ["rated", "rated"]


async def test_rating_unknown_event_is_not_found(repo):
    with pytest.raises(NotFound):
        await FeedbackService(repo).rate(FeedbackCreate(user_id=TEST_USER_ID, event_id="nope", rating=5))


async def test_filter_semantics(repo):
    repo.add_event(make_event("a", title="Jazz Night", price_min=30))
    repo.add_event(make_event("b", title="Rock Night", category="Music", country_code="GB"))
    repo.add_event(make_event("c", title="Football", category="Sports", price_min=300))
    repo.add_event(make_event("d", title="Free Jazz", price_min=None, price_max=None))

    async def ids(**kw):
        return {e.id for e in await repo.find_events_by_filter(InternalFilter(**kw), 100)}

    assert await ids() == {"a", "b", "c", "d"}
    assert await ids(q="jazz") == {"a", "d"}
    assert await ids(categories=["Sports"]) == {"c"}
    assert await ids(country_code="uk") == {"b"}
    assert await ids(price_max=100) == {"a", "b", "d"}  # price-less events are kept
    assert len(await repo.find_events_by_filter(InternalFilter(), 2)) == 2


async def test_upsert_by_provider_id_preserves_counters():
    repo = InMemoryRepository()
    first, created = await repo.upsert_event_by_provider_id(make_event("x1", title="Old"))
    assert created
    await repo.increment_click_count(first.id)

    second, created = await repo.upsert_event_by_provider_id(make_event("x2", event_id="p-x1", title="New"))
    assert not created
    assert second.id == first.id
    assert second.title == "New"
    assert second.click_count == 1


async def test_cf_lite_counts_neighbors():
    repo = InMemoryRepository()
    for eid in ("liked", "c1", "c2", "c3"):
        repo.add_event(make_event(eid))
    for uid in ("me", "n1", "n2", "stranger"):
        repo.add_user(UserRecord(id=uid))
    svc = FeedbackService(repo)

    async def rate(uid, eid, r):
        await svc.rate(FeedbackCreate(user_id=uid, event_id=eid, rating=r))

    await rate("me", "liked", 5)
    await rate("n1", "liked", 4)
    await rate("n2", "liked", 5)
    await rate("n1", "c1", 5)
    await rate("n2", "c1", 4)
    await rate("n2", "c2", 4)
    await rate("n1", "c3", 2)  # not a like
    await rate("stranger", "c3", 5)  # no overlap with "me"

    scores = await cf_lite_scores(repo, "me", ["c1", "c2", "c3"])
    assert scores == [1.0, 0.5, 0.0]


async def test_cf_lite_without_likes_is_zero(repo):
    assert await cf_lite_scores(repo, TEST_USER_ID, ["a", "b"]) == [0.0, 0.0]


async def test_manual_preferences_update(repo):
    svc = PreferencesService(repo)
    out = await svc.update(
        TEST_USER_ID,
        PreferencesUpdate(categories=["Music", "All", " Film "], preferred_country="uk", max_distance_km=25),
    )
    assert out.categories == ["Music", "Film"]
    assert out.preferred_country == "GB"
    assert out.max_distance_km == 25

    out = await svc.update(TEST_USER_ID, PreferencesUpdate(preferred_country="World"))
    assert out.preferred_country is None
    assert out.categories == ["Music", "Film"]  # untouched when omitted


async def test_feedback_listing_newest_first():
    repo = InMemoryRepository()
    repo.add_event(make_event("e1"))
    repo.add_user(UserRecord(id="a"))
    repo.add_user(UserRecord(id="b"))
    svc = FeedbackService(repo)

    await svc.rate(FeedbackCreate(user_id="a", event_id="e1", rating=4))
    await svc.rate(FeedbackCreate(user_id="b", event_id="e1", rating=2))
    rows = await svc.list_for_event("e1")
    assert [(fb.user_id, fb.rating) for fb in rows] == [("b", 2), ("a", 4)]

    assert (await svc.get("a", "e1")).rating == 4
    assert await svc.get("a", "missing") is None
    assert await svc.list_for_event("missing") == []


class ContendedRepository(InMemoryRepository):
    """Every user save loses the version race."""

    async def save_user(self, user, expected_version):
        raise Conflict(f"user {user.id} changed")


async def test_rating_lost_to_conflict_leaves_aggregates_untouched():
    repo = ContendedRepository()
    repo.add_event(make_event("e1"))
    repo.add_user(UserRecord(id="a"))

    with pytest.raises(Conflict):
        await FeedbackService(repo).rate(FeedbackCreate(user_id="a", event_id="e1", rating=5))

    event = await repo.get_event("e1")
    assert (event.rating_sum, event.rating_count, event.bookmark_count) == (0, 0, 0)
    assert await repo.get_feedback("a", "e1") is None
    assert (await repo.get_user("a")).interactions == []
