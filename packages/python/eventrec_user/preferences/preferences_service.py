from __future__ import annotations

from eventrec_core.errors import RuleViolation
from eventrec_core.normalize import normalize_category, normalize_country_code
from eventrec_core.types import UserId
from eventrec_user.store import Repository, update_user
from eventrec_user.types import PreferenceState, UserRecord

from .schemas import PreferencesResponse, PreferencesUpdate


def _to_response(user: UserRecord) -> PreferencesResponse:
    prefs = user.preferences
    return PreferencesResponse(
        user_id=user.id,
        **prefs.model_dump(
            include={
                "categories",
                "preferred_country",
                "max_distance_km",
                "price_min",
                "price_max",
                "start_date",
                "end_date",
                "category_scores",
                "country_scores",
                "keyword_scores",
            }
        ),
    )


class PreferencesService:
    def __init__(self, repo: Repository):
        self.repo = repo

    async def get(self, user_id: UserId) -> PreferencesResponse:
        return _to_response(await self.repo.get_user(user_id))

    async def update(self, user_id: UserId, dto: PreferencesUpdate) -> PreferencesResponse:
        fields = dto.model_dump(exclude_unset=True)
        if (
            dto.start_date is not None
            and dto.end_date is not None
            and dto.start_date > dto.end_date
        ):
            raise RuleViolation("start_date must not be after end_date")

        def apply(user: UserRecord) -> None:
            _apply_manual(user.preferences, fields)

        saved, _ = await update_user(self.repo, user_id, apply)
        return _to_response(saved)


def _apply_manual(prefs: PreferenceState, fields: dict) -> None:
    # learned weight maps are never touched by a manual edit
    if "categories" in fields:
        names = [normalize_category(c) for c in fields["categories"] or []]
        prefs.categories = [n for n in names if n]
    if "preferred_country" in fields:
        # "World" / "All" clears the override
        prefs.preferred_country = normalize_country_code(fields["preferred_country"])
    if fields.get("max_distance_km") is not None:
        prefs.max_distance_km = fields["max_distance_km"]
    # explicit null clears these
    for key in ("price_min", "price_max", "start_date", "end_date"):
        if key in fields:
            setattr(prefs, key, fields[key])
