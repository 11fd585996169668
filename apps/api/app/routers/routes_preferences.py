from fastapi import APIRouter, Depends

from app.deps.auth import get_current_user_id
from app.deps.deps import get_repo
from app.errors import to_http
from eventrec_core.errors import DomainError
from eventrec_user.preferences.preferences_service import PreferencesService
from eventrec_user.preferences.schemas import PreferencesResponse, PreferencesUpdate
from eventrec_user.store import Repository

router = APIRouter(prefix="/v1/preferences", tags=["preferences"])


def get_service(repo: Repository = Depends(get_repo)) -> PreferencesService:
    return PreferencesService(repo)


@router.get("", response_model=PreferencesResponse)
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    service: PreferencesService = Depends(get_service),
):
    try:
        return await service.get(user_id)
    except DomainError as e:
        raise to_http(e) from e


@router.put("", response_model=PreferencesResponse)
async def update_preferences(
    req: PreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PreferencesService = Depends(get_service),
):
    try:
        return await service.update(user_id, req)
    except DomainError as e:
        raise to_http(e) from e
