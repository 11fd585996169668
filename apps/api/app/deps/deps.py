from typing import Any, cast

from fastapi import HTTPException, Request, status

from eventrec_recommendation.engine import PersonalizationEngine
from eventrec_sources.ingestion import EventIngestionService
from eventrec_user.store import Repository


def _get_state_attr(request: Request, name: str, error_detail: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail,
        )
    return value


def get_repo(request: Request) -> Repository:
    return cast(Repository, _get_state_attr(request, "repo", "Repository not initialized"))


def get_engine(request: Request) -> PersonalizationEngine:
    return cast(
        PersonalizationEngine,
        _get_state_attr(request, "engine", "Recommendation engine not initialized"),
    )


def get_ingestion_service(request: Request) -> EventIngestionService:
    return cast(
        EventIngestionService,
        _get_state_attr(request, "ingestion", "Ingestion service not initialized"),
    )
