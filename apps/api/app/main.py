import logging
from contextlib import asynccontextmanager

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from pydantic_settings import BaseSettings, SettingsConfigDict

from eventrec_core.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_REGION_TIMEOUT_S,
    INTERNAL_CANDIDATE_LIMIT,
    TICKETMASTER_BASE_URL,
)
from eventrec_core.types import GeoPoint
from eventrec_recommendation.engine import PersonalizationEngine
from eventrec_sources.ingestion import EventIngestionService
from eventrec_sources.ticketmaster_client import TicketmasterClient
from eventrec_user.store import InMemoryRepository
from .routers import all_routers

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "Event Recommendation API"
    # credentials
    ticketmaster_api_key: str | None = None
    ticketmaster_base_url: str = TICKETMASTER_BASE_URL
    # live source config
    source_page_size: int = DEFAULT_PAGE_SIZE
    region_timeout_s: float = DEFAULT_REGION_TIMEOUT_S
    source_max_connections: int = 15
    # fallback user location for the geo term
    default_lat: float | None = None
    default_lon: float | None = None
    internal_candidate_limit: int = INTERNAL_CANDIDATE_LIMIT
    log_level: str = "INFO"
    # env config
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def _init_engine(app: FastAPI) -> None:
    s: Settings = app.state.settings

    repo = InMemoryRepository()
    source = TicketmasterClient(
        s.ticketmaster_api_key,
        base_url=s.ticketmaster_base_url,
        max_connections=s.source_max_connections,
        timeout=s.region_timeout_s,
    )
    if not s.ticketmaster_api_key:
        log.warning("TICKETMASTER_API_KEY not set; live recommendations and import will return 503")

    default_location = None
    if s.default_lat is not None and s.default_lon is not None:
        default_location = GeoPoint(lat=s.default_lat, lon=s.default_lon)

    app.state.repo = repo
    app.state.event_source = source
    app.state.engine = PersonalizationEngine(
        repo,
        source,
        default_location=default_location,
        page_size=s.source_page_size,
        region_timeout_s=s.region_timeout_s,
        internal_candidate_limit=s.internal_candidate_limit,
    )
    app.state.ingestion = EventIngestionService(repo, source)


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv(find_dotenv(), override=False)

    settings = Settings()
    app.state.settings = settings
    logging.basicConfig(level=settings.log_level.upper())

    _init_engine(app)
    log.info("%s started", settings.app_name)

    try:
        yield
    finally:
        await app.state.event_source.aclose()


app = FastAPI(title="Event Recommendation API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version="0.1.0",
        description="Personalized event recommendations",
        routes=app.routes,
    )
    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
    }
    for path, path_item in schema.get("paths", {}).items():
        if path == "/health":
            continue
        for operation in path_item.values():
            operation.setdefault("security", []).append({"BearerAuth": []})
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = _custom_openapi


@app.get("/health")
def health():
    s = app.state.settings
    return {"status": "ok", "service": s.app_name}


for r in all_routers:
    app.include_router(r)
