import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cotravel.api.health import router as health_router
from cotravel.api.maps import router as maps_router
from cotravel.config import Settings, settings
from cotravel.database import async_session, engine, init_models
from cotravel.errors import NotFoundError, ProviderError, ValidationError
from cotravel.services.distance import DistanceEngine
from cotravel.services.geo_cache import GeoCache, RedisGeoCache, build_geo_cache
from cotravel.services.geocoding import GeocodingService
from cotravel.services.intent_store import IntentStore, SqlIntentStore
from cotravel.services.matcher import MatchingOrchestrator
from cotravel.services.meeting_point import MeetingPointOptimizer
from cotravel.services.nominatim import NominatimGeocodingProvider
from cotravel.services.osrm import OsrmRoutingProvider
from cotravel.services.overpass import OverpassPoiProvider
from cotravel.services.providers import GeocodingProvider, PoiProvider, RoutingProvider
from cotravel.tasks.cache_sweep import run_cache_sweep_loop

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def wire(
    app: FastAPI,
    *,
    settings: Settings,
    store: IntentStore,
    cache: GeoCache,
    routing: RoutingProvider,
    geocoder: GeocodingProvider,
    pois: PoiProvider,
) -> None:
    """Build the engine from its collaborators and expose it on app.state."""
    distance = DistanceEngine(routing, cache, settings)
    optimizer = MeetingPointOptimizer(distance, pois, geocoder, cache, settings)
    app.state.settings = settings
    app.state.cache = cache
    app.state.routing = routing
    app.state.distance = distance
    app.state.geocoding = GeocodingService(geocoder, cache, settings)
    app.state.orchestrator = MatchingOrchestrator(store, distance, optimizer, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models(engine, reset=settings.RESET_DB)
    client = httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
    cache = build_geo_cache(settings)
    wire(
        app,
        settings=settings,
        store=SqlIntentStore(async_session),
        cache=cache,
        routing=OsrmRoutingProvider(client, settings.OSRM_BASE_URL),
        geocoder=NominatimGeocodingProvider(
            client,
            settings.NOMINATIM_BASE_URL,
            user_agent=settings.HTTP_USER_AGENT,
            min_autocomplete_chars=settings.AUTOCOMPLETE_MIN_CHARS,
            autocomplete_limit=settings.AUTOCOMPLETE_LIMIT,
            country_codes=settings.AUTOCOMPLETE_COUNTRY_CODES,
            viewbox=settings.AUTOCOMPLETE_VIEWBOX,
        ),
        pois=OverpassPoiProvider(client, settings.OVERPASS_URL),
    )
    task = asyncio.create_task(run_cache_sweep_loop(cache, settings.GEO_CACHE_SWEEP_SECONDS))
    logger.info("cotravel started (geo cache: %s)", settings.GEO_CACHE_BACKEND)
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        await client.aclose()
        if isinstance(cache, RedisGeoCache):
            await cache.redis.aclose()
        await engine.dispose()


app = FastAPI(title="cotravel", version="0.1.0", lifespan=lifespan)
app.include_router(health_router, prefix="/api")
app.include_router(maps_router, prefix="/api")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "fields": exc.fields})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    logger.warning("provider failure surfaced on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/api")
def api_root():
    return {"message": "cotravel API"}
