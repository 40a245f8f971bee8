"""
FastAPI application exposing the soil profile lookup to a web UI.

Endpoints:
    POST /soil-profile          — Resolve a text query and synthesize its soil profile
    POST /soil-profile/current  — Same, for the fix (or error) reported by the browser,
                                  or the server-side position when the body is empty
    GET  /health                — Health check with the configured provider chains
    GET  /metrics               — Prometheus metrics (when prometheus_client is installed)
"""

import logging
import sys
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

try:
    from prometheus_client import Counter, generate_latest
    from fastapi.responses import Response as PrometheusResponse
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.api.schemas import (
    TextSearchRequest, CurrentLocationRequest, SoilProfileResponse, HealthResponse,
)
from src.location.config import build_resolver
from src.location.coordinates import Coordinates
from src.location.errors import ErrorKind, LocationError, PositionErrorCode
from src.location.positioning import StaticCoordinateSource
from src.location.resolver import LocationResolver
from src.location.session import ResolutionSession, SessionController, SessionStatus

logger = logging.getLogger(__name__)

# ---- App setup ----
app = FastAPI(
    title="Soil Profile API",
    description="Resolve a place or the current position and return its soil profile",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Prometheus metrics ----
if PROMETHEUS_AVAILABLE:
    LOOKUP_COUNT = Counter(
        "soil_profile_lookups_total", "Soil profile lookups by outcome",
        ["source", "outcome"],
    )

HTTP_STATUS_FOR_KIND = {
    ErrorKind.EMPTY_INPUT: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.LOCATION_NOT_FOUND: 404,
    ErrorKind.UNSUPPORTED_CAPABILITY: 503,
    ErrorKind.POSITION_UNAVAILABLE: 503,
    ErrorKind.TIMEOUT: 504,
}

# ---- Global resolver (provider chains shared by all requests) ----
resolver: LocationResolver = None
api_version: str = "1.0.0"


def get_resolver() -> LocationResolver:
    """Build the shared resolver from the environment on first use."""
    global resolver
    if resolver is None:
        resolver = build_resolver()
    return resolver


def _controller_for_request(coordinate_source=None) -> SessionController:
    """
    Each request gets its own resolver and controller over the shared
    providers, so concurrent clients never supersede each other.
    """
    base = get_resolver()
    request_resolver = LocationResolver(
        base.forward_geocoders,
        base.reverse_geocoders,
        coordinate_source=coordinate_source or base.coordinate_source,
        region_bias=base.region_bias,
    )
    return SessionController(request_resolver)


def _error_response(error: LocationError) -> HTTPException:
    return HTTPException(
        status_code=HTTP_STATUS_FOR_KIND.get(error.kind, 400),
        detail={"kind": error.kind.value, "message": error.user_message},
    )


def _respond(session: ResolutionSession) -> SoilProfileResponse:
    if PROMETHEUS_AVAILABLE:
        outcome = session.error.kind.value if session.error else session.status.value
        LOOKUP_COUNT.labels(source=session.source.value, outcome=outcome).inc()

    if session.status == SessionStatus.FAILED:
        raise _error_response(session.error)

    payload = session.to_dict()
    return SoilProfileResponse(
        sessionId=payload["sessionId"],
        status=payload["status"],
        source=payload["source"],
        progressText=payload["progressText"],
        resolvedLocation=payload["resolvedLocation"],
        soilProfile=payload["soilProfile"],
    )


@app.on_event("startup")
async def startup_event():
    get_resolver()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    base = get_resolver()
    return HealthResponse(
        status="healthy",
        version=api_version,
        forward_geocoders=[p.name for p in base.forward_geocoders],
        reverse_geocoders=[p.name for p in base.reverse_geocoders],
        positioning=base.coordinate_source is not None,
    )


@app.post("/soil-profile", response_model=SoilProfileResponse)
async def soil_profile_by_text(request: TextSearchRequest):
    """Resolve a free-text location and return its soil profile."""
    controller = _controller_for_request()
    try:
        session = await controller.search(request.query, request.region_bias)
    except LocationError as e:
        raise _error_response(e)
    return _respond(session)


@app.post("/soil-profile/current", response_model=SoilProfileResponse)
async def soil_profile_for_current_location(request: CurrentLocationRequest):
    """
    Return the soil profile for the position reported by the client.

    An empty body asks the server to position itself (SOIL_POSITIONING);
    without a configured source the lookup fails with UnsupportedCapability.
    """
    source = None
    if request.error_code is not None:
        source = StaticCoordinateSource(error_code=PositionErrorCode(request.error_code))
    elif request.lat is not None:
        source = StaticCoordinateSource(Coordinates(lat=request.lat, lng=request.lng))

    controller = _controller_for_request(coordinate_source=source)
    session = await controller.use_current_location()
    return _respond(session)


# ---- Prometheus metrics endpoint ----
if PROMETHEUS_AVAILABLE:
    @app.get("/metrics")
    async def metrics():
        return PrometheusResponse(
            content=generate_latest(),
            media_type="text/plain",
        )


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
