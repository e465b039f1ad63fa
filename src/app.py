"""
FastAPI application for prt-arrivals.

Lifespan manages the httpx client, snapshot cache and prediction service.
Routes: /predictions, /health.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.cache import SnapshotCache
from src.config import AppConfig, load_config
from src.models import CachedResponse, ErrorResponse
from src.predictions import PredictionService
from src.prt_client import DecodeError, PRTClient, UpstreamError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_service(config: AppConfig, http_client: httpx.AsyncClient) -> PredictionService:
    """Wire client, cache and service from a loaded config."""
    prt = PRTClient(
        http_client=http_client,
        api_key=config.prt_api_key,
        stops=config.stops,
        base_url=config.prt_base_url,
        feed_name=config.feed_name,
        time_resolution=config.time_resolution,
        timeout=config.request_timeout,
    )
    cache = SnapshotCache(ttl=config.cache_ttl)
    return PredictionService(config=config, prt_client=prt, cache=cache)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load config, create HTTP client, cache, prediction service."""
    configure_logging()

    config = load_config()
    if config.prt_api_key is None:
        logger.warning("PRT_API_KEY is not set; TrueTime will reject requests")
    logger.info(
        "Loaded config: stops=%s, cache_ttl=%d, request_timeout=%.1f",
        ",".join(config.stops),
        config.cache_ttl,
        config.request_timeout,
    )

    async with httpx.AsyncClient() as http_client:
        app.state.prediction_service = build_service(config, http_client)
        logger.info("Serving predictions on http://%s:%d/predictions", config.host, config.port)
        yield

    app.state.prediction_service = None


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return ["*"]


app = FastAPI(
    title="PRT Arrivals API",
    version="1.0.0",
    description="""
Caching aggregation layer over the Port Authority TrueTime predictions feed.

Returns upcoming arrivals for a fixed set of stops, grouped by route and
destination. Upstream is called at most once per cache window; in between,
cached countdowns are adjusted for elapsed time.
    """.strip(),
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "predictions",
            "description": "Arrival predictions for configured stops",
        },
        {
            "name": "health",
            "description": "Service health check",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies and error mapping
# ---------------------------------------------------------------------------


def get_prediction_service(request: Request) -> PredictionService:
    service = getattr(request.app.state, "prediction_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return service


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    return JSONResponse(
        status_code=502,
        content=ErrorResponse(error=f"API Connect Error: {exc}").model_dump(),
    )


@app.exception_handler(DecodeError)
async def decode_error_handler(request: Request, exc: DecodeError):
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=f"API Parse Error: {exc}").model_dump(),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    tags=["health"],
    summary="Health check",
    response_description="Service is healthy",
)
async def health():
    """
    Health check endpoint for monitoring.

    Always returns HTTP 200 and never calls TrueTime.
    """
    return {"status": "healthy"}


@app.get(
    "/predictions",
    response_model=CachedResponse,
    tags=["predictions"],
    summary="Get predictions for all configured stops",
    response_description="Stop ID mapped to route groups with sorted arrivals",
    responses={
        500: {"model": ErrorResponse, "description": "TrueTime payload could not be parsed"},
        502: {"model": ErrorResponse, "description": "TrueTime unreachable or timed out"},
    },
)
async def get_predictions(
    service: PredictionService = Depends(get_prediction_service),
):
    """
    Return arrivals for every configured stop.

    Each stop maps to a list of `{route, destination, arrivals}` groups in
    first-seen order; arrivals are sorted by `seconds` ascending. A stop with
    no upcoming buses is absent from the mapping.
    """
    return await service.get_predictions()


def main() -> None:
    """Run the API with uvicorn on the configured address."""
    configure_logging()
    config = load_config()
    uvicorn.run(app, host=config.host, port=config.port, log_level="info")


if __name__ == "__main__":
    main()
