import logging
import os

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trmnl_spotify import config
from trmnl_spotify.credentials import resolve_credentials, resolve_time_range
from trmnl_spotify.errors import MissingCredentialsError
from trmnl_spotify.logger import setup_logging
from trmnl_spotify.models import ErrorResponse, HealthResponse
from trmnl_spotify.spotify_client import ClientFactory, SpotifyStatsClient, create_spotify_client
from trmnl_spotify.stats import collect_stats, utc_timestamp
from trmnl_spotify.token_cache import TokenStore


config.load_environment()

logger = logging.getLogger(__name__)

app = FastAPI(title="TRMNL Spotify Stats API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.state.token_store = TokenStore()


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store


def get_client_factory() -> ClientFactory:
    return create_spotify_client


@app.get("/api/spotify-stats")
async def spotify_stats(
    request: Request,
    tokens: TokenStore = Depends(get_token_store),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Aggregated stats for the display to poll."""
    try:
        credentials = resolve_credentials(request.headers, request.query_params, os.environ)
    except MissingCredentialsError as exc:
        logger.warning("Rejecting stats request: %s", exc)
        body = ErrorResponse(
            error="Missing credentials",
            message="Please provide credentials in headers (x-spotify-client-id, "
                    "x-spotify-client-secret, x-spotify-refresh-token)",
        )
        return JSONResponse(body.model_dump(), status_code=400)

    time_range = resolve_time_range(request.headers, request.query_params)
    client = SpotifyStatsClient(tokens, credentials, client_factory)
    try:
        stats = await collect_stats(client, time_range)
    except Exception as exc:
        logger.exception("Error in /api/spotify-stats")
        body = ErrorResponse(error="Failed to fetch Spotify statistics", message=str(exc))
        return JSONResponse(body.model_dump(), status_code=500)

    return JSONResponse(stats.to_payload())


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=utc_timestamp())


@app.get("/")
def index():
    return {
        "message": "TRMNL Spotify Stats API",
        "endpoints": {
            "/api/spotify-stats": "Get Spotify statistics (supports ?time_range=short_term|medium_term|long_term)",
            "/health": "Health check",
        },
    }


def run() -> None:
    setup_logging(config.log_level())
    host, port = config.server_host(), config.server_port()
    logger.info("TRMNL Spotify Stats server running on port %d", port)
    logger.info("API endpoint: http://localhost:%d/api/spotify-stats", port)
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    run()
