from __future__ import annotations

import os

from dotenv import load_dotenv, find_dotenv


AUTH_HELPER_PORT = 8888
REDIRECT_URI = f"http://localhost:{AUTH_HELPER_PORT}/callback"

# Scopes needed by the stats endpoints
SCOPES = [
    "user-top-read",
    "user-read-recently-played",
    "user-read-currently-playing",
]

DEFAULT_TIME_RANGE = "medium_term"
TIME_RANGE_LABELS = {
    "short_term": "Last 4 Weeks",
    "medium_term": "Last 6 Months",
    "long_term": "All Time",
}

RESULT_LIMIT = 5
TOKEN_EXPIRY_MARGIN_SECONDS = 60
MAX_CACHED_CREDENTIALS = 64

CLIENT_ID_ENV = "SPOTIFY_CLIENT_ID"
CLIENT_SECRET_ENV = "SPOTIFY_CLIENT_SECRET"
REFRESH_TOKEN_ENV = "SPOTIFY_REFRESH_TOKEN"


def load_environment() -> None:
    """Load a ``.env`` file from the working directory, if there is one.

    Values already present in the process environment win.
    """
    load_dotenv(dotenv_path=find_dotenv(usecwd=True))


def server_host() -> str:
    return os.getenv("HOST", "0.0.0.0")


def server_port() -> int:
    return int(os.getenv("PORT", 3000))


def request_timeout() -> float:
    return float(os.getenv("SPOTIFY_REQUEST_TIMEOUT", 10))


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def allowed_origins() -> list[str]:
    # Allow a configured display/frontend origin, or any origin when unset
    frontend_url = os.getenv("FRONTEND_URL")
    if frontend_url:
        return [frontend_url]
    return ["*"]
