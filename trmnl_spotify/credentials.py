"""Resolve per-request Spotify credentials and time range.

Lookup order is request headers, then query parameters, then the process
environment. Only credentials fall back to the environment; the time range
defaults to ``medium_term``.
"""
from __future__ import annotations

from typing import Mapping

from trmnl_spotify import config
from trmnl_spotify.errors import MissingCredentialsError
from trmnl_spotify.models import Credentials


# field -> (header, query parameter, environment variable)
CREDENTIAL_SOURCES = {
    "client_id": ("x-spotify-client-id", "client_id", config.CLIENT_ID_ENV),
    "client_secret": ("x-spotify-client-secret", "client_secret", config.CLIENT_SECRET_ENV),
    "refresh_token": ("x-spotify-refresh-token", "refresh_token", config.REFRESH_TOKEN_ENV),
}

TIME_RANGE_HEADER = "x-spotify-time-range"
TIME_RANGE_PARAM = "time_range"


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def resolve_credentials(
    headers: Mapping[str, str],
    query: Mapping[str, str],
    env: Mapping[str, str],
) -> Credentials:
    """Build ``Credentials`` from the first non-empty source for each field.

    ``headers`` is expected to be case-insensitive (Starlette/Werkzeug headers
    are); a plain dict must use lower-case keys.
    """
    resolved: dict[str, str] = {}
    missing: list[str] = []
    for field, (header, param, env_var) in CREDENTIAL_SOURCES.items():
        value = _first(headers.get(header), query.get(param), env.get(env_var))
        if value is None:
            missing.append(field)
        else:
            resolved[field] = value
    if missing:
        raise MissingCredentialsError(missing)
    return Credentials(**resolved)


def resolve_time_range(headers: Mapping[str, str], query: Mapping[str, str]) -> str:
    return _first(
        headers.get(TIME_RANGE_HEADER),
        query.get(TIME_RANGE_PARAM),
    ) or config.DEFAULT_TIME_RANGE


def time_range_label(time_range: str) -> str | None:
    return config.TIME_RANGE_LABELS.get(time_range)
