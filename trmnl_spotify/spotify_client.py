from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, List

import spotipy
from pydantic import ValidationError

from trmnl_spotify import config
from trmnl_spotify.errors import PROVIDER_ERRORS, describe_error
from trmnl_spotify.models import Credentials, CurrentlyPlaying, RecentTrack, TopArtist, TopTrack
from trmnl_spotify.token_cache import TokenStore


logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], spotipy.Spotify]


def create_spotify_client(access_token: str) -> spotipy.Spotify:
    """Create a Spotipy client using a raw access token.

    Retries are switched off; a failed call fails the request.
    """
    return spotipy.Spotify(
        auth=access_token,
        requests_timeout=config.request_timeout(),
        retries=0,
        status_retries=0,
    )


def _first_image(images: List[Dict[str, Any]] | None) -> str | None:
    if not images:
        return None
    return images[0].get("url") or None


def _artist_names(artists: List[Dict[str, Any]]) -> str:
    return ", ".join(a["name"] for a in artists)


def format_played_at(value: str, tz: tzinfo | None = None) -> str:
    """Render an ISO-8601 timestamp like ``Oct 19, 3:04 PM``.

    Uses the server's local time zone unless ``tz`` is given.
    """
    played = datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(tz)
    hour = played.hour % 12 or 12
    meridiem = "AM" if played.hour < 12 else "PM"
    return f"{played:%b} {played.day}, {hour}:{played:%M} {meridiem}"


def map_top_artists(items: List[Dict[str, Any]]) -> List[TopArtist]:
    return [
        TopArtist(
            rank=index,
            name=artist["name"],
            genres=", ".join(artist.get("genres", [])[:3]) or "N/A",
            image=_first_image(artist.get("images")),
        )
        for index, artist in enumerate(items, start=1)
    ]


def map_top_tracks(items: List[Dict[str, Any]]) -> List[TopTrack]:
    return [
        TopTrack(
            rank=index,
            name=track["name"],
            artist=_artist_names(track["artists"]),
            album=track["album"]["name"],
            image=_first_image(track["album"].get("images")),
        )
        for index, track in enumerate(items, start=1)
    ]


def map_recently_played(items: List[Dict[str, Any]], tz: tzinfo | None = None) -> List[RecentTrack]:
    return [
        RecentTrack(
            rank=index,
            name=item["track"]["name"],
            artist=_artist_names(item["track"]["artists"]),
            played_at=format_played_at(item["played_at"], tz),
        )
        for index, item in enumerate(items, start=1)
    ]


def map_currently_playing(payload: Dict[str, Any] | None) -> CurrentlyPlaying | None:
    # Spotify answers 204 (spotipy gives None) when nothing is playing
    if not payload or not payload.get("item"):
        return None
    item = payload["item"]
    return CurrentlyPlaying(
        name=item["name"],
        artist=_artist_names(item["artists"]),
        album=item["album"]["name"],
        is_playing=bool(payload.get("is_playing")),
        progress_ms=payload.get("progress_ms"),
        duration_ms=item.get("duration_ms"),
    )


class SpotifyStatsClient:
    """Read-only access to one user's listening statistics.

    Every call fetches an access token from ``tokens`` first, so a token that
    expires between calls is refreshed transparently.
    """

    def __init__(self, tokens: TokenStore, credentials: Credentials,
                 client_factory: ClientFactory = create_spotify_client):
        self._tokens = tokens
        self._credentials = credentials
        self._client_factory = client_factory

    def _client(self) -> spotipy.Spotify:
        return self._client_factory(self._tokens.get_access_token(self._credentials))

    def top_artists(self, time_range: str = config.DEFAULT_TIME_RANGE,
                    limit: int = config.RESULT_LIMIT) -> List[TopArtist]:
        try:
            results = self._client().current_user_top_artists(limit=limit, time_range=time_range)
        except PROVIDER_ERRORS as exc:
            logger.error("Error fetching top artists: %s", describe_error(exc))
            raise
        return map_top_artists(results["items"])

    def top_tracks(self, time_range: str = config.DEFAULT_TIME_RANGE,
                   limit: int = config.RESULT_LIMIT) -> List[TopTrack]:
        try:
            results = self._client().current_user_top_tracks(limit=limit, time_range=time_range)
        except PROVIDER_ERRORS as exc:
            logger.error("Error fetching top tracks: %s", describe_error(exc))
            raise
        return map_top_tracks(results["items"])

    def recently_played(self, limit: int = config.RESULT_LIMIT) -> List[RecentTrack]:
        try:
            results = self._client().current_user_recently_played(limit=limit)
        except PROVIDER_ERRORS as exc:
            logger.error("Error fetching recently played: %s", describe_error(exc))
            raise
        return map_recently_played(results["items"])

    def currently_playing(self) -> CurrentlyPlaying | None:
        """Return the current track, or None when idle, on provider errors or on an unreadable payload."""
        try:
            payload = self._client().currently_playing()
        except PROVIDER_ERRORS as exc:
            logger.warning("Error fetching currently playing: %s", describe_error(exc))
            return None
        try:
            return map_currently_playing(payload)
        except (KeyError, TypeError, ValidationError) as exc:
            # Episodes and local files can come back without artists or album
            logger.warning("Unreadable currently playing payload: %r", exc)
            return None
