from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from spotipy import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth

from trmnl_spotify import config
from trmnl_spotify.errors import PROVIDER_ERRORS, describe_error
from trmnl_spotify.models import Credentials, TokenInfo


logger = logging.getLogger(__name__)

Clock = Callable[[], float]
RefreshFn = Callable[[Credentials], TokenInfo]


def get_spotify_oauth(client_id: str | None, client_secret: str | None) -> SpotifyOAuth:
    """Create a SpotifyOAuth that keeps token info in memory only."""
    return SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=config.REDIRECT_URI,
        scope=config.SCOPES,
        cache_handler=MemoryCacheHandler(),
        open_browser=False,
        requests_timeout=config.request_timeout(),
    )


def refresh_with_spotify(credentials: Credentials) -> TokenInfo:
    """Run the refresh-token grant against the accounts service."""
    oauth = get_spotify_oauth(credentials.client_id, credentials.client_secret)
    token_info = oauth.refresh_access_token(credentials.refresh_token)
    return TokenInfo(**token_info)


class AccessTokenCache:
    """Single access token for one credential set.

    The stored expiry is pulled in by ``config.TOKEN_EXPIRY_MARGIN_SECONDS`` so
    a token is never handed out in its last minute of life.
    """

    def __init__(self, credentials: Credentials, refresh: RefreshFn = refresh_with_spotify,
                 clock: Clock = time.time):
        self._credentials = credentials
        self._refresh = refresh
        self._clock = clock
        self._lock = threading.Lock()
        self.access_token: str | None = None
        self.expires_at: float = 0.0

    def valid(self) -> bool:
        return self.access_token is not None and self._clock() < self.expires_at

    def set(self, access_token: str, expires_in: float) -> None:
        self.access_token = access_token
        self.expires_at = self._clock() + expires_in - config.TOKEN_EXPIRY_MARGIN_SECONDS

    def get_access_token(self) -> str:
        if self.valid():
            return self.access_token
        with self._lock:
            # Another thread may have refreshed while we waited
            if self.valid():
                return self.access_token
            try:
                token_info = self._refresh(self._credentials)
            except PROVIDER_ERRORS as exc:
                logger.error("Error refreshing Spotify token: %s", describe_error(exc))
                raise
            expires_in = token_info.expires_in if token_info.expires_in is not None else 3600
            self.set(token_info.access_token, expires_in)
            logger.debug("Refreshed access token, valid for %ss", expires_in)
            return self.access_token


class TokenStore:
    """Hands out one ``AccessTokenCache`` per credential set, in memory only."""

    def __init__(self, refresh: RefreshFn = refresh_with_spotify, clock: Clock = time.time):
        self._refresh = refresh
        self._clock = clock
        self._caches: dict[tuple[str, str, str], AccessTokenCache] = {}
        self._lock = threading.Lock()

    def _prune(self) -> None:
        # Caller holds self._lock. Entries without a token are mid-refresh.
        for key, cache in list(self._caches.items()):
            if cache.access_token is not None and not cache.valid():
                del self._caches[key]
        while len(self._caches) >= config.MAX_CACHED_CREDENTIALS:
            del self._caches[next(iter(self._caches))]

    def cache_for(self, credentials: Credentials) -> AccessTokenCache:
        key = credentials.cache_key()
        with self._lock:
            cache = self._caches.get(key)
            if cache is None:
                self._prune()
                cache = AccessTokenCache(credentials, refresh=self._refresh, clock=self._clock)
                self._caches[key] = cache
            return cache

    def get_access_token(self, credentials: Credentials) -> str:
        cache = self.cache_for(credentials)
        try:
            return cache.get_access_token()
        except Exception:
            # Credentials that cannot refresh are not worth remembering
            with self._lock:
                if self._caches.get(credentials.cache_key()) is cache:
                    del self._caches[credentials.cache_key()]
            raise

    def __len__(self) -> int:
        return len(self._caches)
