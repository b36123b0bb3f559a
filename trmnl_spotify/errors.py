from __future__ import annotations

import requests
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOauthError


class MissingCredentialsError(ValueError):
    """Raised when client id, client secret or refresh token cannot be resolved."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing credentials: {', '.join(missing)}")


# Errors a Spotify call can surface; anything else is a bug
PROVIDER_ERRORS = (SpotifyException, SpotifyOauthError, requests.RequestException)


def describe_error(exc: BaseException) -> str:
    """Return the provider's error detail when there is one, else the message."""
    if isinstance(exc, SpotifyOauthError):
        detail = getattr(exc, "error_description", None) or getattr(exc, "error", None)
        if detail:
            return str(detail)
    if isinstance(exc, SpotifyException):
        return f"{exc.http_status}: {exc.msg}"
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            return str(response.json())
        except ValueError:
            return response.text or str(exc)
    return str(exc)
