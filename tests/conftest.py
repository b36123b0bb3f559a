import pytest
from fastapi.testclient import TestClient

from trmnl_spotify.main import app, get_client_factory, get_token_store
from trmnl_spotify.models import Credentials, TokenInfo
from trmnl_spotify.token_cache import TokenStore


ENV_VARS = ["SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET", "SPOTIFY_REFRESH_TOKEN"]


def artist_item(name, genres=(), images=()):
    return {"name": name, "genres": list(genres), "images": [{"url": url} for url in images]}


def track_item(name, artists, album, images=(), duration_ms=200000):
    return {
        "name": name,
        "artists": [{"name": a} for a in artists],
        "album": {"name": album, "images": [{"url": url} for url in images]},
        "duration_ms": duration_ms,
    }


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeRefresh:
    """Stands in for the refresh-token grant; counts calls."""

    def __init__(self, expires_in=3600, error=None):
        self.expires_in = expires_in
        self.error = error
        self.calls = []

    def __call__(self, credentials):
        self.calls.append(credentials)
        if self.error is not None:
            raise self.error
        return TokenInfo(access_token=f"access-{len(self.calls)}", expires_in=self.expires_in)


class FakeSpotify:
    """Answers the four read calls with canned payloads or raises."""

    def __init__(self):
        self.top_artists = {"items": [
            artist_item("Radiohead", ["art rock", "alternative rock", "permanent wave", "rock"], ["https://img/rh.jpg"]),
            artist_item("Burial", [], []),
        ]}
        self.top_tracks = {"items": [
            track_item("Idioteque", ["Radiohead"], "Kid A", ["https://img/kida.jpg"]),
        ]}
        self.recently_played = {"items": [
            {"track": track_item("Archangel", ["Burial"], "Untrue"), "played_at": "2024-10-19T15:04:05.123Z"},
        ]}
        self.current = {
            "is_playing": True,
            "progress_ms": 1234,
            "item": track_item("Windowlicker", ["Aphex Twin"], "Windowlicker", duration_ms=366000),
        }
        self.errors = {}
        self.calls = []
        self.tokens = []

    def _answer(self, name, payload, **kwargs):
        self.calls.append((name, kwargs))
        if name in self.errors:
            raise self.errors[name]
        return payload

    def current_user_top_artists(self, limit=20, offset=0, time_range="medium_term"):
        return self._answer("top_artists", self.top_artists, limit=limit, time_range=time_range)

    def current_user_top_tracks(self, limit=20, offset=0, time_range="medium_term"):
        return self._answer("top_tracks", self.top_tracks, limit=limit, time_range=time_range)

    def current_user_recently_played(self, limit=50, after=None, before=None):
        return self._answer("recently_played", self.recently_played, limit=limit)

    def currently_playing(self, market=None, additional_types=None):
        return self._answer("currently_playing", self.current)

    def factory(self, access_token):
        self.tokens.append(access_token)
        return self


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credentials():
    return Credentials(client_id="client-id", client_secret="client-secret", refresh_token="refresh-token")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def refresh():
    return FakeRefresh()


@pytest.fixture
def fake_spotify():
    return FakeSpotify()


@pytest.fixture
def token_store(refresh, clock):
    return TokenStore(refresh=refresh, clock=clock)


@pytest.fixture
def client(token_store, fake_spotify):
    app.dependency_overrides[get_token_store] = lambda: token_store
    app.dependency_overrides[get_client_factory] = lambda: fake_spotify.factory
    yield TestClient(app)
    app.dependency_overrides.clear()
