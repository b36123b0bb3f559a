import pytest

from trmnl_spotify.credentials import resolve_credentials, resolve_time_range, time_range_label
from trmnl_spotify.errors import MissingCredentialsError


ENV = {
    "SPOTIFY_CLIENT_ID": "env-id",
    "SPOTIFY_CLIENT_SECRET": "env-secret",
    "SPOTIFY_REFRESH_TOKEN": "env-refresh",
}


def test_headers_win_over_query_and_env():
    headers = {"x-spotify-client-id": "header-id"}
    query = {"client_id": "query-id", "client_secret": "query-secret"}

    creds = resolve_credentials(headers, query, ENV)

    assert creds.client_id == "header-id"
    assert creds.client_secret == "query-secret"
    assert creds.refresh_token == "env-refresh"


def test_empty_values_fall_through():
    headers = {"x-spotify-client-id": ""}
    creds = resolve_credentials(headers, {"client_id": ""}, ENV)
    assert creds.client_id == "env-id"


def test_missing_fields_are_reported():
    with pytest.raises(MissingCredentialsError) as excinfo:
        resolve_credentials({"x-spotify-client-id": "id"}, {}, {})
    assert excinfo.value.missing == ["client_secret", "refresh_token"]


def test_time_range_priority_and_default():
    assert resolve_time_range({}, {}) == "medium_term"
    assert resolve_time_range({}, {"time_range": "long_term"}) == "long_term"
    assert resolve_time_range({"x-spotify-time-range": "short_term"}, {"time_range": "long_term"}) == "short_term"


@pytest.mark.parametrize("time_range, label", [
    ("short_term", "Last 4 Weeks"),
    ("medium_term", "Last 6 Months"),
    ("long_term", "All Time"),
    ("forever", None),
])
def test_time_range_label(time_range, label):
    assert time_range_label(time_range) == label
