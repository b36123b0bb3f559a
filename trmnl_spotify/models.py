from __future__ import annotations

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    client_id: str = Field(..., description="Spotify application client id")
    client_secret: str = Field(..., description="Spotify application client secret")
    refresh_token: str = Field(..., description="Long-lived refresh token for the user")

    def cache_key(self) -> tuple[str, str, str]:
        return (self.client_id, self.client_secret, self.refresh_token)


class TokenInfo(BaseModel):
    access_token: str = Field(..., description="Spotify access token")
    refresh_token: str | None = Field(None, description="Spotify refresh token")
    expires_in: int | None = Field(None, description="Lifetime of the access token in seconds")
    expires_at: int | None = Field(None, description="Epoch seconds when the token expires")


class TopArtist(BaseModel):
    rank: int
    name: str
    genres: str
    image: str | None = None


class TopTrack(BaseModel):
    rank: int
    name: str
    artist: str
    album: str
    image: str | None = None


class RecentTrack(BaseModel):
    rank: int
    name: str
    artist: str
    played_at: str


class CurrentlyPlaying(BaseModel):
    name: str
    artist: str
    album: str
    is_playing: bool
    progress_ms: int | None = None
    duration_ms: int | None = None


class StatsResponse(BaseModel):
    time_range_label: str | None = Field(None, description="Omitted when the time range is unknown")
    top_artists: list[TopArtist]
    top_tracks: list[TopTrack]
    recently_played: list[RecentTrack]
    currently_playing: CurrentlyPlaying | None = None
    updated_at: str

    def to_payload(self) -> dict:
        exclude = {"time_range_label"} if self.time_range_label is None else set()
        return self.model_dump(exclude=exclude)


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    message: str
