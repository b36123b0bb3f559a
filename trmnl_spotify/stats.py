"""Fan out the four Spotify reads and join them into one summary."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi.concurrency import run_in_threadpool

from trmnl_spotify import config
from trmnl_spotify.credentials import time_range_label
from trmnl_spotify.models import StatsResponse
from trmnl_spotify.spotify_client import SpotifyStatsClient


def utc_timestamp() -> str:
    """ISO-8601 UTC time with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class TaskOutcome:
    name: str
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _run(name: str, fn: Callable[..., Any], *args: Any) -> TaskOutcome:
    try:
        return TaskOutcome(name, value=await run_in_threadpool(fn, *args))
    except Exception as exc:
        return TaskOutcome(name, error=exc)


async def fetch_all(client: SpotifyStatsClient, time_range: str) -> dict[str, TaskOutcome]:
    """Run every fetcher concurrently and wait for all of them to settle."""
    outcomes = await asyncio.gather(
        _run("top_artists", client.top_artists, time_range, config.RESULT_LIMIT),
        _run("top_tracks", client.top_tracks, time_range, config.RESULT_LIMIT),
        _run("recently_played", client.recently_played, config.RESULT_LIMIT),
        _run("currently_playing", client.currently_playing),
    )
    return {outcome.name: outcome for outcome in outcomes}


async def collect_stats(client: SpotifyStatsClient, time_range: str) -> StatsResponse:
    """Build the aggregated response; any failed section fails the whole call."""
    outcomes = await fetch_all(client, time_range)
    for outcome in outcomes.values():
        if not outcome.ok:
            raise outcome.error

    return StatsResponse(
        time_range_label=time_range_label(time_range),
        top_artists=outcomes["top_artists"].value,
        top_tracks=outcomes["top_tracks"].value,
        recently_played=outcomes["recently_played"].value,
        currently_playing=outcomes["currently_playing"].value,
        updated_at=utc_timestamp(),
    )
