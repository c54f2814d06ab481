"""
Low-level recording and timer operations on the NextPVR backend.

Responsible for:
- Listing recordings by filter (recording.list)
- Mapping recording entries onto Recording / Timer instances
- Saving (create / update) and deleting single recordings
"""
from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import Callable
from urllib.parse import urlencode

from ..const import CLIENT_NAME
from ..genre_mapper import map_genres
from ..models import Recording, RecordingStatus, Timer
from ..requests import call_service, unwrap
from ..utils import from_unix, optional_str, parse_date, parse_float, parse_int
from .channels import artwork_url

_LOGGER = logging.getLogger(__name__)

FILTER_READY = "ready"
FILTER_PENDING = "pending"
FILTER_ALL = "all"

_STATUS_MAP: dict[str, RecordingStatus] = {
    "pending": RecordingStatus.PENDING,
    "recording": RecordingStatus.IN_PROGRESS,
    "in-progress": RecordingStatus.IN_PROGRESS,
    "ready": RecordingStatus.COMPLETED,
    "completed": RecordingStatus.COMPLETED,
}


def parse_status(value) -> RecordingStatus:
    """Map a backend status string; anything unknown (failed, conflict, ...) is an error."""
    return _STATUS_MAP.get(str(value or "").lower(), RecordingStatus.ERROR)


def recording_stream_url(base_url: str, recording_id: str) -> str:
    return f"{base_url}/live?{urlencode({'recording': recording_id, 'client': CLIENT_NAME})}"


def _parent_id(value) -> str | None:
    parent = parse_int(value)
    return str(parent) if parent else None


def parse_recording(
    base_url: str,
    raw: dict,
    episode_image: bool = False,
    file_exists: Callable[[str], bool] = os.path.exists,
) -> Recording:
    """
    Map a single raw recording dict onto a Recording.

    The local file path is kept only when it is reachable from this machine;
    otherwise the recording is streamed from the backend by URL.
    """
    recording_id = str(raw["id"])
    start = from_unix(raw.get("startTime"))
    end = start + timedelta(seconds=int(raw.get("duration") or 0))

    genres = tuple(raw.get("genres") or ())
    subtitle = optional_str(raw.get("subtitle"))
    season = parse_int(raw.get("season"))
    episode = parse_int(raw.get("episode"))
    series_timer_id = _parent_id(raw.get("recurringParent"))
    flags = map_genres(genres, has_episode_info=bool(subtitle or season or episode or series_timer_id))

    file_path = optional_str(raw.get("file"))
    if file_path and file_exists(file_path):
        path, url = file_path, None
    else:
        path, url = None, recording_stream_url(base_url, recording_id)

    name = str(raw.get("name") or "")
    program_id = optional_str(raw.get("epgEventId"))
    air_date = parse_date(raw.get("original"))
    return Recording(
        id=recording_id,
        channel_id=str(raw.get("channelId") or ""),
        name=name,
        start_time=start,
        end_time=end,
        status=parse_status(raw.get("status")),
        episode_title=subtitle,
        path=path,
        url=url,
        overview=optional_str(raw.get("desc")),
        is_series=flags.is_series,
        is_movie=flags.is_movie,
        is_news=flags.is_news,
        is_sports=flags.is_sports,
        is_kids=flags.is_kids,
        image_url=artwork_url(base_url, name=name, event_id=program_id if episode_image else None),
        genres=genres,
        program_id=program_id,
        series_timer_id=series_timer_id,
        season_number=season,
        episode_number=episode,
        rating=optional_str(raw.get("rating")),
        community_rating=parse_float(raw.get("significance")),
        original_air_date=air_date,
        production_year=air_date.year if air_date and flags.is_movie else None,
        last_updated=from_unix(raw.get("lastUpdated")) or start,
    )


def parse_timer(raw: dict) -> Timer:
    """Map a pending recording entry onto a Timer."""
    start = from_unix(raw.get("startTime"))
    end = start + timedelta(seconds=int(raw.get("duration") or 0)) if start else None
    return Timer(
        id=str(raw["id"]),
        channel_id=str(raw.get("channelId") or ""),
        program_id=str(raw.get("epgEventId") or ""),
        name=str(raw.get("name") or ""),
        start_time=start,
        end_time=end,
        overview=optional_str(raw.get("desc")),
        pre_padding_seconds=(parse_int(raw.get("prePadding")) or 0) * 60,
        post_padding_seconds=(parse_int(raw.get("postPadding")) or 0) * 60,
        status=parse_status(raw.get("status")),
        series_timer_id=_parent_id(raw.get("recurringParent")),
    )


async def fetch_recording_entries(base_url: str, sid: str, filter_: str) -> list[dict]:
    """
    Fetch raw recording entries.

    Corresponding request:
    GET <base_url>/service?method=recording.list&filter=<filter>&sid=<sid>
    """
    payload = unwrap(
        await call_service(base_url, "recording.list", {"filter": filter_}, sid=sid),
        "list recordings",
    )
    return list(payload.get("recordings") or [])


async def fetch_recordings(
    base_url: str, sid: str, filter_: str = FILTER_READY, episode_image: bool = False
) -> list[Recording]:
    recordings = []
    for raw in await fetch_recording_entries(base_url, sid, filter_):
        try:
            recordings.append(parse_recording(base_url, raw, episode_image))
        except (KeyError, TypeError, ValueError) as e:
            _LOGGER.warning("Skipping malformed recording entry %s: %s", raw.get("id"), e)
    return recordings


async def fetch_timers(base_url: str, sid: str) -> list[Timer]:
    timers = []
    for raw in await fetch_recording_entries(base_url, sid, FILTER_PENDING):
        try:
            timers.append(parse_timer(raw))
        except (KeyError, TypeError, ValueError) as e:
            _LOGGER.warning("Skipping malformed timer entry %s: %s", raw.get("id"), e)
    return timers


def timer_params(timer: Timer, update: bool = False) -> dict:
    """Query parameters for recording.save; padding goes over the wire in minutes."""
    params = {
        "event_id": timer.program_id,
        "pre_padding": timer.pre_padding_seconds // 60,
        "post_padding": timer.post_padding_seconds // 60,
    }
    if update:
        params["recording_id"] = timer.id
    return params


async def save_recording(base_url: str, sid: str, timer: Timer, update: bool = False) -> None:
    """
    Create (or update, when *update* is set) a single recording.

    Corresponding request:
    GET <base_url>/service?method=recording.save&sid=<sid>&event_id=<id>&pre_padding=<min>&post_padding=<min>[&recording_id=<id>]
    """
    if update:
        action, identifier = "update the timer", timer.id
    else:
        action, identifier = "create the timer with program", timer.program_id
    unwrap(
        await call_service(base_url, "recording.save", timer_params(timer, update), sid=sid, strict=True),
        action,
        identifier=identifier,
    )


async def delete_recording(base_url: str, sid: str, recording_id: str, action: str = "delete the recording") -> None:
    """
    Delete a recording, or cancel a pending one.

    Corresponding request:
    GET <base_url>/service?method=recording.delete&recording_id=<id>&sid=<sid>
    """
    unwrap(
        await call_service(base_url, "recording.delete", {"recording_id": recording_id}, sid=sid, strict=True),
        action,
        identifier=recording_id,
    )
