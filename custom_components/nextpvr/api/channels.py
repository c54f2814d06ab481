"""
Low-level channel and EPG fetching from the NextPVR backend.

Responsible for:
- Fetching the channel list (channel.list)
- Fetching programme listings for a channel and time range (channel.listings)
- Mapping the JSON fields onto Channel / Program instances
"""
from __future__ import annotations

import logging
from datetime import datetime
from urllib.parse import urlencode

from ..genre_mapper import map_genres
from ..models import Channel, ChannelType, Program
from ..requests import call_service, service_url, unwrap
from ..utils import from_unix, optional_str, parse_date, parse_int, to_unix

_LOGGER = logging.getLogger(__name__)

# channelType values the backend uses for radio channels
_RADIO_CHANNEL_TYPES = {"10", "radio"}


def artwork_url(base_url: str, name: str | None = None, event_id: str | None = None) -> str:
    """URL of the backend's show artwork, poster orientation."""
    params: dict[str, str] = {"method": "channel.show.artwork"}
    if event_id:
        params["event_id"] = event_id
    if name:
        params["name"] = name
    params["prefer"] = "poster"
    return f"{service_url(base_url)}?{urlencode(params)}"


def parse_channel(base_url: str, raw: dict) -> Channel:
    """Map a single raw channel dict onto a Channel."""
    channel_id = str(raw["channelId"])
    channel_type = (
        ChannelType.RADIO
        if str(raw.get("channelType", "")).lower() in _RADIO_CHANNEL_TYPES
        else ChannelType.TV
    )
    image_url = None
    if raw.get("channelIcon"):
        image_url = f"{service_url(base_url)}?{urlencode({'method': 'channel.icon', 'channel_id': channel_id})}"
    return Channel(
        id=channel_id,
        name=str(raw.get("channelName") or channel_id),
        number=optional_str(raw.get("channelNumber")),
        channel_type=channel_type,
        image_url=image_url,
    )


async def fetch_channels(base_url: str, sid: str) -> list[Channel]:
    """
    Fetch all channels.

    Corresponding request:
    GET <base_url>/service?method=channel.list&sid=<sid>
    """
    payload = unwrap(await call_service(base_url, "channel.list", sid=sid), "list channels")
    return [parse_channel(base_url, raw) for raw in payload.get("channels") or []]


def parse_program(base_url: str, channel_id: str, raw: dict, episode_image: bool = False) -> Program:
    """Map a single raw listing dict onto a Program."""
    genres = tuple(raw.get("genres") or ())
    subtitle = optional_str(raw.get("subtitle"))
    season = parse_int(raw.get("season"))
    episode = parse_int(raw.get("episode"))
    flags = map_genres(genres, has_episode_info=bool(subtitle or season or episode))
    name = str(raw.get("name") or "")
    program_id = str(raw["id"])
    return Program(
        id=program_id,
        channel_id=channel_id,
        name=name,
        start_time=from_unix(raw.get("start")),
        end_time=from_unix(raw.get("end")),
        episode_title=subtitle,
        overview=optional_str(raw.get("description")),
        genres=genres,
        is_series=flags.is_series,
        is_movie=flags.is_movie,
        is_news=flags.is_news,
        is_sports=flags.is_sports,
        is_kids=flags.is_kids,
        season_number=season,
        episode_number=episode,
        rating=optional_str(raw.get("rating")),
        original_air_date=parse_date(raw.get("original")),
        image_url=artwork_url(base_url, name=name, event_id=program_id if episode_image else None),
    )


async def fetch_listings(
    base_url: str,
    sid: str,
    channel_id: str,
    start: datetime,
    end: datetime,
    episode_image: bool = False,
) -> list[Program]:
    """
    Fetch the programme listings of one channel between *start* and *end*.

    Corresponding request:
    GET <base_url>/service?method=channel.listings&sid=<sid>&start=<unix>&end=<unix>&channel_id=<id>
    """
    params = {"start": to_unix(start), "end": to_unix(end), "channel_id": channel_id}
    payload = unwrap(
        await call_service(base_url, "channel.listings", params, sid=sid),
        "list programs",
        identifier=channel_id,
    )
    programs = []
    for raw in payload.get("listings") or []:
        try:
            programs.append(parse_program(base_url, channel_id, raw, episode_image))
        except (KeyError, TypeError) as e:
            _LOGGER.warning("Skipping malformed listing on channel %s: %s", channel_id, e)
    return programs
