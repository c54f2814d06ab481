"""
Low-level recurring recording (series timer) operations on the NextPVR backend.

Responsible for:
- Listing recurring rules (recording.recurring.list)
- Building recording.recurring.save parameters for new and updated rules
- Deleting recurring rules (recording.recurring.delete)

The backend only knows a handful of recurrence types plus keyword rules, so
the richer rule shape (any channel / any time / new only / weekdays) is
folded onto those types here.
"""
from __future__ import annotations

import logging
import re

from ..const import (
    RECURRING_ALL_ANY_TIME,
    RECURRING_EVERY_DAY,
    RECURRING_KEYWORD,
    RECURRING_NEW_ANY_TIME,
    RECURRING_SPECIFIC_DAYS,
    WEEKDAYS,
)
from ..models import SeriesTimer
from ..requests import call_service, unwrap
from ..utils import from_unix, optional_str, parse_bool, parse_int

_LOGGER = logging.getLogger(__name__)

_TIMESLOT_TYPES = (RECURRING_SPECIFIC_DAYS, RECURRING_EVERY_DAY)


def escape_title(name: str) -> str:
    """Quote a title for the backend's keyword query syntax."""
    return name.replace("'", "''")


def keyword_params(name: str) -> dict:
    title = escape_title(name)
    return {"name": title, "keyword": f"title like '{title}'"}


def derive_recurring_type(series_timer: SeriesTimer) -> int:
    """
    Fold a rule onto a backend recurrence type.

    any channel                 -> keyword rule
    any time, new episodes only -> new episodes, any time
    any time                    -> all episodes, any time
    all seven days              -> this timeslot, every day
    otherwise                   -> this timeslot, specific days
    """
    if series_timer.record_any_channel:
        return RECURRING_KEYWORD
    if series_timer.record_any_time:
        return RECURRING_NEW_ANY_TIME if series_timer.record_new_only else RECURRING_ALL_ANY_TIME
    if len(set(series_timer.days)) == 7:
        return RECURRING_EVERY_DAY
    return RECURRING_SPECIFIC_DAYS


def _padding_params(series_timer: SeriesTimer) -> dict:
    return {
        "pre_padding": series_timer.pre_padding_seconds // 60,
        "post_padding": series_timer.post_padding_seconds // 60,
        "keep": series_timer.keep_up_to,
    }


def create_params(series_timer: SeriesTimer, recurring_type: int, new_episodes: bool = False) -> dict:
    """
    Parameters for a new rule in the configured *recurring_type* mode.

    Keyword mode matches every programme with the same title; the other modes
    recur off the selected programme's identifier.
    """
    params = _padding_params(series_timer)
    if recurring_type == RECURRING_KEYWORD:
        params.update(keyword_params(series_timer.name))
    else:
        params["event_id"] = series_timer.program_id
        params["recurring_type"] = recurring_type
    if series_timer.record_new_only or new_episodes:
        params["only_new"] = True
    if recurring_type in _TIMESLOT_TYPES:
        params["timeslot"] = True
    return params


def update_params(series_timer: SeriesTimer) -> dict:
    """Parameters for updating an existing rule; the type is derived from its shape."""
    params = _padding_params(series_timer)
    params["recurring_id"] = series_timer.id
    recurring_type = derive_recurring_type(series_timer)
    if recurring_type == RECURRING_KEYWORD:
        params.update(keyword_params(series_timer.name))
    else:
        params["recurring_type"] = recurring_type
    if series_timer.record_new_only:
        params["only_new"] = True
    return params


def parse_days(value) -> list[str]:
    """Parse the backend's weekday list ("MONDAY:WEDNESDAY", "Mon,Wed", ...)."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        tokens = [str(v) for v in value]
    else:
        tokens = re.split(r"[\s:,;|]+", str(value))
    days = []
    for token in tokens:
        prefix = token.strip()[:3].lower()
        for day in WEEKDAYS:
            if prefix and day.lower().startswith(prefix) and day not in days:
                days.append(day)
    return days


def parse_series_timer(raw: dict) -> SeriesTimer:
    """Map a raw recurring rule onto a SeriesTimer."""
    recurring_type = parse_int(raw.get("type"))
    any_channel = recurring_type == RECURRING_KEYWORD or bool(raw.get("keyword")) or parse_bool(raw.get("allChannels"))
    if recurring_type == RECURRING_EVERY_DAY:
        days = list(WEEKDAYS)
    else:
        days = parse_days(raw.get("days"))
    return SeriesTimer(
        id=str(raw["id"]),
        channel_id=optional_str(raw.get("channelID")),
        program_id=optional_str(raw.get("epgEventId")),
        name=str(raw.get("epgTitle") or raw.get("name") or ""),
        record_any_channel=any_channel,
        record_any_time=recurring_type in (RECURRING_NEW_ANY_TIME, RECURRING_ALL_ANY_TIME),
        record_new_only=recurring_type == RECURRING_NEW_ANY_TIME or parse_bool(raw.get("onlyNewEpisodes")),
        days=days,
        pre_padding_seconds=(parse_int(raw.get("prePadding")) or 0) * 60,
        post_padding_seconds=(parse_int(raw.get("postPadding")) or 0) * 60,
        keep_up_to=parse_int(raw.get("keep")) or 0,
        start_time=from_unix(raw.get("startTime")),
        end_time=from_unix(raw.get("endTime")),
    )


async def fetch_series_timers(base_url: str, sid: str) -> list[SeriesTimer]:
    """
    Fetch all recurring rules.

    Corresponding request:
    GET <base_url>/service?method=recording.recurring.list&sid=<sid>
    """
    payload = unwrap(
        await call_service(base_url, "recording.recurring.list", sid=sid),
        "list recurring recordings",
    )
    timers = []
    for raw in payload.get("recurrings") or []:
        try:
            timers.append(parse_series_timer(raw))
        except (KeyError, TypeError) as e:
            _LOGGER.warning("Skipping malformed recurring entry %s: %s", raw.get("id"), e)
    return timers


async def save_series_timer(base_url: str, sid: str, params: dict, identifier: str | None) -> None:
    """
    Create or update a recurring rule.

    Corresponding request:
    GET <base_url>/service?method=recording.recurring.save&sid=<sid>&pre_padding=<min>&post_padding=<min>&keep=<n>&...
    """
    unwrap(
        await call_service(base_url, "recording.recurring.save", params, sid=sid, strict=True),
        "create or update the recurring recording",
        identifier=identifier,
    )


async def delete_series_timer(base_url: str, sid: str, recurring_id: str) -> None:
    """
    Delete a recurring rule.

    Corresponding request:
    GET <base_url>/service?method=recording.recurring.delete&recurring_id=<id>&sid=<sid>
    """
    unwrap(
        await call_service(
            base_url, "recording.recurring.delete", {"recurring_id": recurring_id}, sid=sid, strict=True
        ),
        "cancel the recurring recording",
        identifier=recurring_id,
    )
