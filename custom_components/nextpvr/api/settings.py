"""
Low-level settings, status and change-marker queries on the NextPVR backend.
"""
from __future__ import annotations

import logging
from datetime import datetime

from ..const import EPOCH
from ..models import BackendStatus, TimerDefaults, TunerInfo
from ..requests import call_service, unwrap
from ..utils import from_unix, optional_str, parse_bool, parse_int

_LOGGER = logging.getLogger(__name__)


async def fetch_last_updated(base_url: str, sid: str) -> datetime:
    """
    Fetch the time of the last change to the recordings.

    Returns EPOCH when the backend reports nothing usable.

    Corresponding request:
    GET <base_url>/service?method=recording.lastupdated&ignore_resume=true&sid=<sid>
    """
    payload = unwrap(
        await call_service(base_url, "recording.lastupdated", {"ignore_resume": True}, sid=sid),
        "get the last update time",
    )
    value = parse_int(payload.get("last_updated"))
    if not value:
        return EPOCH
    return from_unix(value)


async def fetch_setting(base_url: str, sid: str, key: str) -> str | None:
    """
    Fetch one named backend setting.

    Corresponding request:
    GET <base_url>/service?method=setting.get&key=<key>&sid=<sid>
    """
    payload = unwrap(
        await call_service(base_url, "setting.get", {"key": key}, sid=sid),
        "get the backend setting",
        identifier=key,
    )
    return optional_str(payload.get("value"))


def _first(payload: dict, *keys, default=None):
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def parse_timer_defaults(payload: dict) -> TimerDefaults:
    return TimerDefaults(
        pre_padding_seconds=(parse_int(_first(payload, "prePadding", "pre_padding_min")) or 0) * 60,
        post_padding_seconds=(parse_int(_first(payload, "postPadding", "post_padding_min")) or 0) * 60,
        record_any_channel=parse_bool(_first(payload, "allChannels", default=False)),
        record_any_time=parse_bool(_first(payload, "recordAnyTimeslot", default=False)),
        record_new_only=parse_bool(_first(payload, "onlyNew", "onlyNewEpisodes", default=False)),
    )


async def fetch_default_settings(base_url: str, sid: str) -> TimerDefaults:
    """
    Fetch the backend's scheduling defaults.

    Corresponding request:
    GET <base_url>/service?method=setting.list&sid=<sid>
    """
    payload = unwrap(await call_service(base_url, "setting.list", sid=sid), "list backend settings")
    return parse_timer_defaults(payload)


def parse_tuners(payload: dict) -> tuple[TunerInfo, ...]:
    tuners = []
    for raw in payload.get("tuners") or []:
        tuners.append(
            TunerInfo(
                name=str(_first(raw, "tunerName", "name", default="")),
                status=str(_first(raw, "tunerStatus", "status", default="")),
                recordings=tuple(str(r) for r in raw.get("recordings") or ()),
            )
        )
    return tuple(tuners)


async def fetch_status(base_url: str, sid: str) -> BackendStatus:
    """
    Fetch the backend version and tuner status.

    Corresponding requests:
    GET <base_url>/service?method=setting.version&sid=<sid>
    GET <base_url>/service?method=system.status&sid=<sid>
    """
    version = unwrap(await call_service(base_url, "setting.version", sid=sid), "get the backend version")
    status = unwrap(await call_service(base_url, "system.status", sid=sid), "get the backend status")
    return BackendStatus(
        version=optional_str(_first(version, "readableVersion", "version")),
        has_update_available=parse_bool(_first(version, "updateAvailable", default=False)),
        tuners=parse_tuners(status),
    )
