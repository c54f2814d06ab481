"""
RecordingCache: lazily refreshed view of the backend's completed recordings.

Consumers read MediaItems and RecordingGroups from here; the cache refetches
recordings and channels only when it has been invalidated (by the poller) or
when the client reports a mutation newer than the snapshot.
"""
from __future__ import annotations

import asyncio
import dataclasses
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from .const import (
    EPOCH,
    FOLDER_KIDS,
    FOLDER_MOVIES,
    FOLDER_NEWS,
    FOLDER_OTHERS,
    FOLDER_SERIES_PREFIX,
    FOLDER_SPORTS,
)
from .models import Channel, ChannelType, MediaItem, Recording, RecordingGroup, RecordingStatus

_LOGGER = logging.getLogger(__name__)

# Fixed folders in display order
CATEGORY_FOLDERS = (
    (FOLDER_KIDS, "Kids"),
    (FOLDER_MOVIES, "Movies"),
    (FOLDER_NEWS, "News"),
    (FOLDER_SPORTS, "Sports"),
    (FOLDER_OTHERS, "Others"),
)


@dataclasses.dataclass(frozen=True)
class _Snapshot:
    recordings: tuple[Recording, ...] = ()
    channels: dict[str, Channel] = dataclasses.field(default_factory=dict)
    fetched_at: datetime = EPOCH


def series_folder_id(title: str) -> str:
    digest = hashlib.md5(title.casefold().encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{FOLDER_SERIES_PREFIX}{digest}"


def category_of(recording: Recording) -> str | None:
    """Return the fixed folder a non-series recording belongs to, None for series."""
    if recording.is_series:
        return None
    if recording.is_kids:
        return FOLDER_KIDS
    if recording.is_movie:
        return FOLDER_MOVIES
    if recording.is_news:
        return FOLDER_NEWS
    if recording.is_sports:
        return FOLDER_SPORTS
    return FOLDER_OTHERS


def to_media_item(recording: Recording, channels: dict[str, Channel] | None = None) -> MediaItem:
    """Convert a backend recording to the consumer-facing MediaItem."""
    locator = recording.path or recording.url
    protocol = "http" if locator and locator.lower().startswith("http") else "file"

    channel = (channels or {}).get(recording.channel_id)
    channel_type = channel.channel_type if channel is not None else recording.channel_type

    if recording.is_movie:
        content_type = "movie"
    elif recording.is_series or recording.episode_title:
        content_type = "episode"
    else:
        content_type = "clip"

    live = recording.status is RecordingStatus.IN_PROGRESS
    return MediaItem(
        id=recording.id,
        name=recording.episode_title or recording.name,
        series_name=recording.name if (recording.episode_title or recording.is_series) else None,
        content_type=content_type,
        media_type="audio" if channel_type is ChannelType.RADIO else "video",
        path=locator,
        protocol=protocol,
        runtime=recording.end_time - recording.start_time,
        is_live_stream=live,
        etag=recording.status.value,
        genres=recording.genres,
        image_url=recording.image_url,
        overview=recording.overview,
        official_rating=recording.rating,
        community_rating=recording.community_rating,
        season_number=recording.season_number,
        episode_number=recording.episode_number,
        premiere_date=recording.original_air_date,
        production_year=recording.production_year,
        date_created=recording.start_time,
        date_modified=recording.last_updated,
    )


def _landscape(image_url: str | None) -> str | None:
    if image_url is None:
        return None
    return image_url.replace("=poster", "=landscape")


def build_groups(recordings: tuple[Recording, ...], channels: dict[str, Channel]) -> list[RecordingGroup]:
    """
    Partition *recordings* into series folders followed by the fixed folders.

    Every recording lands in exactly one folder; empty folders are left out.
    """
    ordered = sorted(recordings, key=lambda r: r.start_time)

    series: dict[str, list[Recording]] = {}
    categories: dict[str, list[Recording]] = {folder: [] for folder, _ in CATEGORY_FOLDERS}
    for recording in ordered:
        folder = category_of(recording)
        if folder is None:
            series.setdefault(recording.name.casefold(), []).append(recording)
        else:
            categories[folder].append(recording)

    groups = []
    for key in sorted(series):
        members = series[key]
        last = members[-1]
        groups.append(
            RecordingGroup(
                id=series_folder_id(last.name),
                name=members[0].name,
                items=tuple(to_media_item(r, channels) for r in members),
                image_url=_landscape(last.image_url),
                date_created=last.start_time,
            )
        )

    for folder, name in CATEGORY_FOLDERS:
        members = categories[folder]
        if not members:
            continue
        groups.append(
            RecordingGroup(
                id=folder,
                name=name,
                items=tuple(to_media_item(r, channels) for r in members),
                date_created=members[-1].start_time,
            )
        )
    return groups


class RecordingCache:
    """
    Snapshot of completed recordings plus the channel map used to classify them.

    Readers share one refetch: the first stale read takes the lock and fetches,
    later readers find the fresh snapshot once the lock is released. An
    invalidate() that lands while a fetch is in flight keeps the cache stale.
    """

    def __init__(self, client) -> None:
        self._client = client
        self._snapshot = _Snapshot()
        self._valid = False
        self._generation = 0
        self._lock = asyncio.Lock()

    def invalidate(self) -> None:
        """Force the next read to refetch from the backend."""
        self._generation += 1
        self._valid = False
        _LOGGER.debug("Recording cache invalidated (generation %s)", self._generation)

    @property
    def is_valid(self) -> bool:
        return not self._is_stale()

    def _is_stale(self) -> bool:
        return not self._valid or self._client.last_recording_change > self._snapshot.fetched_at

    async def _current(self) -> _Snapshot:
        if not self._is_stale():
            return self._snapshot
        async with self._lock:
            if not self._is_stale():
                return self._snapshot
            generation = self._generation
            started = datetime.now(timezone.utc)
            recordings = await self._client.get_recordings()
            channels = await self._client.get_channels()
            self._snapshot = _Snapshot(
                recordings=tuple(recordings),
                channels={channel.id: channel for channel in channels},
                fetched_at=started,
            )
            self._valid = generation == self._generation
            _LOGGER.debug("Recording cache refreshed with %s recordings", len(recordings))
            return self._snapshot

    async def get_recordings(self) -> tuple[Recording, ...]:
        return (await self._current()).recordings

    async def get_items(self, predicate: Callable[[Recording], bool] | None = None) -> list[MediaItem]:
        snapshot = await self._current()
        return [
            to_media_item(recording, snapshot.channels)
            for recording in snapshot.recordings
            if predicate is None or predicate(recording)
        ]

    async def get_groups(self) -> list[RecordingGroup]:
        snapshot = await self._current()
        return build_groups(snapshot.recordings, snapshot.channels)

    async def get_folder_items(self, folder_id: str) -> list[MediaItem]:
        for group in await self.get_groups():
            if group.id == folder_id:
                return list(group.items)
        return []

    async def get_latest(self, limit: int | None = None) -> list[MediaItem]:
        snapshot = await self._current()
        newest = sorted(snapshot.recordings, key=lambda r: r.start_time, reverse=True)
        if limit is not None:
            newest = newest[:limit]
        return [to_media_item(recording, snapshot.channels) for recording in newest]

    async def delete_item(self, recording_id: str) -> None:
        # The client stamps its change marker, which makes the next read refetch
        await self._client.delete_recording(recording_id)

    def cache_key(self, now: datetime | None = None) -> str:
        """Key that changes every five minutes and whenever recordings change."""
        if now is None:
            now = datetime.now()
        changed = (self._client.last_recording_change - EPOCH) // timedelta(microseconds=1)
        return f"{now.timetuple().tm_yday}-{now.hour}-{now.minute // 5}-{changed}"
