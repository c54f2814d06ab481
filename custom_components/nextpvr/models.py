"""
Domain models for the NextPVR integration.

Pure data classes describing channels, recordings, timers and the items the
recording cache hands out.  No HTTP, API logic or Home Assistant imports here.
"""
from __future__ import annotations

import dataclasses
import enum
from datetime import date, datetime, timedelta


class ChannelType(enum.Enum):
    TV = "tv"
    RADIO = "radio"


class RecordingStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class Channel:
    """Representation of a single NextPVR channel."""

    id: str
    name: str
    number: str | None = None
    channel_type: ChannelType = ChannelType.TV
    image_url: str | None = None

    @property
    def has_image(self) -> bool:
        return self.image_url is not None


@dataclasses.dataclass(frozen=True)
class Recording:
    """
    A recording as last reported by the backend.

    Instances are immutable and replaced wholesale on every cache refresh.
    Exactly one of ``path`` / ``url`` is expected to be set.
    """

    id: str
    channel_id: str
    name: str
    start_time: datetime
    end_time: datetime
    status: RecordingStatus
    episode_title: str | None = None
    path: str | None = None
    url: str | None = None
    overview: str | None = None
    is_series: bool = False
    is_movie: bool = False
    is_news: bool = False
    is_sports: bool = False
    is_kids: bool = False
    image_url: str | None = None
    genres: tuple[str, ...] = ()
    program_id: str | None = None
    series_timer_id: str | None = None
    season_number: int | None = None
    episode_number: int | None = None
    rating: str | None = None
    community_rating: float | None = None
    original_air_date: date | None = None
    production_year: int | None = None
    channel_type: ChannelType = ChannelType.TV
    last_updated: datetime | None = None


@dataclasses.dataclass
class Timer:
    """A pending single recording."""

    id: str | None
    channel_id: str
    program_id: str
    name: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    overview: str | None = None
    pre_padding_seconds: int = 0
    post_padding_seconds: int = 0
    status: RecordingStatus = RecordingStatus.PENDING
    series_timer_id: str | None = None


@dataclasses.dataclass
class SeriesTimer:
    """A recurring recording rule."""

    id: str | None
    channel_id: str | None
    program_id: str | None
    name: str
    record_any_channel: bool = False
    record_any_time: bool = False
    record_new_only: bool = False
    days: list[str] = dataclasses.field(default_factory=list)
    pre_padding_seconds: int = 0
    post_padding_seconds: int = 0
    keep_up_to: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None


@dataclasses.dataclass(frozen=True)
class Program:
    """A single EPG listing entry."""

    id: str
    channel_id: str
    name: str
    start_time: datetime
    end_time: datetime
    episode_title: str | None = None
    overview: str | None = None
    genres: tuple[str, ...] = ()
    is_series: bool = False
    is_movie: bool = False
    is_news: bool = False
    is_sports: bool = False
    is_kids: bool = False
    season_number: int | None = None
    episode_number: int | None = None
    rating: str | None = None
    original_air_date: date | None = None
    image_url: str | None = None


@dataclasses.dataclass(frozen=True)
class TimerDefaults:
    """Scheduling defaults configured on the backend (setting.list)."""

    pre_padding_seconds: int = 0
    post_padding_seconds: int = 0
    record_any_channel: bool = False
    record_any_time: bool = False
    record_new_only: bool = False


@dataclasses.dataclass(frozen=True)
class TunerInfo:
    name: str
    status: str
    recordings: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class BackendStatus:
    version: str | None
    has_update_available: bool
    tuners: tuple[TunerInfo, ...] = ()


@dataclasses.dataclass(frozen=True)
class MediaStream:
    type: str
    # -1: the index inside the container is unknown
    index: int = -1
    is_interlaced: bool = False


@dataclasses.dataclass(frozen=True)
class StreamDescriptor:
    """Where and how to play a channel or recording."""

    id: str
    path: str
    protocol: str
    container: str = "mpegts"
    streams: tuple[MediaStream, ...] = ()
    supports_probing: bool = False
    is_infinite_stream: bool = False
    runtime: timedelta | None = None


@dataclasses.dataclass(frozen=True)
class MediaItem:
    """Consumer-facing view of a recording."""

    id: str
    name: str
    series_name: str | None
    content_type: str
    media_type: str
    path: str | None
    protocol: str
    runtime: timedelta
    is_live_stream: bool
    etag: str
    genres: tuple[str, ...] = ()
    image_url: str | None = None
    overview: str | None = None
    official_rating: str | None = None
    community_rating: float | None = None
    season_number: int | None = None
    episode_number: int | None = None
    premiere_date: date | None = None
    production_year: int | None = None
    date_created: datetime | None = None
    date_modified: datetime | None = None


@dataclasses.dataclass(frozen=True)
class RecordingGroup:
    """A folder of media items (one series, or a fixed category)."""

    id: str
    name: str
    items: tuple[MediaItem, ...]
    image_url: str | None = None
    date_created: datetime | None = None
