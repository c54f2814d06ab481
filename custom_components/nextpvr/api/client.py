"""
NextPvrClient: one object per configured backend.

Every public coroutine passes through SessionManager.ensure_connection()
before touching the network, turns backend failure flags into
BackendOperationError and transport problems into TransportError (which
also marks the session stale so the next call re-authenticates).

Successful mutations stamp ``last_recording_change`` before returning so
the recording cache and poller see the change on their next look.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, TypeVar

from ..config import NextPvrConfig
from ..const import EPOCH, SETTING_ARTWORK_FROM_SD
from ..errors import BackendOperationError, RecordingNotFoundError, TransportError
from ..models import (
    BackendStatus,
    Channel,
    Program,
    Recording,
    SeriesTimer,
    StreamDescriptor,
    Timer,
    TimerDefaults,
)
from ..streams import live_stream, recording_stream
from ..utils import debug_information
from . import channels, recordings, recurring, settings
from .auth import SessionManager

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class NextPvrClient:
    """Authenticated access to every NextPVR backend operation the integration uses."""

    def __init__(self, config: NextPvrConfig) -> None:
        self.config = config
        self.session = SessionManager(config, on_login=self._after_login)
        self.last_recording_change: datetime = EPOCH
        self.timer_defaults: TimerDefaults | None = None
        self._live_streams = 0

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def is_active(self) -> bool:
        return self.session.is_active

    def _debug(self, msg: str, *args) -> None:
        debug_information(_LOGGER, self.config.enable_debug_logging, msg, *args)

    async def ensure_connection(self) -> str:
        return await self.session.ensure_connection()

    async def _call(self, operation: Callable[[str], Awaitable[T]]) -> T:
        sid = await self.session.ensure_connection()
        try:
            return await operation(sid)
        except TransportError:
            self.session.mark_stale()
            raise

    def _recording_changed(self) -> None:
        self.last_recording_change = datetime.now(timezone.utc)

    async def _after_login(self, sid: str) -> None:
        """Cache backend-side defaults once a new session is established."""
        try:
            self.timer_defaults = await settings.fetch_default_settings(self.base_url, sid)
            artwork = await settings.fetch_setting(self.base_url, sid, SETTING_ARTWORK_FROM_SD)
        except (BackendOperationError, TransportError) as e:
            _LOGGER.warning("Failed to load NextPVR default settings: %s", e)
            return
        self.config.get_episode_image = (artwork or "").lower() == "true"
        self._debug("Backend defaults: %s, episode artwork: %s", self.timer_defaults, self.config.get_episode_image)

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def get_channels(self) -> list[Channel]:
        _LOGGER.info("Retrieving all channels")
        result = await self._call(lambda sid: channels.fetch_channels(self.base_url, sid))
        self._debug("Received %s channels", len(result))
        return result

    async def get_recordings(self, filter_: str = recordings.FILTER_READY) -> list[Recording]:
        _LOGGER.info("Retrieving recordings (filter %s)", filter_)
        result = await self._call(
            lambda sid: recordings.fetch_recordings(
                self.base_url, sid, filter_, self.config.get_episode_image
            )
        )
        self._debug("Received %s recordings", len(result))
        return result

    async def get_timers(self) -> list[Timer]:
        _LOGGER.info("Retrieving pending recordings")
        return await self._call(lambda sid: recordings.fetch_timers(self.base_url, sid))

    async def get_series_timers(self) -> list[SeriesTimer]:
        _LOGGER.info("Retrieving recurring recordings")
        return await self._call(lambda sid: recurring.fetch_series_timers(self.base_url, sid))

    async def get_programs(self, channel_id: str, start: datetime, end: datetime) -> list[Program]:
        _LOGGER.info("Retrieving programs of channel %s between %s and %s", channel_id, start, end)
        return await self._call(
            lambda sid: channels.fetch_listings(
                self.base_url, sid, channel_id, start, end, self.config.get_episode_image
            )
        )

    async def get_backend_setting(self, key: str) -> str | None:
        _LOGGER.info("Retrieving backend setting %s", key)
        return await self._call(lambda sid: settings.fetch_setting(self.base_url, sid, key))

    async def get_default_settings(self) -> TimerDefaults:
        defaults = await self._call(lambda sid: settings.fetch_default_settings(self.base_url, sid))
        self.timer_defaults = defaults
        return defaults

    async def get_status_info(self) -> BackendStatus:
        return await self._call(lambda sid: settings.fetch_status(self.base_url, sid))

    async def get_last_update(self) -> datetime:
        """
        Return the backend's last recording change, or EPOCH when it cannot tell.

        EPOCH (backend offline or sid rejected) marks the session stale so the
        next authenticated call runs a full handshake; any other answer keeps
        the session alive.
        """
        try:
            sid = await self.session.ensure_connection()
            marker = await settings.fetch_last_updated(self.base_url, sid)
        except (TransportError, BackendOperationError) as e:
            _LOGGER.debug("Last update probe failed: %s", e)
            self.session.mark_stale()
            return EPOCH

        if marker == EPOCH:
            self.session.mark_stale()
        else:
            self.session.touch()
        self._debug("Last update time %s", int(marker.timestamp()))
        return marker

    def get_new_timer_defaults(self) -> SeriesTimer:
        """Defaults for a new series timer: configured padding, backend rule flags."""
        backend = self.timer_defaults or TimerDefaults()
        return SeriesTimer(
            id=None,
            channel_id=None,
            program_id=None,
            name="",
            record_any_channel=backend.record_any_channel,
            record_any_time=backend.record_any_time,
            record_new_only=backend.record_new_only,
            pre_padding_seconds=self.config.pre_padding_seconds,
            post_padding_seconds=self.config.post_padding_seconds,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def delete_recording(self, recording_id: str) -> None:
        _LOGGER.info("Deleting recording %s", recording_id)
        await self._call(lambda sid: recordings.delete_recording(self.base_url, sid, recording_id))
        self._recording_changed()
        _LOGGER.info("Deleted recording %s", recording_id)

    async def cancel_timer(self, timer_id: str) -> None:
        _LOGGER.info("Cancelling pending recording %s", timer_id)
        await self._call(
            lambda sid: recordings.delete_recording(self.base_url, sid, timer_id, action="cancel the recording")
        )
        self._recording_changed()
        _LOGGER.info("Cancelled pending recording %s", timer_id)

    async def create_timer(self, timer: Timer) -> None:
        _LOGGER.info("Creating timer on channel %s for %s", timer.channel_id, timer.name)
        self._debug("Timer settings: program %s, channel %s, name %s", timer.program_id, timer.channel_id, timer.name)
        await self._call(lambda sid: recordings.save_recording(self.base_url, sid, timer))
        self._recording_changed()
        _LOGGER.info("Created timer for program %s", timer.program_id)

    async def update_timer(self, timer: Timer) -> None:
        _LOGGER.info("Updating timer %s on channel %s", timer.id, timer.channel_id)
        await self._call(lambda sid: recordings.save_recording(self.base_url, sid, timer, update=True))
        self._recording_changed()
        _LOGGER.info("Updated timer %s for program %s", timer.id, timer.program_id)

    async def create_series_timer(self, series_timer: SeriesTimer) -> None:
        _LOGGER.info("Creating series timer on channel %s for %s", series_timer.channel_id, series_timer.name)
        params = recurring.create_params(series_timer, self.config.recurring_type, self.config.new_episodes)
        self._debug("Series timer parameters: %s", params)
        await self._call(
            lambda sid: recurring.save_series_timer(
                self.base_url, sid, params, series_timer.id or series_timer.program_id
            )
        )
        self._recording_changed()
        _LOGGER.info("Created series timer for program %s", series_timer.program_id)

    async def update_series_timer(self, series_timer: SeriesTimer) -> None:
        _LOGGER.info("Updating series timer %s for %s", series_timer.id, series_timer.name)
        params = recurring.update_params(series_timer)
        self._debug("Series timer parameters: %s", params)
        await self._call(lambda sid: recurring.save_series_timer(self.base_url, sid, params, series_timer.id))
        self._recording_changed()
        _LOGGER.info("Updated series timer %s", series_timer.id)

    async def cancel_series_timer(self, series_timer_id: str) -> None:
        _LOGGER.info("Cancelling series timer %s", series_timer_id)
        await self._call(lambda sid: recurring.delete_series_timer(self.base_url, sid, series_timer_id))
        self._recording_changed()
        _LOGGER.info("Cancelled series timer %s", series_timer_id)

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    async def get_channel_stream(self, channel_id: str) -> StreamDescriptor:
        sid = await self.session.ensure_connection()
        self._live_streams += 1
        stream = live_stream(self.base_url, channel_id, sid, self._live_streams)
        _LOGGER.info("Streaming channel %s as stream %s", channel_id, stream.id)
        return stream

    async def get_recording_stream(
        self, recording_id: str, known: Iterable[Recording] | None = None
    ) -> StreamDescriptor:
        """
        Resolve how to play *recording_id*.

        *known* lets callers pass an already fetched snapshot; without it the
        recording list is fetched from the backend.
        """
        if known is None:
            known = await self.get_recordings()
        recording = next((r for r in known if r.id.lower() == recording_id.lower()), None)
        if recording is None:
            _LOGGER.error("Recording %s is unknown to the backend", recording_id)
            raise RecordingNotFoundError(recording_id)
        return recording_stream(recording)
