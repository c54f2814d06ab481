"""
DataUpdateCoordinator for the NextPVR integration.

Responsibilities:
- Own the NextPvrClient and RecordingCache for the lifetime of a config entry.
- Probe recording.lastupdated every POLL_INTERVAL seconds while a session is
  active.
- When the backend reports a newer change, invalidate the cache and fire
  EVENT_CONTENT_CHANGED on the HA bus exactly once.
- Cancel the in-flight probe on shutdown so nothing fires afterwards.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import NextPvrClient
from .config import NextPvrConfig
from .const import DOMAIN, EPOCH, EVENT_CONTENT_CHANGED, POLL_INTERVAL
from .coordinator_data import CoordinatorData
from .errors import NextPvrError
from .recording_cache import RecordingCache

_LOGGER = logging.getLogger(__name__)


class NextPvrCoordinator(DataUpdateCoordinator[CoordinatorData]):
    """
    Change poller for one NextPVR backend.

    A tick never raises for backend trouble: failures are logged and reported
    through ``data.backend_online``.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        client: NextPvrClient | None = None,
    ) -> None:
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=POLL_INTERVAL),
            always_update=False,
        )
        self.config = NextPvrConfig.from_entry(config_entry.data, config_entry.options)
        self.client = client if client is not None else NextPvrClient(self.config)
        self.cache = RecordingCache(self.client)

        self._poll_task: asyncio.Task | None = None
        self._shutting_down = False

        self.data = CoordinatorData()

    # ------------------------------------------------------------------
    # HA entry points
    # ------------------------------------------------------------------

    async def _async_setup(self) -> None:
        """Open the first session so the poller has something to watch."""
        try:
            await self.client.ensure_connection()
        except NextPvrError as exc:
            raise UpdateFailed(f"NextPVR connection failed: {exc}") from exc

    async def _async_update_data(self) -> CoordinatorData:
        """Called by HA on every update_interval tick."""
        if self._shutting_down:
            return self.data

        self._poll_task = self.hass.async_create_task(self._poll())
        try:
            return await self._poll_task
        except asyncio.CancelledError:
            if self._shutting_down:
                return self.data
            raise
        finally:
            self._poll_task = None

    async def _poll(self) -> CoordinatorData:
        if not self.client.is_active:
            _LOGGER.debug("No NextPVR session yet, skipping change probe")
            return self.data

        try:
            backend_update = await self.client.get_last_update()
        except NextPvrError as exc:
            _LOGGER.warning("NextPVR change probe failed: %s", exc)
            return dataclasses.replace(self.data, backend_online=False)

        if backend_update == EPOCH:
            _LOGGER.info("NextPVR server offline")
            return dataclasses.replace(self.data, backend_online=False)

        if backend_update > self.data.last_update:
            _LOGGER.debug("Recordings changed at %s", backend_update)
            self.cache.invalidate()
            if not self._shutting_down:
                self.hass.bus.async_fire(
                    EVENT_CONTENT_CHANGED,
                    {"entry_id": self.config_entry.entry_id, "last_update": backend_update.isoformat()},
                )
            return CoordinatorData(last_update=backend_update, backend_online=True)

        _LOGGER.debug("No new recordings since %s", self.data.last_update)
        if not self.data.backend_online:
            return dataclasses.replace(self.data, backend_online=True)
        return self.data

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Stop polling and wait for an in-flight probe to finish cancelling."""
        self._shutting_down = True
        task = self._poll_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._poll_task = None
        await super().async_shutdown()
