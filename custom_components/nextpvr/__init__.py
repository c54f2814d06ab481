import logging

from homeassistant import config_entries, core
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from .api import SessionManager
from .config import NextPvrConfig
from .const import DOMAIN
from .coordinator import NextPvrCoordinator
from .errors import AuthorizationError, ConfigurationError, NextPvrError

_LOGGER = logging.getLogger(__name__)


async def _validate_credentials(base_url: str, pin: str) -> str | None:
    """
    Run one throwaway handshake against the backend.

    Returns None on success, "cannot_connect" when the backend is unreachable,
    or "invalid_auth" when the PIN is missing or rejected.
    """
    session = SessionManager(NextPvrConfig(base_url=base_url, pin=pin))
    try:
        await session.ensure_connection()
    except ConfigurationError as e:
        return "invalid_auth" if e.setting == "pin" else "cannot_connect"
    except AuthorizationError:
        return "invalid_auth"
    except NextPvrError as e:
        _LOGGER.warning("Could not reach NextPVR at %s: %s", base_url, e)
        return "cannot_connect"
    return None


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration."""
    hass.data.setdefault(DOMAIN, {})
    return True


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up the NextPVR backend from a ConfigEntry."""
    config = NextPvrConfig.from_entry(entry.data, entry.options)

    error = await _validate_credentials(config.base_url, config.pin)
    if error == "cannot_connect":
        raise ConfigEntryNotReady(f"Cannot reach NextPVR at {config.base_url}")
    if error == "invalid_auth":
        raise ConfigEntryNotReady("NextPVR rejected the configured PIN")

    coordinator = NextPvrCoordinator(hass, entry)
    await coordinator.async_config_entry_first_refresh()

    entry.runtime_data = coordinator
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )
    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry."""
    coordinator: NextPvrCoordinator | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if coordinator is None:
        coordinator = getattr(entry, "runtime_data", None)
    if coordinator is not None:
        await coordinator.async_shutdown()
    return True
