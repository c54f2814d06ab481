"""Config flow for the NextPVR integration."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from . import _validate_credentials
from .const import (
    CONF_BASE_URL,
    CONF_ENABLE_DEBUG_LOGGING,
    CONF_ENTRY_NAME,
    CONF_NEW_EPISODES,
    CONF_PIN,
    CONF_POST_PADDING,
    CONF_PRE_PADDING,
    CONF_RECORDING_DEFAULT,
    DEFAULT_BASE_URL,
    DEFAULT_PIN,
    DEFAULT_RECORDING_DEFAULT,
    DOMAIN,
    RECURRING_TYPE_NAMES,
)

_LOGGER = logging.getLogger(__name__)

padding = vol.All(vol.Coerce(int), vol.Range(min=0))
url_validator = vol.All(cv.string, vol.Length(min=1), vol.Match(r"^https?://"))
recording_default = vol.In([str(t) for t in RECURRING_TYPE_NAMES])

DEFAULTS: Dict[str, Any] = {
    CONF_ENTRY_NAME: "NextPVR",
    CONF_BASE_URL: DEFAULT_BASE_URL,
    CONF_PIN: DEFAULT_PIN,
    CONF_ENABLE_DEBUG_LOGGING: False,
    CONF_NEW_EPISODES: False,
    CONF_RECORDING_DEFAULT: DEFAULT_RECORDING_DEFAULT,
    CONF_PRE_PADDING: 0,
    CONF_POST_PADDING: 0,
}


def build_schema(defaults: Dict[str, Any]) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_ENTRY_NAME, default=defaults[CONF_ENTRY_NAME]): cv.string,
            vol.Required(CONF_BASE_URL, default=defaults[CONF_BASE_URL]): url_validator,
            vol.Required(CONF_PIN, default=defaults[CONF_PIN]): cv.string,
            vol.Required(CONF_RECORDING_DEFAULT, default=defaults[CONF_RECORDING_DEFAULT]): recording_default,
            vol.Required(CONF_NEW_EPISODES, default=defaults[CONF_NEW_EPISODES]): cv.boolean,
            vol.Required(CONF_PRE_PADDING, default=defaults[CONF_PRE_PADDING]): padding,
            vol.Required(CONF_POST_PADDING, default=defaults[CONF_POST_PADDING]): padding,
            vol.Required(CONF_ENABLE_DEBUG_LOGGING, default=defaults[CONF_ENABLE_DEBUG_LOGGING]): cv.boolean,
        }
    )


CONFIG_SCHEMA = build_schema(DEFAULTS)


def _check_required(user_input: Dict[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not user_input.get(CONF_ENTRY_NAME):
        errors['base'] = 'entry_name_required'
    if not user_input.get(CONF_BASE_URL):
        errors['base'] = 'base_url_required'
    if not user_input.get(CONF_PIN):
        errors['base'] = 'pin_required'
    return errors


class CustomFlow(config_entries.ConfigFlow, domain=DOMAIN):
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            self.data = dict(user_input)
            self.data[CONF_BASE_URL] = (self.data.get(CONF_BASE_URL) or "").strip().rstrip("/")
            errors = _check_required(self.data)
            if not errors:
                error = await _validate_credentials(self.data[CONF_BASE_URL], self.data[CONF_PIN])
                if error:
                    errors['base'] = error
            if not errors:
                return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handles options flow for the component."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    def _current(self) -> Dict[str, Any]:
        current = dict(DEFAULTS)
        current.update(self._entry.data)
        current.update(self._entry.options)
        return current

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}
        if user_input is not None:
            new_data = dict(user_input)
            new_data[CONF_BASE_URL] = (new_data.get(CONF_BASE_URL) or "").strip().rstrip("/")
            errors = _check_required(new_data)
            if not errors:
                error = await _validate_credentials(new_data[CONF_BASE_URL], new_data[CONF_PIN])
                if error:
                    errors['base'] = error
            if not errors:
                # Rename the entry in the UI
                self.hass.config_entries.async_update_entry(
                    self._entry,
                    title=new_data[CONF_ENTRY_NAME],
                )
                return self.async_create_entry(title=f"{new_data[CONF_ENTRY_NAME]}", data=new_data)

        return self.async_show_form(step_id="init", data_schema=build_schema(self._current()), errors=errors)
