"""Typed view over the config entry data and options."""
from __future__ import annotations

import dataclasses
from typing import Any, Mapping

from .const import (
    CONF_BASE_URL,
    CONF_ENABLE_DEBUG_LOGGING,
    CONF_NEW_EPISODES,
    CONF_PIN,
    CONF_POST_PADDING,
    CONF_PRE_PADDING,
    CONF_RECORDING_DEFAULT,
    DEFAULT_RECORDING_DEFAULT,
)


@dataclasses.dataclass
class NextPvrConfig:
    """Settings the backend client needs, resolved from a config entry."""

    base_url: str = ""
    pin: str = ""
    enable_debug_logging: bool = False
    new_episodes: bool = False
    recording_default: str = DEFAULT_RECORDING_DEFAULT
    pre_padding_seconds: int = 0
    post_padding_seconds: int = 0

    # Learnt from the backend after login, not user-editable
    get_episode_image: bool = False

    def __post_init__(self) -> None:
        self.base_url = (self.base_url or "").strip().rstrip("/")

    @property
    def recurring_type(self) -> int:
        """The configured recurring mode as an int, falling back to the default."""
        try:
            return int(self.recording_default)
        except (TypeError, ValueError):
            return int(DEFAULT_RECORDING_DEFAULT)

    @classmethod
    def from_entry(cls, data: Mapping[str, Any], options: Mapping[str, Any] | None = None) -> "NextPvrConfig":
        """Build the config from entry data, letting options override it."""
        merged = dict(data)
        merged.update(options or {})
        return cls(
            base_url=merged.get(CONF_BASE_URL, ""),
            pin=str(merged.get(CONF_PIN, "") or ""),
            enable_debug_logging=bool(merged.get(CONF_ENABLE_DEBUG_LOGGING, False)),
            new_episodes=bool(merged.get(CONF_NEW_EPISODES, False)),
            recording_default=str(merged.get(CONF_RECORDING_DEFAULT, DEFAULT_RECORDING_DEFAULT)),
            pre_padding_seconds=int(merged.get(CONF_PRE_PADDING, 0) or 0),
            post_padding_seconds=int(merged.get(CONF_POST_PADDING, 0) or 0),
        )
