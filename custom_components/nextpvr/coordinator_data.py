"""
CoordinatorData: immutable snapshot of what the change poller knows.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime

from .const import EPOCH


@dataclasses.dataclass(frozen=True)
class CoordinatorData:
    """
    Poller state shared with listeners.

    Always replace via dataclasses.replace(); never mutate in place.
    """

    # Highest recording.lastupdated value seen so far
    last_update: datetime = EPOCH

    # False once the backend answered with the offline sentinel or failed
    backend_online: bool = True
