"""
Stream descriptors for live channels and recordings.

NextPVR serves everything as an MPEG transport stream; the elementary stream
layout inside the container is unknown up front, so both descriptors announce
one video and one audio stream with index -1 and leave probing to the player.
"""
from __future__ import annotations

import logging
import os
from typing import Callable
from urllib.parse import urlencode

from .const import CLIENT_NAME
from .errors import RecordingNotFoundError
from .models import MediaStream, Recording, RecordingStatus, StreamDescriptor

_LOGGER = logging.getLogger(__name__)

CONTAINER = "mpegts"

# Interlaced is assumed for video since it is unknown; players deinterlace if needed
DEFAULT_STREAMS = (
    MediaStream(type="video", index=-1, is_interlaced=True),
    MediaStream(type="audio", index=-1),
)


def live_stream(base_url: str, channel_id: str, sid: str, stream_number: int) -> StreamDescriptor:
    """Descriptor for watching *channel_id* live."""
    query = urlencode({"channeloid": channel_id, "client": f"{CLIENT_NAME}.{stream_number}", "sid": sid})
    return StreamDescriptor(
        id=str(stream_number),
        path=f"{base_url}/live?{query}",
        protocol="http",
        container=CONTAINER,
        streams=DEFAULT_STREAMS,
        supports_probing=True,
        is_infinite_stream=True,
    )


def recording_stream(
    recording: Recording,
    file_exists: Callable[[str], bool] = os.path.isfile,
) -> StreamDescriptor:
    """
    Descriptor for playing back *recording*.

    A stream URL wins; otherwise the local file is used if it really exists.

    Raises:
        RecordingNotFoundError: Neither locator is usable
    """
    in_progress = recording.status is RecordingStatus.IN_PROGRESS
    runtime = recording.end_time - recording.start_time
    if recording.url:
        _LOGGER.info("Recording %s streams from %s", recording.id, recording.url)
        return StreamDescriptor(
            id=recording.id,
            path=recording.url,
            protocol="http",
            container=CONTAINER,
            streams=DEFAULT_STREAMS,
            is_infinite_stream=in_progress,
            runtime=runtime,
        )

    if recording.path and file_exists(recording.path):
        _LOGGER.info("Recording %s plays from %s", recording.id, recording.path)
        return StreamDescriptor(
            id=recording.id,
            path=recording.path,
            protocol="file",
            container=CONTAINER,
            streams=DEFAULT_STREAMS,
            is_infinite_stream=in_progress,
            runtime=runtime,
        )

    _LOGGER.error("No stream exists for recording %s", recording.id)
    raise RecordingNotFoundError(recording.id)
