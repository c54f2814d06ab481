"""
Exception hierarchy for the NextPVR integration.

Every failure raised by the backend client derives from NextPvrError so the
coordinator and setup code can catch the whole family in one place, while
callers that care can still tell transient problems (TransportError) from
permanent ones.
"""


class NextPvrError(Exception):
    """Base class for all NextPVR errors."""

    transient: bool = False


class ConfigurationError(NextPvrError):
    """A required setting (base URL or PIN) is missing."""

    def __init__(self, setting: str) -> None:
        self.setting = setting
        super().__init__(f"NextPVR {setting} must be configured")


class AuthorizationError(NextPvrError):
    """The backend rejected the PIN or refused to start a session."""


class TransportError(NextPvrError):
    """The backend could not be reached or answered with garbage."""

    transient = True

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class BackendOperationError(NextPvrError):
    """The backend answered but reported that the operation failed."""

    def __init__(self, message: str, identifier: str | None = None, reason: str | None = None) -> None:
        self.identifier = identifier
        self.reason = reason
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class RecordingNotFoundError(NextPvrError):
    """A recording has neither a stream URL nor a reachable local file."""

    def __init__(self, recording_id: str) -> None:
        self.recording_id = recording_id
        super().__init__(f"No stream exists for recording {recording_id}")
