"""
Low-level HTTP request library for NextPVR backend communication.

Every backend procedure is an HTTP GET on <base_url>/service carrying a
``method`` parameter.  Responses are JSON objects with a ``stat`` field;
anything other than ``"ok"`` is a failure reported by the backend itself.
This module turns each round trip into an ApiResult tagged as ok,
backend_error or transport_error so callers never have to sniff flags.
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import Any

import aiohttp

from .const import REQUEST_ATTEMPTS, REQUEST_TIMEOUT
from .errors import BackendOperationError, TransportError

_LOGGER = logging.getLogger(__name__)


class ResultKind(enum.Enum):
    OK = "ok"
    BACKEND_ERROR = "backend_error"
    TRANSPORT_ERROR = "transport_error"


@dataclasses.dataclass(frozen=True)
class ApiResult:
    """Outcome of a single backend call."""

    kind: ResultKind
    payload: dict = dataclasses.field(default_factory=dict)
    reason: str | None = None
    cause: TransportError | None = None

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.OK

    @classmethod
    def success(cls, payload: dict) -> "ApiResult":
        return cls(ResultKind.OK, payload=payload)

    @classmethod
    def backend_error(cls, payload: dict, reason: str) -> "ApiResult":
        return cls(ResultKind.BACKEND_ERROR, payload=payload, reason=reason)

    @classmethod
    def transport_error(cls, cause: TransportError) -> "ApiResult":
        return cls(ResultKind.TRANSPORT_ERROR, reason=str(cause), cause=cause)


def service_url(base_url: str) -> str:
    """Return the RPC endpoint for a backend base URL."""
    return f"{base_url.rstrip('/')}/service"


def encode_params(params: dict[str, Any]) -> dict[str, str]:
    """Drop None values and render booleans the way the backend expects."""
    encoded: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def classify(payload: Any, strict: bool = False) -> ApiResult:
    """
    Map a decoded response body onto an ApiResult.

    Read procedures do not always echo ``stat``, so a missing flag only counts
    as a failure when *strict* is set (mutations must confirm success).
    """
    if not isinstance(payload, dict):
        return ApiResult.backend_error({}, f"unexpected response: {payload!r}"[:200])
    stat = payload.get("stat")
    if stat == "ok" or (stat is None and not strict):
        return ApiResult.success(payload)
    reason = payload.get("message") or payload.get("error")
    if isinstance(reason, dict):
        reason = reason.get("msg") or reason.get("message")
    if not reason:
        reason = f"stat={stat}" if stat is not None else "missing status flag"
    return ApiResult.backend_error(payload, str(reason))


async def make_request(
    url: str,
    params: dict | None = None,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
) -> Any:
    """
    Make an HTTP GET request with automatic retry on timeout.

    Args:
        url: Target URL for the request
        params: URL query parameters (optional)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts

    Returns:
        Parsed JSON response

    Raises:
        TransportError: On timeouts after all attempts, connection problems,
            non-200 statuses and undecodable bodies
    """
    for attempt in range(max_attempts):
        try:
            # Timeout grows with each attempt
            timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.get(url, params=params) as response:
                    return await _process_response(response, url)

        except (asyncio.TimeoutError, TimeoutError) as e:
            if attempt < max_attempts - 1:
                continue
            _LOGGER.warning("Timeout on request to %s after %s attempts", url, max_attempts)
            raise TransportError(f"Timeout while contacting {url}", e) from e

        except aiohttp.ClientError as e:
            _LOGGER.warning("Error while contacting %s: %s", url, e)
            raise TransportError(f"Cannot reach {url}: {e}", e) from e

    raise TransportError(f"No attempt made to contact {url}")


async def _process_response(response, url: str) -> Any:
    """
    Extract the JSON body from a response.

    Raises:
        TransportError: For non-200 statuses or bodies that are not JSON
    """
    if response.status != 200:
        text = await response.text()
        _LOGGER.warning(
            "Received HTTP %s from %s, body preview: %s",
            response.status, url, text[:200]
        )
        raise TransportError(f"HTTP {response.status} from {url}")

    try:
        # NextPVR does not always label its JSON, so skip the content type check
        return await response.json(content_type=None)
    except (aiohttp.ContentTypeError, ValueError) as e:
        content_type = response.headers.get("Content-Type", "")
        _LOGGER.warning("Undecodable response from %s (content-type: %s): %s", url, content_type, e)
        raise TransportError(f"Expected JSON from {url} but got {content_type}", e) from e


async def call_service(
    base_url: str,
    method: str,
    params: dict[str, Any] | None = None,
    sid: str | None = None,
    strict: bool = False,
) -> ApiResult:
    """Invoke one backend procedure and return its tagged outcome."""
    query: dict[str, Any] = {"method": method}
    query.update(params or {})
    if sid is not None:
        query["sid"] = sid
    try:
        payload = await make_request(service_url(base_url), encode_params(query))
    except TransportError as e:
        return ApiResult.transport_error(e)
    return classify(payload, strict=strict)


def unwrap(result: ApiResult, action: str, identifier: str | None = None) -> dict:
    """
    Return the payload of a successful result, raising for anything else.

    Raises:
        TransportError: The round trip itself failed
        BackendOperationError: The backend reported a failure for *action*
    """
    if result.kind is ResultKind.TRANSPORT_ERROR:
        raise result.cause
    if result.kind is ResultKind.BACKEND_ERROR:
        message = f"Failed to {action}" if identifier is None else f"Failed to {action} for id {identifier}"
        _LOGGER.error("%s: %s", message, result.reason)
        raise BackendOperationError(message, identifier=identifier, reason=result.reason)
    return result.payload
