"""
Low-level session logic for the NextPVR backend.

Responsible for:
- Negotiating a session id (sid) via session.initiate + session.login
- Computing the login digest from the PIN and the server-issued salt
- Tracking how old the sid is and re-negotiating it once it expires
"""
from __future__ import annotations

import asyncio
import dataclasses
import hashlib
import logging
import time
from typing import Awaitable, Callable

from ..config import NextPvrConfig
from ..const import CLIENT_NAME, SESSION_TTL
from ..errors import AuthorizationError, ConfigurationError, TransportError
from ..requests import ResultKind, call_service

_LOGGER = logging.getLogger(__name__)


def md5_hex(value: str) -> str:
    """Lowercase hex MD5 of the UTF-8 encoding of *value*."""
    # MD5 is dictated by the backend login protocol, not chosen for security.
    return hashlib.md5(value.encode("utf-8"), usedforsecurity=False).hexdigest()


def compute_login_digest(pin: str, salt: str) -> str:
    """
    Compute the session.login digest: md5(":" + md5(pin) + ":" + salt).

    Must stay bit-exact with the backend, which computes the same value.
    """
    return md5_hex(":" + md5_hex(pin) + ":" + salt)


async def initiate_session(base_url: str) -> tuple[str, str]:
    """
    Ask the backend for a fresh sid and salt.

    Corresponding request:
    GET <base_url>/service?method=session.initiate&ver=1.0&device=homeassistant
    """
    result = await call_service(base_url, "session.initiate", {"ver": "1.0", "device": CLIENT_NAME})
    if result.kind is ResultKind.TRANSPORT_ERROR:
        raise result.cause
    sid = result.payload.get("sid")
    salt = result.payload.get("salt")
    if not sid or not salt:
        _LOGGER.error("Failed to validate the session keys returned by NextPVR: %s", result.payload)
        raise AuthorizationError("NextPVR did not return session keys, check the NextPVR version")
    return str(sid), str(salt)


async def login(base_url: str, sid: str, salt: str, pin: str) -> bool:
    """
    Submit the login digest for *sid*; True when the backend accepts it.

    Corresponding request:
    GET <base_url>/service?method=session.login&md5=<digest>&sid=<sid>
    """
    result = await call_service(
        base_url, "session.login", {"md5": compute_login_digest(pin, salt)}, sid=sid, strict=True
    )
    if result.kind is ResultKind.TRANSPORT_ERROR:
        raise result.cause
    return result.ok


@dataclasses.dataclass
class Session:
    token: str | None = None
    # 0.0 marks a stale session: the token is kept but must be re-negotiated
    obtained_at: float = 0.0


class SessionManager:
    """
    Owns the sid and its lifetime for one backend.

    ensure_connection() is the gate every authenticated call passes through.
    Concurrent callers that find the sid expired share a single handshake.
    """

    def __init__(
        self,
        config: NextPvrConfig,
        on_login: Callable[[str], Awaitable[None]] | None = None,
        ttl: int = SESSION_TTL,
    ) -> None:
        self._config = config
        self._on_login = on_login
        self._ttl = ttl
        self._session = Session()
        self._lock = asyncio.Lock()
        self.handshake_count = 0

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def obtained_at(self) -> float:
        return self._session.obtained_at

    @property
    def is_active(self) -> bool:
        """True once a sid has been obtained, even if it is due for renewal."""
        return bool(self._session.token)

    @property
    def is_fresh(self) -> bool:
        if not self._session.token:
            return False
        return (time.time() - self._session.obtained_at) <= self._ttl

    def _check_config(self) -> None:
        if not self._config.base_url:
            _LOGGER.error("NextPVR web service url must be configured")
            raise ConfigurationError("web service url")
        if not self._config.pin:
            _LOGGER.error("NextPVR pin must be configured")
            raise ConfigurationError("pin")

    async def ensure_connection(self) -> str:
        """Return a usable sid, negotiating a new one when needed."""
        self._check_config()
        if self.is_fresh:
            return self._session.token

        async with self._lock:
            # Another caller may have completed the handshake while we waited
            if not self.is_fresh:
                await self._handshake()
            return self._session.token

    async def _handshake(self) -> None:
        base_url = self._config.base_url
        _LOGGER.info("Start NextPVR session handshake with %s", base_url)
        self.handshake_count += 1
        try:
            sid, salt = await initiate_session(base_url)
            logged_in = await login(base_url, sid, salt, self._config.pin)
        except TransportError:
            self.mark_stale()
            raise
        except AuthorizationError:
            self._session = Session()
            raise

        if not logged_in:
            _LOGGER.error("NextPVR PIN not accepted")
            self._session = Session()
            raise AuthorizationError("NextPVR PIN not accepted")

        self._session = Session(token=sid, obtained_at=time.time())
        _LOGGER.info("NextPVR session initiated")

        if self._on_login is not None:
            await self._on_login(sid)

    def mark_stale(self) -> None:
        """Force the next ensure_connection() to re-run the handshake."""
        self._session.obtained_at = 0.0

    def touch(self) -> None:
        """Extend the lifetime of a live session after a successful call."""
        if self._session.token and self._session.obtained_at != 0.0:
            self._session.obtained_at = time.time()

    def reset(self) -> None:
        """Forget the session entirely."""
        self._session = Session()
