"""
marisk_site/sessions.py
-----------------------------------------------------------------------------
In-memory admin session registry with sliding expiry.

Tokens are 128-bit random values, hex encoded.  A token stays valid as long
as it is used at least once per TTL window: every successful authentication
moves its timestamp to "now".  Expired tokens are removed only when they are
presented again; there is no background sweep and no explicit revocation.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable

from marisk_site.config import SESSION_TTL_SECONDS

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Maps opaque bearer tokens to the time they were last used.

    Parameters
    ----------
    ttl   : Seconds of inactivity after which a token stops authenticating.
    clock : Returns the current time in seconds; injectable for tests.
    """

    def __init__(
        self,
        ttl: float = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._sessions

    def create(self) -> str:
        """Issue a new token stamped with the current time."""
        token = secrets.token_hex(16)
        with self._lock:
            self._sessions[token] = self._clock()
        return token

    def authenticate(self, authorization: str | None) -> bool:
        """
        Check an ``Authorization`` header value.

        The header must be exactly ``"Bearer <token>"`` (two space-separated
        parts).  A known token used within the TTL is refreshed and accepted;
        an expired one is deleted and rejected.

        Parameters
        ----------
        authorization : Raw header value, or ``None`` when the header is absent.

        Returns
        -------
        bool : ``True`` if the request is authenticated.
        """
        if not authorization:
            return False
        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer":
            return False
        token = parts[1]

        now = self._clock()
        with self._lock:
            issued = self._sessions.get(token)
            if issued is None:
                return False
            if now - issued > self.ttl:
                del self._sessions[token]
                logger.info("Admin session expired")
                return False
            self._sessions[token] = now
        return True
