"""GitHub App JWT signing for installation token requests."""

from __future__ import annotations

import collections.abc as cabc
import time

import jwt

from .errors import BrokerConfigError

# GitHub rejects App JWTs that expire more than ten minutes after issue
_JWT_LIFETIME_S = 540
_JWT_CLOCK_SKEW_S = 60
_JWT_ALGORITHM = "RS256"


class AppJWTSigner:
    """Sign short-lived JWTs that authenticate as the GitHub App itself.

    A fresh JWT is signed for every call; nothing is cached. The private key
    is held only by this object and never appears in its repr.
    """

    def __init__(
        self,
        app_id: str,
        private_key: str,
        *,
        clock: cabc.Callable[[], float] = time.time,
    ) -> None:
        """Store the App id, key and clock used for ``iat``/``exp``."""
        if not app_id or not private_key:
            raise BrokerConfigError.missing_app_credentials()
        self._app_id = app_id
        self._private_key = private_key
        self._clock = clock

    def __repr__(self) -> str:
        """Return a repr that omits the private key."""
        return f"AppJWTSigner(app_id={self._app_id!r})"

    def sign(self) -> str:
        """Return a signed RS256 JWT valid for just under ten minutes."""
        now = int(self._clock())
        payload = {
            "iat": now - _JWT_CLOCK_SKEW_S,
            "exp": now + _JWT_LIFETIME_S,
            "iss": self._app_id,
        }
        return jwt.encode(payload, self._private_key, algorithm=_JWT_ALGORITHM)
