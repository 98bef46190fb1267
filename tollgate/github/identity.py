"""Identity resolution for the authenticated principal."""

from __future__ import annotations

import typing as typ

import msgspec

from .errors import BrokerStep, UpstreamDataError
from .pagination import step_timeout
from .transport import decode_json, raise_for_listing_status

if typ.TYPE_CHECKING:
    from .transport import GitHubRestTransport

_STEP = BrokerStep.GET_IDENTITY


class _UserRecord(msgspec.Struct):
    login: str | None = None


class IdentityResolver:
    """Resolve the login of whoever the configured token belongs to."""

    def __init__(self, transport: GitHubRestTransport) -> None:
        """Store the shared transport."""
        self._transport = transport

    async def get_identity(self) -> str:
        """Return the principal's canonical login name."""
        async with step_timeout(_STEP, self._transport.config.timeout_s):
            response = await self._transport.get("/user", step=_STEP)
        raise_for_listing_status(response, _STEP)
        user = decode_json(response, _UserRecord, _STEP)
        if not user.login:
            raise UpstreamDataError.missing(_STEP, "login")
        return user.login
