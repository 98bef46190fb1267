"""Installation listing for the authenticated principal."""

from __future__ import annotations

import typing as typ

import msgspec

from .errors import BrokerStep, UpstreamDataError
from .models import Installation, InstallationSet
from .observability import BrokerEventLogger
from .pagination import Page, PageCursorEnumerator, next_page_from_links
from .transport import decode_json, raise_for_listing_status

if typ.TYPE_CHECKING:
    from .transport import GitHubRestTransport

_STEP = BrokerStep.LIST_INSTALLATIONS


class _InstallationRecord(msgspec.Struct):
    id: int | None = None


class _InstallationsPage(msgspec.Struct):
    installations: list[_InstallationRecord | None] = msgspec.field(
        default_factory=list
    )


class InstallationDirectory:
    """List the App installations the principal can act on."""

    def __init__(
        self,
        transport: GitHubRestTransport,
        *,
        event_logger: BrokerEventLogger | None = None,
    ) -> None:
        """Store the shared transport."""
        self._transport = transport
        self._events = event_logger or BrokerEventLogger()

    async def _fetch_page(self, page: int) -> Page[Installation]:
        response = await self._transport.get(
            "/user/installations",
            step=_STEP,
            params={"per_page": self._transport.config.per_page, "page": page},
        )
        raise_for_listing_status(response, _STEP)
        body = decode_json(response, _InstallationsPage, _STEP)
        installations: list[Installation] = []
        for record in body.installations:
            if record is None or record.id is None:
                raise UpstreamDataError.missing(_STEP, "installations[].id")
            installations.append(Installation(id=record.id))
        return Page(items=installations, next_page=next_page_from_links(response))

    async def list_installations_for_principal(self) -> InstallationSet:
        """Return every installation visible to the principal, in upstream order.

        Raises
        ------
        UpstreamUnavailableError
            If any page times out or fails; no partial set is returned.
        UpstreamAuthorizationError
            If GitHub rejects the principal's credentials.
        UpstreamDataError
            If an installation record has no id.

        """
        enumerator = PageCursorEnumerator(
            self._fetch_page, step=_STEP, timeout_s=self._transport.config.timeout_s
        )
        installations = await enumerator.drain()
        self._events.log_listing_completed(_STEP, item_count=len(installations))
        return InstallationSet(installations=tuple(installations))
