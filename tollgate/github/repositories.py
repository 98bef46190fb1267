"""Repository listing and permission derivation under one installation."""

from __future__ import annotations

import typing as typ

import msgspec

from .errors import BrokerStep
from .models import PermissionDescriptor
from .observability import BrokerEventLogger
from .pagination import Page, PageCursorEnumerator, next_page_from_links
from .transport import decode_json, raise_for_listing_status

if typ.TYPE_CHECKING:
    from .transport import GitHubRestTransport

_STEP = BrokerStep.LIST_REPOSITORIES

# (full_name, raw permissions map) for each usable record
_NamedRecord = tuple[str, object]


# Fields are decoded loosely so one malformed record is skipped rather than
# failing the whole page.
class _RepositoryRecord(msgspec.Struct):
    full_name: object = None
    permissions: object = None


class _RepositoriesPage(msgspec.Struct):
    repositories: list[_RepositoryRecord | None] = msgspec.field(
        default_factory=list
    )


class RepositoryDirectory:
    """List repositories the principal can reach through an installation."""

    def __init__(
        self,
        transport: GitHubRestTransport,
        *,
        event_logger: BrokerEventLogger | None = None,
    ) -> None:
        """Store the shared transport."""
        self._transport = transport
        self._events = event_logger or BrokerEventLogger()

    async def _drain_records(self, installation_id: int) -> list[_NamedRecord]:
        """Return every repository record with a usable full name."""
        path = f"/user/installations/{installation_id}/repositories"
        per_page = self._transport.config.per_page

        async def fetch(page: int) -> Page[_NamedRecord]:
            response = await self._transport.get(
                path, step=_STEP, params={"per_page": per_page, "page": page}
            )
            raise_for_listing_status(response, _STEP)
            body = decode_json(response, _RepositoriesPage, _STEP)
            usable: list[_NamedRecord] = []
            for record in body.repositories:
                if (
                    record is None
                    or not isinstance(record.full_name, str)
                    or not record.full_name
                ):
                    self._events.log_record_skipped(
                        _STEP,
                        installation_id=installation_id,
                        reason="missing full_name",
                    )
                    continue
                usable.append((record.full_name, record.permissions))
            return Page(items=usable, next_page=next_page_from_links(response))

        enumerator = PageCursorEnumerator(
            fetch, step=_STEP, timeout_s=self._transport.config.timeout_s
        )
        records = await enumerator.drain()
        self._events.log_listing_completed(
            _STEP, item_count=len(records), installation_id=installation_id
        )
        return records

    async def list_repositories_for_installation(self, installation_id: int) -> list[str]:
        """Return full names of repositories visible under ``installation_id``.

        Records without a full name are skipped. A timeout or transport
        failure on any page aborts the whole call.
        """
        records = await self._drain_records(installation_id)
        return [full_name for full_name, _ in records]

    async def list_repository_permissions(
        self, installation_id: int
    ) -> dict[str, PermissionDescriptor]:
        """Return a permission descriptor per repository, keyed by full name.

        A repository that upstream repeats keeps its last descriptor. A
        repository absent from the result has no determinable access.
        """
        records = await self._drain_records(installation_id)
        descriptors: dict[str, PermissionDescriptor] = {}
        for full_name, permissions in records:
            descriptors[full_name] = PermissionDescriptor.from_permissions_map(
                full_name, permissions
            )
        return descriptors
