"""AppInstallationBroker protocol for installation discovery and token issuance."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from .models import InstallationSet, PermissionDescriptor


@typ.runtime_checkable
class AppInstallationBroker(typ.Protocol):
    """Capabilities the platform needs from a source-hosting App integration.

    Implementations are stateless apart from their upstream handle, so every
    method may be awaited concurrently from independent tasks. Cancelling the
    awaiting task aborts the in-flight upstream step and no partial result is
    returned.

    Examples
    --------
    >>> from tollgate.github import AppInstallationBroker, MockAppInstallationBroker
    >>> broker: AppInstallationBroker = MockAppInstallationBroker()
    >>> isinstance(broker, AppInstallationBroker)
    True

    """

    async def list_installations_for_principal(self) -> InstallationSet:
        """Return installations reachable with the principal's credentials."""
        ...

    async def list_repositories_for_installation(
        self, installation_id: int
    ) -> list[str]:
        """Return ``owner/name`` for each repository under the installation."""
        ...

    async def list_repository_permissions(
        self, installation_id: int
    ) -> dict[str, PermissionDescriptor]:
        """Return admin/push/pull flags per repository under the installation."""
        ...

    async def get_identity(self) -> str:
        """Return the principal's canonical login."""
        ...

    async def issue_scoped_token(
        self, installation_id: int, repo_full_name: str
    ) -> str:
        """Return a short-lived, read-only token for exactly one repository."""
        ...
