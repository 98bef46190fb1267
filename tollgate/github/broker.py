"""GitHub implementation of :class:`AppInstallationBroker`."""

from __future__ import annotations

import typing as typ

from .credentials import CredentialIssuer
from .identity import IdentityResolver
from .installations import InstallationDirectory
from .models import validate_installation_id
from .observability import BrokerEventLogger
from .repositories import RepositoryDirectory
from .transport import GitHubRestTransport

if typ.TYPE_CHECKING:
    import httpx

    from .config import GitHubAppConfig
    from .models import InstallationSet, PermissionDescriptor


class GitHubAppInstallationBroker:
    """Compose the directory, identity and issuer components over one transport.

    Parameters
    ----------
    transport
        Shared GitHub REST transport. The broker never mutates it.
    event_logger
        Optional structured event logger shared by the components.

    Examples
    --------
    >>> import asyncio
    >>> config = GitHubAppConfig.from_env()
    >>> broker = GitHubAppInstallationBroker.from_config(config)
    >>> token = asyncio.run(broker.issue_scoped_token(42, "org/a"))
    >>> asyncio.run(broker.aclose())

    """

    def __init__(
        self,
        transport: GitHubRestTransport,
        *,
        event_logger: BrokerEventLogger | None = None,
    ) -> None:
        """Build each component around the injected transport."""
        events = event_logger or BrokerEventLogger()
        self._transport = transport
        self._installations = InstallationDirectory(transport, event_logger=events)
        self._repositories = RepositoryDirectory(transport, event_logger=events)
        self._identity = IdentityResolver(transport)
        self._issuer = CredentialIssuer(transport, event_logger=events)

    @classmethod
    def from_config(
        cls,
        config: GitHubAppConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> GitHubAppInstallationBroker:
        """Return a broker with a transport built from ``config``."""
        return cls(GitHubRestTransport(config, http_client=http_client))

    async def aclose(self) -> None:
        """Close the transport's owned HTTP resources."""
        await self._transport.aclose()

    async def list_installations_for_principal(self) -> InstallationSet:
        """Return installations reachable with the principal's credentials."""
        return await self._installations.list_installations_for_principal()

    async def list_repositories_for_installation(
        self, installation_id: int
    ) -> list[str]:
        """Return ``owner/name`` for each repository under the installation."""
        return await self._repositories.list_repositories_for_installation(
            validate_installation_id(installation_id)
        )

    async def list_repository_permissions(
        self, installation_id: int
    ) -> dict[str, PermissionDescriptor]:
        """Return admin/push/pull flags per repository under the installation."""
        return await self._repositories.list_repository_permissions(
            validate_installation_id(installation_id)
        )

    async def get_identity(self) -> str:
        """Return the principal's canonical login."""
        return await self._identity.get_identity()

    async def issue_scoped_token(
        self, installation_id: int, repo_full_name: str
    ) -> str:
        """Return a short-lived, read-only token for exactly one repository."""
        return await self._issuer.issue_scoped_token(
            validate_installation_id(installation_id), repo_full_name
        )
