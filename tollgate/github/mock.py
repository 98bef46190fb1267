"""In-memory implementation of AppInstallationBroker for tests and development."""

from __future__ import annotations

import hashlib
import typing as typ

from .errors import BrokerStep, UpstreamAuthorizationError, UpstreamDataError
from .models import (
    Installation,
    InstallationSet,
    PermissionDescriptor,
    RepositoryName,
    TokenGrant,
    validate_installation_id,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# Status GitHub answers with when a repository is outside the installation
_HTTP_UNPROCESSABLE = 422


class MockAppInstallationBroker:
    """Deterministic broker backed by seeded installation data.

    Behaviour mirrors the GitHub broker where callers can observe it:
    installation ids and repository names are validated the same way,
    repositories outside an installation are refused with
    ``UpstreamAuthorizationError``, and unknown repositories fail lookup with
    ``UpstreamDataError``. Tokens are opaque strings derived from the grant,
    so equal grants yield equal tokens.

    Examples
    --------
    >>> import asyncio
    >>> broker = MockAppInstallationBroker(
    ...     login="octocat",
    ...     installations={42: ["org/a", "org/b"]},
    ... )
    >>> asyncio.run(broker.list_repositories_for_installation(42))
    ['org/a', 'org/b']

    """

    def __init__(
        self,
        *,
        login: str = "mock-principal",
        installations: cabc.Mapping[int, cabc.Sequence[str]] | None = None,
        permissions: cabc.Mapping[int, cabc.Mapping[str, PermissionDescriptor]]
        | None = None,
        repository_ids: cabc.Mapping[str, int] | None = None,
    ) -> None:
        """Seed installations, repositories, permissions and repository ids."""
        self._login = login
        self._installations = {
            installation_id: list(repos)
            for installation_id, repos in (installations or {}).items()
        }
        self._permissions = {
            installation_id: dict(descriptors)
            for installation_id, descriptors in (permissions or {}).items()
        }
        known = [repo for repos in self._installations.values() for repo in repos]
        self._repository_ids: dict[str, int] = dict(repository_ids or {})
        for index, repo in enumerate(dict.fromkeys(known), start=1):
            self._repository_ids.setdefault(repo, index)
        self._issued: list[TokenGrant] = []

    @property
    def issued_grants(self) -> list[TokenGrant]:
        """Return a copy of every grant issued so far."""
        return list(self._issued)

    async def list_installations_for_principal(self) -> InstallationSet:
        """Return the seeded installations in insertion order."""
        return InstallationSet(
            installations=tuple(Installation(id=inst) for inst in self._installations)
        )

    async def list_repositories_for_installation(
        self, installation_id: int
    ) -> list[str]:
        """Return the repositories seeded for ``installation_id``."""
        validate_installation_id(installation_id)
        return list(self._installations.get(installation_id, []))

    async def list_repository_permissions(
        self, installation_id: int
    ) -> dict[str, PermissionDescriptor]:
        """Return seeded descriptors, defaulting to pull-only per repository."""
        validate_installation_id(installation_id)
        seeded = self._permissions.get(installation_id, {})
        return {
            repo: seeded.get(repo, PermissionDescriptor(repo_full_name=repo, pull=True))
            for repo in self._installations.get(installation_id, [])
        }

    async def get_identity(self) -> str:
        """Return the seeded login."""
        return self._login

    async def issue_scoped_token(
        self, installation_id: int, repo_full_name: str
    ) -> str:
        """Return a deterministic opaque token for a seeded repository."""
        validate_installation_id(installation_id)
        repo = RepositoryName.parse(repo_full_name)
        repository_id = self._repository_ids.get(repo.full_name)
        if repository_id is None:
            raise UpstreamDataError.lookup_failed(repo.full_name, 404)
        if repo.full_name not in self._installations.get(installation_id, []):
            raise UpstreamAuthorizationError.denied(
                BrokerStep.CREATE_TOKEN,
                _HTTP_UNPROCESSABLE,
                "repository is not accessible to this installation",
            )
        grant = TokenGrant(
            installation_id=installation_id,
            repo_full_name=repo.full_name,
            repository_id=repository_id,
        )
        self._issued.append(grant)
        digest = hashlib.sha256(
            f"{installation_id}:{repository_id}".encode()
        ).hexdigest()
        return f"ghs_mock_{digest[:32]}"
