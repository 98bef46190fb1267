"""Minting of read-only, single-repository installation access tokens."""

from __future__ import annotations

import typing as typ

import msgspec

from .errors import (
    BrokerConfigError,
    BrokerStep,
    CredentialBrokerError,
    CredentialIssuanceError,
    UpstreamAuthorizationError,
    UpstreamDataError,
)
from .models import READ_ONLY_TOKEN_PERMISSIONS, RepositoryName, TokenGrant
from .observability import BrokerEventLogger
from .pagination import step_timeout
from .transport import AuthMode, decode_json, is_error_status, upstream_message

if typ.TYPE_CHECKING:
    from .transport import GitHubRestTransport

# Statuses with which GitHub refuses to grant a token for the requested
# installation/repository pair (422: repository not accessible to the App).
_GRANT_DENIED_STATUSES = frozenset({401, 403, 404, 422})


class _RepositoryLookupRecord(msgspec.Struct):
    id: int | None = None


class _AccessTokenRecord(msgspec.Struct):
    token: str | None = None
    expires_at: str | None = None


def build_token_request(repository_id: int) -> dict[str, typ.Any]:
    """Return the access-token request body for exactly one repository.

    The permission set is always :data:`READ_ONLY_TOKEN_PERMISSIONS`, whatever
    the installation itself is allowed to do.
    """
    return {
        "repository_ids": [repository_id],
        "permissions": dict(READ_ONLY_TOKEN_PERMISSIONS),
    }


class CredentialIssuer:
    """Issue narrowly scoped installation tokens for one repository at a time.

    Each step is attempted exactly once under its own timeout. The issuer does
    not check that the installation can reach the repository; when it cannot,
    GitHub refuses the grant and the refusal surfaces as
    :class:`~tollgate.github.errors.UpstreamAuthorizationError`.
    """

    def __init__(
        self,
        transport: GitHubRestTransport,
        *,
        event_logger: BrokerEventLogger | None = None,
    ) -> None:
        """Store the shared transport."""
        self._transport = transport
        self._events = event_logger or BrokerEventLogger()

    async def _resolve_repository_id(self, repo: RepositoryName) -> int:
        step = BrokerStep.LOOKUP_REPOSITORY
        async with step_timeout(step, self._transport.config.timeout_s):
            response = await self._transport.get(
                repo.path, step=step, follow_redirects=True
            )
        if is_error_status(response):
            raise UpstreamDataError.lookup_failed(repo.full_name, response.status_code)
        record = decode_json(response, _RepositoryLookupRecord, step)
        if record.id is None:
            raise UpstreamDataError.missing(step, "id")
        return record.id

    async def _create_token(self, installation_id: int, repository_id: int) -> str:
        step = BrokerStep.CREATE_TOKEN
        async with step_timeout(step, self._transport.config.timeout_s):
            response = await self._transport.request(
                "POST",
                f"/app/installations/{installation_id}/access_tokens",
                step=step,
                json=build_token_request(repository_id),
                auth=AuthMode.APP,
            )
        if response.status_code in _GRANT_DENIED_STATUSES:
            raise UpstreamAuthorizationError.denied(
                step, response.status_code, upstream_message(response)
            )
        if is_error_status(response):
            raise CredentialIssuanceError.http_error(response.status_code)
        try:
            record = msgspec.json.decode(response.content, type=_AccessTokenRecord)
        except msgspec.DecodeError as exc:
            raise CredentialIssuanceError.missing_token() from exc
        if not record.token:
            raise CredentialIssuanceError.missing_token()
        return record.token

    async def issue_scoped_token(self, installation_id: int, repo_full_name: str) -> str:
        """Return a one-hour, read-only token bound to a single repository.

        Raises
        ------
        InvalidArgumentError
            If ``repo_full_name`` is not ``owner/name``; nothing is sent.
        BrokerConfigError
            If no App credentials are configured; nothing is sent.
        UpstreamUnavailableError
            If any step times out or fails at the network level.
        UpstreamDataError
            If the repository lookup fails or returns no id.
        UpstreamAuthorizationError
            If GitHub refuses to grant the token.
        CredentialIssuanceError
            If token creation fails otherwise or returns no token.

        """
        repo = RepositoryName.parse(repo_full_name)
        if not self._transport.can_sign_app_requests:
            raise BrokerConfigError.missing_app_credentials()
        try:
            repository_id = await self._resolve_repository_id(repo)
            token = await self._create_token(installation_id, repository_id)
        except CredentialBrokerError as exc:
            self._events.log_token_failed(
                installation_id=installation_id,
                repo_full_name=repo.full_name,
                error=exc,
            )
            raise
        self._events.log_token_issued(
            TokenGrant(
                installation_id=installation_id,
                repo_full_name=repo.full_name,
                repository_id=repository_id,
            )
        )
        return token
