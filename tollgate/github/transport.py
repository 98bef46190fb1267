"""Shared GitHub REST transport used by every broker component."""

from __future__ import annotations

import enum
import typing as typ

import httpx
import msgspec

from .auth import AppJWTSigner
from .errors import (
    BrokerConfigError,
    UpstreamAuthorizationError,
    UpstreamDataError,
    UpstreamUnavailableError,
)

if typ.TYPE_CHECKING:
    from .config import GitHubAppConfig
    from .errors import BrokerStep

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_API_VERSION = "2022-11-28"

S = typ.TypeVar("S")


class AuthMode(enum.Enum):
    """Which credential a request is sent with."""

    PRINCIPAL = "principal"
    APP = "app"


def is_error_status(response: httpx.Response) -> bool:
    """Return True for 4xx and 5xx responses."""
    return response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD


def is_denied_status(response: httpx.Response) -> bool:
    """Return True when GitHub rejected the credentials outright."""
    return response.status_code in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}


def upstream_message(response: httpx.Response) -> str | None:
    """Return GitHub's ``message`` field from an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    return message if isinstance(message, str) else None


def raise_for_listing_status(response: httpx.Response, step: BrokerStep) -> None:
    """Map a failed listing or identity response onto the broker taxonomy.

    Raises
    ------
    UpstreamAuthorizationError
        For 401 and 403 responses.
    UpstreamUnavailableError
        For any other 4xx or 5xx response.

    """
    if is_denied_status(response):
        raise UpstreamAuthorizationError.denied(
            step, response.status_code, upstream_message(response)
        )
    if is_error_status(response):
        raise UpstreamUnavailableError.http_error(step, response.status_code)


def decode_json(response: httpx.Response, record_type: type[S], step: BrokerStep) -> S:
    """Decode a response body into ``record_type`` with msgspec."""
    try:
        return msgspec.json.decode(response.content, type=record_type)
    except msgspec.DecodeError as exc:
        raise UpstreamDataError.undecodable(step, str(exc)) from exc


class GitHubRestTransport:
    """Thin async wrapper around one ``httpx.AsyncClient`` for GitHub REST.

    The transport is the single upstream handle shared by every component.
    It holds no per-call state, so concurrent tasks may share it freely.
    Transport-level failures are translated into
    :class:`~tollgate.github.errors.UpstreamUnavailableError`; HTTP status
    interpretation is left to the calling component.
    """

    def __init__(
        self,
        config: GitHubAppConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        signer: AppJWTSigner | None = None,
    ) -> None:
        """Initialise the transport with configuration and optional client."""
        if not config.token.strip():
            raise BrokerConfigError.empty_token()

        self._config = config
        self._base_url = config.api_url.rstrip("/")
        if signer is None and config.has_app_credentials:
            signer = AppJWTSigner(
                typ.cast("str", config.app_id), typ.cast("str", config.private_key)
            )
        self._signer = signer
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    @property
    def config(self) -> GitHubAppConfig:
        """Read-only access to the transport configuration."""
        return self._config

    @property
    def can_sign_app_requests(self) -> bool:
        """Return True when an App JWT signer is available."""
        return self._signer is not None

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, auth: AuthMode) -> dict[str, str]:
        if auth is AuthMode.APP:
            if self._signer is None:
                raise BrokerConfigError.missing_app_credentials()
            credential = self._signer.sign()
        else:
            credential = self._config.token
        return {
            "Authorization": f"Bearer {credential}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
            "User-Agent": self._config.user_agent,
        }

    async def request(  # noqa: PLR0913
        self,
        method: str,
        path: str,
        *,
        step: BrokerStep,
        params: dict[str, str | int] | None = None,
        json: dict[str, typ.Any] | None = None,
        auth: AuthMode = AuthMode.PRINCIPAL,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        """Send one request and return the raw response.

        Raises
        ------
        UpstreamUnavailableError
            If the request times out or fails at the network level.
        BrokerConfigError
            If ``auth`` is ``AuthMode.APP`` and no signer is configured.

        """
        headers = self._headers(auth)
        try:
            return await self._client.request(
                method,
                f"{self._base_url}{path}",
                params=params,
                json=json,
                headers=headers,
                follow_redirects=follow_redirects,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError.timeout(step) from exc
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError.network_error(step, str(exc)) from exc

    async def get(
        self,
        path: str,
        *,
        step: BrokerStep,
        params: dict[str, str | int] | None = None,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        """Send a GET request as the principal.

        ``follow_redirects`` lets a lookup follow GitHub's 301 for a renamed or
        transferred repository.
        """
        return await self.request(
            "GET", path, step=step, params=params, follow_redirects=follow_redirects
        )
