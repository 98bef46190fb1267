"""Configuration for the GitHub App installation broker."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from .errors import BrokerConfigError

_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 10.0
_DEFAULT_PER_PAGE = 100
_DEFAULT_USER_AGENT = "tollgate/0.1"

# GitHub REST list endpoints cap page size at 100
_MAX_PER_PAGE = 100


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubAppConfig:
    """Configuration for the GitHub REST transport.

    Attributes
    ----------
    token
        The principal's token (OAuth user token or equivalent). Listing,
        identity and repository lookups run as this principal.
    app_id
        GitHub App identifier used as the JWT issuer when minting
        installation tokens.
    private_key
        PEM-encoded App private key. Only the JWT signer reads it.
    api_url
        Base URL of the GitHub REST API (override for GitHub Enterprise).
    timeout_s
        Bound applied to every individual upstream step.
    per_page
        Page size requested from paginated listing endpoints.
    user_agent
        ``User-Agent`` header sent with every request.

    """

    token: str
    app_id: str | None = None
    private_key: str | None = dataclasses.field(default=None, repr=False)
    api_url: str = _DEFAULT_API_URL
    timeout_s: float = _DEFAULT_TIMEOUT_S
    per_page: int = _DEFAULT_PER_PAGE
    user_agent: str = _DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        """Validate numeric bounds shared by direct and env construction."""
        if self.timeout_s <= 0:
            raise BrokerConfigError.invalid_parameter(
                "timeout_s", str(self.timeout_s), "Must be a positive number"
            )
        if not 1 <= self.per_page <= _MAX_PER_PAGE:
            raise BrokerConfigError.invalid_parameter(
                "per_page",
                str(self.per_page),
                f"Must be an integer between 1 and {_MAX_PER_PAGE}",
            )

    @property
    def has_app_credentials(self) -> bool:
        """Return True when both the App id and private key are configured."""
        return bool(self.app_id and self.private_key)

    @staticmethod
    def _parse_timeout_from_env() -> float:
        raw_timeout = os.environ.get("TOLLGATE_GITHUB_TIMEOUT_S")
        if raw_timeout is None:
            return _DEFAULT_TIMEOUT_S
        try:
            return float(raw_timeout)
        except ValueError as exc:
            raise BrokerConfigError.invalid_parameter(
                "timeout_s", raw_timeout, "Must be a positive number"
            ) from exc

    @staticmethod
    def _parse_per_page_from_env() -> int:
        raw_per_page = os.environ.get("TOLLGATE_GITHUB_PER_PAGE")
        if raw_per_page is None:
            return _DEFAULT_PER_PAGE
        try:
            return int(raw_per_page)
        except ValueError as exc:
            raise BrokerConfigError.invalid_parameter(
                "per_page",
                raw_per_page,
                f"Must be an integer between 1 and {_MAX_PER_PAGE}",
            ) from exc

    @staticmethod
    def _read_private_key_from_env() -> str | None:
        """Return the App private key from the environment or a key file.

        ``TOLLGATE_GITHUB_APP_PRIVATE_KEY`` wins over
        ``TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH`` when both are set.
        """
        inline_key = os.environ.get("TOLLGATE_GITHUB_APP_PRIVATE_KEY", "").strip()
        if inline_key:
            return inline_key

        key_path = os.environ.get("TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH", "").strip()
        if not key_path:
            return None
        try:
            return Path(key_path).read_text(encoding="utf-8").strip() or None
        except OSError as exc:
            raise BrokerConfigError.unreadable_private_key(key_path, str(exc)) from exc

    @classmethod
    def from_env(cls) -> GitHubAppConfig:
        """Build configuration from ``TOLLGATE_GITHUB_*`` environment variables.

        Reads the following environment variables:

        - ``TOLLGATE_GITHUB_TOKEN``: Required principal token
        - ``TOLLGATE_GITHUB_APP_ID``: Optional App id (needed to issue tokens)
        - ``TOLLGATE_GITHUB_APP_PRIVATE_KEY``: Optional inline PEM key
        - ``TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH``: Optional PEM key file
        - ``TOLLGATE_GITHUB_API_URL``: Optional API base URL override
        - ``TOLLGATE_GITHUB_TIMEOUT_S``: Optional per-step timeout in seconds
        - ``TOLLGATE_GITHUB_PER_PAGE``: Optional page size (1 to 100)

        Raises
        ------
        BrokerConfigError
            If the token is missing or a value fails validation.

        """
        token = os.environ.get("TOLLGATE_GITHUB_TOKEN", "").strip()
        if not token:
            raise BrokerConfigError.missing_token()

        app_id = os.environ.get("TOLLGATE_GITHUB_APP_ID", "").strip() or None
        api_url = os.environ.get("TOLLGATE_GITHUB_API_URL", "").strip()

        return cls(
            token=token,
            app_id=app_id,
            private_key=cls._read_private_key_from_env(),
            api_url=api_url or _DEFAULT_API_URL,
            timeout_s=cls._parse_timeout_from_env(),
            per_page=cls._parse_per_page_from_env(),
        )
