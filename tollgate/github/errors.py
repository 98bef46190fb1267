"""Errors raised by the scoped credential broker.

Every error names the broker step that failed so callers can tell a failed
repository lookup from a failed token grant without parsing messages. The
broker never retries; retry policy belongs to the caller.
"""

from __future__ import annotations

import enum


class BrokerStep(enum.StrEnum):
    """Upstream steps a broker operation can fail in."""

    VALIDATE_REPOSITORY = "validate_repository"
    VALIDATE_INSTALLATION = "validate_installation"
    LIST_INSTALLATIONS = "list_installations"
    LIST_REPOSITORIES = "list_repositories"
    GET_IDENTITY = "get_identity"
    LOOKUP_REPOSITORY = "lookup_repository"
    CREATE_TOKEN = "create_token"


class CredentialBrokerError(Exception):
    """Base exception for all broker failures.

    Attributes
    ----------
    step
        The broker step that failed, or ``None`` when the failure is not tied
        to a single step (configuration problems, for example).

    """

    def __init__(self, message: str, *, step: BrokerStep | None = None) -> None:
        """Initialise with a message and the failing step."""
        self.step = step
        super().__init__(message)


class InvalidArgumentError(CredentialBrokerError, ValueError):
    """Raised when caller input is rejected before any upstream call."""

    @classmethod
    def malformed_repository_name(cls, value: str) -> InvalidArgumentError:
        """Return an error for a repository name not shaped like owner/name."""
        return cls(
            f"malformed repository name (expected: [owner]/[name]): {value!r}",
            step=BrokerStep.VALIDATE_REPOSITORY,
        )

    @classmethod
    def invalid_installation_id(cls, value: object) -> InvalidArgumentError:
        """Return an error for a non-positive or non-integer installation id."""
        return cls(
            f"installation id must be a positive integer: {value!r}",
            step=BrokerStep.VALIDATE_INSTALLATION,
        )


class UpstreamUnavailableError(CredentialBrokerError):
    """Raised on transport failures, timeouts and upstream server errors."""

    def __init__(
        self,
        message: str,
        *,
        step: BrokerStep | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialise with a message, step and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, step=step)

    @classmethod
    def timeout(cls, step: BrokerStep) -> UpstreamUnavailableError:
        """Return an error for a step that exceeded its bounded timeout."""
        return cls(f"GitHub request timed out during {step}", step=step)

    @classmethod
    def network_error(cls, step: BrokerStep, detail: str) -> UpstreamUnavailableError:
        """Return an error for DNS, connection or TLS failures."""
        return cls(f"GitHub network error during {step}: {detail}", step=step)

    @classmethod
    def http_error(cls, step: BrokerStep, status_code: int) -> UpstreamUnavailableError:
        """Return an error for a non-2xx response on a listing or identity call."""
        return cls(
            f"GitHub HTTP {status_code} during {step}",
            step=step,
            status_code=status_code,
        )


class UpstreamAuthorizationError(CredentialBrokerError):
    """Raised when GitHub explicitly denies the principal or the App access."""

    def __init__(
        self, message: str, *, step: BrokerStep | None = None, status_code: int
    ) -> None:
        """Initialise with a message, step and the denying HTTP status."""
        self.status_code = status_code
        super().__init__(message, step=step)

    @classmethod
    def denied(
        cls, step: BrokerStep, status_code: int, detail: str | None = None
    ) -> UpstreamAuthorizationError:
        """Return an error for a 401/403 (or grant-rejecting) response."""
        message = f"GitHub denied access during {step} (HTTP {status_code})"
        if detail:
            message = f"{message}: {detail}"
        return cls(message, step=step, status_code=status_code)


class UpstreamDataError(CredentialBrokerError):
    """Raised when a GitHub response is missing fields or cannot be used."""

    def __init__(
        self,
        message: str,
        *,
        step: BrokerStep | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialise with a message, step and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, step=step)

    @classmethod
    def missing(cls, step: BrokerStep, field: str) -> UpstreamDataError:
        """Return an error for a response lacking an expected field."""
        return cls(f"GitHub response missing expected field: {field}", step=step)

    @classmethod
    def undecodable(cls, step: BrokerStep, detail: str) -> UpstreamDataError:
        """Return an error for a response body that does not match its schema."""
        return cls(f"GitHub response could not be decoded: {detail}", step=step)

    @classmethod
    def lookup_failed(
        cls, repo_full_name: str, status_code: int
    ) -> UpstreamDataError:
        """Return an error for a repository lookup rejected by GitHub."""
        return cls(
            f"error getting repository details for {repo_full_name} "
            f"(HTTP {status_code})",
            step=BrokerStep.LOOKUP_REPOSITORY,
            status_code=status_code,
        )


class CredentialIssuanceError(CredentialBrokerError):
    """Raised when token creation yields no usable token."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, step=BrokerStep.CREATE_TOKEN)

    @classmethod
    def http_error(cls, status_code: int) -> CredentialIssuanceError:
        """Return an error for a failed token-creation response."""
        return cls(
            f"error getting installation token (HTTP {status_code})",
            status_code=status_code,
        )

    @classmethod
    def missing_token(cls) -> CredentialIssuanceError:
        """Return an error for a token-creation response without a token."""
        return cls("installation token response did not include a token")


class BrokerConfigError(CredentialBrokerError):
    """Raised when broker configuration is missing or invalid."""

    @classmethod
    def missing_token(cls) -> BrokerConfigError:
        """Return an error when no principal token is configured."""
        return cls("TOLLGATE_GITHUB_TOKEN is required for the GitHub API")

    @classmethod
    def empty_token(cls) -> BrokerConfigError:
        """Return an error when the provided token is blank."""
        return cls("GitHub token must be non-empty")

    @classmethod
    def missing_app_credentials(cls) -> BrokerConfigError:
        """Return an error when token issuance lacks App credentials."""
        return cls(
            "TOLLGATE_GITHUB_APP_ID and an App private key are required "
            "to issue installation tokens"
        )

    @classmethod
    def unreadable_private_key(cls, path: str, detail: str) -> BrokerConfigError:
        """Return an error when the private key file cannot be read."""
        return cls(f"could not read GitHub App private key from {path}: {detail}")

    @classmethod
    def invalid_parameter(
        cls, parameter_name: str, value: str, constraint: str
    ) -> BrokerConfigError:
        """Return an error for a configuration value failing validation."""
        return cls(f"Invalid {parameter_name} '{value}'. {constraint}")

    @classmethod
    def missing_backend(cls) -> BrokerConfigError:
        """Return an error when TOLLGATE_BROKER_BACKEND is not set."""
        return cls("TOLLGATE_BROKER_BACKEND environment variable is required")

    @classmethod
    def invalid_backend(cls, name: str, valid: frozenset[str]) -> BrokerConfigError:
        """Return an error listing the supported broker backends."""
        options = ", ".join(f"'{backend}'" for backend in sorted(valid))
        return cls(f"Invalid broker backend '{name}'. Valid options are: {options}")
