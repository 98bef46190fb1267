"""GitHub App installation discovery and scoped credential issuance.

Public API
----------
AppInstallationBroker
    Protocol with the five broker capabilities.
GitHubAppInstallationBroker
    GitHub REST implementation composed of the components below.
MockAppInstallationBroker
    Deterministic in-memory implementation for tests and development.
InstallationDirectory, RepositoryDirectory, IdentityResolver, CredentialIssuer
    Components sharing one :class:`GitHubRestTransport`.
PageCursorEnumerator
    Generic page-draining building block.
create_broker
    Factory selecting a backend from ``TOLLGATE_BROKER_BACKEND``.

"""

from __future__ import annotations

from .auth import AppJWTSigner
from .broker import GitHubAppInstallationBroker
from .config import GitHubAppConfig
from .credentials import CredentialIssuer, build_token_request
from .errors import (
    BrokerConfigError,
    BrokerStep,
    CredentialBrokerError,
    CredentialIssuanceError,
    InvalidArgumentError,
    UpstreamAuthorizationError,
    UpstreamDataError,
    UpstreamUnavailableError,
)
from .factory import create_broker
from .identity import IdentityResolver
from .installations import InstallationDirectory
from .mock import MockAppInstallationBroker
from .models import (
    READ_ONLY_TOKEN_PERMISSIONS,
    Installation,
    InstallationSet,
    PermissionDescriptor,
    RepositoryName,
    TokenGrant,
)
from .observability import (
    BrokerEventLogger,
    BrokerEventType,
    ErrorCategory,
    categorize_error,
)
from .pagination import NO_NEXT_PAGE, Page, PageCursorEnumerator
from .protocol import AppInstallationBroker
from .repositories import RepositoryDirectory
from .transport import GitHubRestTransport

__all__ = [
    "NO_NEXT_PAGE",
    "READ_ONLY_TOKEN_PERMISSIONS",
    "AppInstallationBroker",
    "AppJWTSigner",
    "BrokerConfigError",
    "BrokerEventLogger",
    "BrokerEventType",
    "BrokerStep",
    "CredentialBrokerError",
    "CredentialIssuanceError",
    "CredentialIssuer",
    "ErrorCategory",
    "GitHubAppConfig",
    "GitHubAppInstallationBroker",
    "GitHubRestTransport",
    "IdentityResolver",
    "Installation",
    "InstallationDirectory",
    "InstallationSet",
    "InvalidArgumentError",
    "MockAppInstallationBroker",
    "Page",
    "PageCursorEnumerator",
    "PermissionDescriptor",
    "RepositoryDirectory",
    "RepositoryName",
    "TokenGrant",
    "UpstreamAuthorizationError",
    "UpstreamDataError",
    "UpstreamUnavailableError",
    "build_token_request",
    "categorize_error",
    "create_broker",
]
