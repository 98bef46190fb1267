"""Structured log events for broker listings and token issuance.

Events are emitted as ``[event] key=value`` lines through femtologging. Token
values, JWTs and private keys are never passed to these methods; a token
issuance is identified by installation id, repository name and repository id.
"""

from __future__ import annotations

import enum
import typing as typ

from tollgate.logging import get_logger, log_error, log_info, log_warning

from .errors import (
    BrokerConfigError,
    CredentialIssuanceError,
    InvalidArgumentError,
    UpstreamAuthorizationError,
    UpstreamDataError,
    UpstreamUnavailableError,
)

if typ.TYPE_CHECKING:
    from .errors import BrokerStep
    from .models import TokenGrant

logger = get_logger(__name__)


class BrokerEventType(enum.StrEnum):
    """Structured log event types emitted by the broker."""

    LISTING_COMPLETED = "broker.listing.completed"
    RECORD_SKIPPED = "broker.listing.record_skipped"
    TOKEN_ISSUED = "broker.token.issued"
    TOKEN_FAILED = "broker.token.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for broker error classification in alerts."""

    INVALID_INPUT = "invalid_input"
    TRANSIENT = "transient"
    AUTHORIZATION = "authorization"
    SCHEMA_DRIFT = "schema_drift"
    ISSUANCE = "issuance"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (InvalidArgumentError, ErrorCategory.INVALID_INPUT),
    (UpstreamUnavailableError, ErrorCategory.TRANSIENT),
    (UpstreamAuthorizationError, ErrorCategory.AUTHORIZATION),
    (UpstreamDataError, ErrorCategory.SCHEMA_DRIFT),
    (CredentialIssuanceError, ErrorCategory.ISSUANCE),
    (BrokerConfigError, ErrorCategory.CONFIGURATION),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alert routing."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class BrokerEventLogger:
    """Emit structured broker events via femtologging."""

    def log_listing_completed(
        self,
        step: BrokerStep,
        *,
        item_count: int,
        installation_id: int | None = None,
    ) -> None:
        """Log a completed listing with the number of items returned."""
        log_info(
            logger,
            "[%s] step=%s installation_id=%s item_count=%d",
            BrokerEventType.LISTING_COMPLETED,
            step,
            installation_id,
            item_count,
        )

    def log_record_skipped(
        self,
        step: BrokerStep,
        *,
        installation_id: int | None,
        reason: str,
    ) -> None:
        """Log an upstream record dropped because a required field is missing."""
        log_warning(
            logger,
            "[%s] step=%s installation_id=%s reason=%s",
            BrokerEventType.RECORD_SKIPPED,
            step,
            installation_id,
            reason,
        )

    def log_token_issued(self, grant: TokenGrant) -> None:
        """Log a successful token issuance without the token itself."""
        log_info(
            logger,
            "[%s] installation_id=%d repo=%s repository_id=%d permissions=%s",
            BrokerEventType.TOKEN_ISSUED,
            grant.installation_id,
            grant.repo_full_name,
            grant.repository_id,
            ",".join(f"{name}:{level}" for name, level in grant.permissions.items()),
        )

    def log_token_failed(
        self,
        *,
        installation_id: int,
        repo_full_name: str,
        error: BaseException,
    ) -> None:
        """Log a failed token issuance with step and error category."""
        log_error(
            logger,
            "[%s] installation_id=%s repo=%s step=%s error_type=%s "
            "error_category=%s error_message=%s",
            BrokerEventType.TOKEN_FAILED,
            installation_id,
            repo_full_name,
            getattr(error, "step", None),
            type(error).__name__,
            categorize_error(error),
            str(error),
        )
