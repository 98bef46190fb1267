"""Factory for creating AppInstallationBroker implementations from the environment."""

from __future__ import annotations

import os
import typing as typ

from .errors import BrokerConfigError
from .mock import MockAppInstallationBroker

if typ.TYPE_CHECKING:
    from .protocol import AppInstallationBroker

_VALID_BACKENDS = frozenset({"github", "mock"})


def create_broker() -> AppInstallationBroker:
    """Create a broker based on ``TOLLGATE_BROKER_BACKEND``.

    ``mock`` returns an empty :class:`MockAppInstallationBroker`. ``github``
    reads :meth:`GitHubAppConfig.from_env` and returns a
    :class:`GitHubAppInstallationBroker` that owns its HTTP client; callers
    should ``await broker.aclose()`` when done.

    Raises
    ------
    BrokerConfigError
        If the backend is missing or unknown, or GitHub configuration is
        invalid.

    """
    raw_backend = os.environ.get("TOLLGATE_BROKER_BACKEND")
    if raw_backend is None:
        raise BrokerConfigError.missing_backend()

    backend = raw_backend.strip().lower()
    if backend not in _VALID_BACKENDS:
        raise BrokerConfigError.invalid_backend(raw_backend, _VALID_BACKENDS)

    if backend == "mock":
        return MockAppInstallationBroker()

    from .broker import GitHubAppInstallationBroker
    from .config import GitHubAppConfig

    return GitHubAppInstallationBroker.from_config(GitHubAppConfig.from_env())
