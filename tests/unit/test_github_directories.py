"""Unit tests for installation and repository listings."""

from __future__ import annotations

import pytest

from tollgate.github import InstallationDirectory, RepositoryDirectory
from tollgate.github.errors import (
    BrokerStep,
    UpstreamAuthorizationError,
    UpstreamDataError,
    UpstreamUnavailableError,
)
from tollgate.github.models import PermissionDescriptor
from tests.unit.github_broker_test_helpers import (
    PRINCIPAL_TOKEN,
    FakeGitHubAPI,
    make_transport,
    paged,
    repository_record,
    stalled,
    static,
    unreachable,
)

_INSTALLATIONS = "/user/installations"
_REPOS_42 = "/user/installations/42/repositories"


@pytest.mark.asyncio
async def test_installations_are_concatenated_in_upstream_order() -> None:
    """Every page contributes its installations in order."""
    api = FakeGitHubAPI().route(
        "GET",
        _INSTALLATIONS,
        paged("installations", [[{"id": 7}, {"id": 3}], [], [{"id": 42}]]),
    )
    transport, http_client = make_transport(api, per_page=2)
    try:
        installations = await InstallationDirectory(
            transport
        ).list_installations_for_principal()
        assert installations.ids == [7, 3, 42]
        assert len(installations) == 3
        assert installations.id_present(42)
        assert not installations.id_present(99)
        pages = [request.params["page"] for request in api.requests]
        assert pages == ["1", "2", "3"]
        assert all(request.params["per_page"] == "2" for request in api.requests)
        assert all(
            request.authorization == f"Bearer {PRINCIPAL_TOKEN}"
            for request in api.requests
        )
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_installations_have_no_duplicates_across_pages() -> None:
    """Concatenated pages from a well-behaved upstream yield unique ids."""
    api = FakeGitHubAPI().route(
        "GET",
        _INSTALLATIONS,
        paged("installations", [[{"id": 1}, {"id": 2}], [{"id": 3}]]),
    )
    transport, http_client = make_transport(api)
    try:
        ids = (
            await InstallationDirectory(transport).list_installations_for_principal()
        ).ids
        assert len(ids) == len(set(ids))
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_installation_without_id_is_a_data_error() -> None:
    """An installation record lacking an id raises UpstreamDataError."""
    api = FakeGitHubAPI().route(
        "GET", _INSTALLATIONS, paged("installations", [[{"id": 1}, {"app_id": 9}]])
    )
    transport, http_client = make_transport(api)
    try:
        with pytest.raises(UpstreamDataError):
            await InstallationDirectory(transport).list_installations_for_principal()
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("handler", "expected"),
    [
        (static(502, {"message": "Bad Gateway"}), UpstreamUnavailableError),
        (static(401, {"message": "Bad credentials"}), UpstreamAuthorizationError),
        (unreachable(), UpstreamUnavailableError),
    ],
)
async def test_installation_listing_failures(
    handler: object, expected: type[Exception]
) -> None:
    """Listing failures map onto the broker error taxonomy."""
    api = FakeGitHubAPI().route("GET", _INSTALLATIONS, handler)  # type: ignore[arg-type]
    transport, http_client = make_transport(api)
    try:
        with pytest.raises(expected) as exc:
            await InstallationDirectory(transport).list_installations_for_principal()
        assert getattr(exc.value, "step", None) is BrokerStep.LIST_INSTALLATIONS
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_installation_listing_timeout_is_unavailable() -> None:
    """A stalled page raises UpstreamUnavailableError after the step timeout."""
    api = FakeGitHubAPI().route("GET", _INSTALLATIONS, stalled())
    transport, http_client = make_transport(api, timeout_s=0.05)
    try:
        with pytest.raises(UpstreamUnavailableError, match="timed out"):
            await InstallationDirectory(transport).list_installations_for_principal()
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_repository_listing_skips_records_without_full_name() -> None:
    """Null records and records lacking full_name contribute nothing."""
    api = FakeGitHubAPI().route(
        "GET",
        _REPOS_42,
        paged(
            "repositories",
            [
                [repository_record("org/a"), None],
                [repository_record(None), repository_record("org/b")],
            ],
        ),
    )
    transport, http_client = make_transport(api)
    try:
        names = await RepositoryDirectory(
            transport
        ).list_repositories_for_installation(42)
        assert names == ["org/a", "org/b"]
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_repository_listing_failure_aborts_whole_call() -> None:
    """A failing later page aborts the listing without partial results."""
    pages = paged("repositories", [[repository_record("org/a")], []])
    calls = {"count": 0}

    def _handler(request: object) -> object:
        calls["count"] += 1
        if calls["count"] == 1:
            return pages(request)  # type: ignore[arg-type]
        return static(503, {"message": "unavailable"})(request)  # type: ignore[arg-type]

    api = FakeGitHubAPI().route("GET", _REPOS_42, _handler)  # type: ignore[arg-type]
    transport, http_client = make_transport(api)
    try:
        with pytest.raises(UpstreamUnavailableError) as exc:
            await RepositoryDirectory(transport).list_repositories_for_installation(42)
        assert exc.value.status_code == 503
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_repository_permissions_read_flags_with_defaults() -> None:
    """Flags are read from the permissions map and default to False."""
    partial = {"full_name": "org/c", "permissions": {"pull": True, "triage": True}}
    stringly = {"full_name": "org/d", "permissions": {"admin": "true", "pull": 1}}
    api = FakeGitHubAPI().route(
        "GET",
        _REPOS_42,
        paged(
            "repositories",
            [
                [
                    repository_record("org/a", admin=True, push=True, pull=True),
                    repository_record("org/b", pull=False),
                ],
                [partial, {"full_name": "org/e"}, stringly],
            ],
        ),
    )
    transport, http_client = make_transport(api)
    try:
        permissions = await RepositoryDirectory(
            transport
        ).list_repository_permissions(42)
    finally:
        await http_client.aclose()

    assert permissions["org/a"] == PermissionDescriptor("org/a", True, True, True)
    assert permissions["org/b"] == PermissionDescriptor("org/b", False, False, False)
    assert permissions["org/c"] == PermissionDescriptor("org/c", pull=True)
    assert permissions["org/e"] == PermissionDescriptor("org/e")
    assert permissions["org/d"] == PermissionDescriptor("org/d")


@pytest.mark.asyncio
async def test_repository_permissions_absence_differs_from_false_flags() -> None:
    """A repository not listed is absent, not present with all-False flags."""
    api = FakeGitHubAPI().route(
        "GET",
        _REPOS_42,
        paged("repositories", [[repository_record("org/a", pull=False)]]),
    )
    transport, http_client = make_transport(api)
    try:
        permissions = await RepositoryDirectory(
            transport
        ).list_repository_permissions(42)
    finally:
        await http_client.aclose()

    assert "org/zzz" not in permissions
    assert permissions.get("org/zzz") is None
    descriptor = permissions["org/a"]
    assert (descriptor.admin, descriptor.push, descriptor.pull) == (
        False,
        False,
        False,
    )


@pytest.mark.asyncio
async def test_repository_permissions_later_duplicates_overwrite() -> None:
    """When upstream repeats a repository, the last descriptor wins."""
    api = FakeGitHubAPI().route(
        "GET",
        _REPOS_42,
        paged(
            "repositories",
            [
                [repository_record("org/a", push=False)],
                [repository_record("org/a", push=True)],
            ],
        ),
    )
    transport, http_client = make_transport(api)
    try:
        permissions = await RepositoryDirectory(
            transport
        ).list_repository_permissions(42)
    finally:
        await http_client.aclose()

    assert list(permissions) == ["org/a"]
    assert permissions["org/a"].push is True


@pytest.mark.asyncio
async def test_repository_records_with_malformed_fields_are_tolerated() -> None:
    """A non-string name is skipped and a non-object permissions map reads False."""
    api = FakeGitHubAPI().route(
        "GET",
        _REPOS_42,
        paged(
            "repositories",
            [
                [
                    {"full_name": 123, "permissions": {"pull": True}},
                    {"full_name": ["org", "x"]},
                    {"full_name": "org/a", "permissions": "admin"},
                    repository_record("org/b", push=True),
                ]
            ],
        ),
    )
    transport, http_client = make_transport(api)
    try:
        directory = RepositoryDirectory(transport)
        names = await directory.list_repositories_for_installation(42)
        permissions = await directory.list_repository_permissions(42)
    finally:
        await http_client.aclose()

    assert names == ["org/a", "org/b"]
    assert permissions == {
        "org/a": PermissionDescriptor("org/a"),
        "org/b": PermissionDescriptor("org/b", push=True, pull=True),
    }
