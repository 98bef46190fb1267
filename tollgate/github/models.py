"""Typed domain models for GitHub App installations and scoped tokens."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import re
import types
import typing as typ
import urllib.parse

from .errors import InvalidArgumentError

_REPOSITORY_SEPARATOR = "/"
_NAME_PART = re.compile(r"[A-Za-z0-9_.-]+")
_RESERVED_NAME_PARTS = frozenset({".", ".."})

# The only permissions an issued token may carry. GitHub binds the token to
# this set regardless of what the installation itself is granted.
READ_ONLY_TOKEN_PERMISSIONS: typ.Mapping[str, str] = types.MappingProxyType(
    {
        "contents": "read",
        "content_references": "read",
        "metadata": "read",
    }
)


def _is_valid_name_part(part: str) -> bool:
    return (
        _NAME_PART.fullmatch(part) is not None and part not in _RESERVED_NAME_PARTS
    )


def validate_installation_id(installation_id: int) -> int:
    """Return ``installation_id`` if it is a positive integer.

    Raises
    ------
    InvalidArgumentError
        For booleans, non-integers, zero and negative values.

    """
    if (
        isinstance(installation_id, bool)
        or not isinstance(installation_id, int)
        or installation_id <= 0
    ):
        raise InvalidArgumentError.invalid_installation_id(installation_id)
    return installation_id


@dataclasses.dataclass(frozen=True, slots=True)
class Installation:
    """A GitHub App installation visible to the principal."""

    id: int


@dataclasses.dataclass(frozen=True, slots=True)
class InstallationSet:
    """Installations in upstream page order.

    Duplicate ids are not removed: GitHub does not repeat an installation
    across pages, and masking a repeat would hide an upstream fault.
    """

    installations: tuple[Installation, ...] = ()

    def __iter__(self) -> cabc.Iterator[Installation]:
        """Iterate installations in upstream order."""
        return iter(self.installations)

    def __len__(self) -> int:
        """Return the number of installations."""
        return len(self.installations)

    @property
    def ids(self) -> list[int]:
        """Return installation ids in upstream order."""
        return [installation.id for installation in self.installations]

    def id_present(self, installation_id: int) -> bool:
        """Return True when ``installation_id`` is one of the installations."""
        return any(inst.id == installation_id for inst in self.installations)


@dataclasses.dataclass(frozen=True, slots=True)
class PermissionDescriptor:
    """Capability flags GitHub reports for one repository under an installation.

    A repository missing from a permissions mapping has no determinable
    access; that is not the same as a descriptor whose flags are all False.
    """

    repo_full_name: str
    admin: bool = False
    push: bool = False
    pull: bool = False

    @classmethod
    def from_permissions_map(
        cls, repo_full_name: str, permissions: object
    ) -> PermissionDescriptor:
        """Read admin/push/pull flags from GitHub's free-form permissions map.

        A missing or non-object map, missing flags, and values that are not
        literally ``true`` all read as False.
        """
        flags = permissions if isinstance(permissions, cabc.Mapping) else {}
        return cls(
            repo_full_name=repo_full_name,
            admin=flags.get("admin") is True,
            push=flags.get("push") is True,
            pull=flags.get("pull") is True,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryName:
    """A validated ``owner/name`` repository reference."""

    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> RepositoryName:
        """Split ``value`` into owner and name.

        Each part must use GitHub's name alphabet (ASCII letters, digits,
        ``-``, ``_`` and ``.``) and must not be ``.`` or ``..``. URL syntax
        such as ``?`` or ``#`` therefore never reaches a request path.

        Raises
        ------
        InvalidArgumentError
            Unless ``value`` holds exactly one separator with a valid part on
            each side.

        """
        if not isinstance(value, str):
            raise InvalidArgumentError.malformed_repository_name(str(value))
        owner, separator, name = value.partition(_REPOSITORY_SEPARATOR)
        if not separator or not all(
            _is_valid_name_part(part) for part in (owner, name)
        ):
            raise InvalidArgumentError.malformed_repository_name(value)
        return cls(owner=owner, name=name)

    @property
    def path(self) -> str:
        """Return the ``/repos/{owner}/{name}`` lookup path, percent-encoded."""
        owner = urllib.parse.quote(self.owner, safe="")
        name = urllib.parse.quote(self.name, safe="")
        return f"/repos/{owner}/{name}"

    @property
    def full_name(self) -> str:
        """Return the ``owner/name`` form."""
        return f"{self.owner}{_REPOSITORY_SEPARATOR}{self.name}"

    def __str__(self) -> str:
        """Return the ``owner/name`` form."""
        return self.full_name


@dataclasses.dataclass(frozen=True, slots=True)
class TokenGrant:
    """Non-secret record of an issued token, used for logging and test doubles."""

    installation_id: int
    repo_full_name: str
    repository_id: int
    permissions: typ.Mapping[str, str] = dataclasses.field(
        default_factory=lambda: READ_ONLY_TOKEN_PERMISSIONS
    )
