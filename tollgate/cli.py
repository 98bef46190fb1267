"""Command-line access to installation discovery and scoped token issuance."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import typing as typ

import msgspec

from tollgate.github import (
    BrokerConfigError,
    CredentialBrokerError,
    create_broker,
)
from tollgate.logging import configure_logging, get_logger, log_warning

if typ.TYPE_CHECKING:
    from tollgate.github import AppInstallationBroker

logger = get_logger(__name__)

_EXIT_BROKER_ERROR = 1
_EXIT_CONFIG_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tollgate", description=__doc__)
    parser.add_argument(
        "--log-level",
        default=os.environ.get("TOLLGATE_LOG_LEVEL", "WARNING"),
        help="Log level (default: TOLLGATE_LOG_LEVEL or WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("installations", help="List installation ids")
    commands.add_parser("whoami", help="Print the principal's login")
    for name, help_text in (
        ("repositories", "List repositories under an installation"),
        ("permissions", "List admin/push/pull flags per repository"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("installation_id", type=int)
    token = commands.add_parser("token", help="Issue a read-only repository token")
    token.add_argument("installation_id", type=int)
    token.add_argument("repository", help="Repository as owner/name")
    return parser


async def _dispatch(broker: AppInstallationBroker, args: argparse.Namespace) -> object:
    match args.command:
        case "installations":
            installations = await broker.list_installations_for_principal()
            return installations.ids
        case "whoami":
            return {"login": await broker.get_identity()}
        case "repositories":
            return await broker.list_repositories_for_installation(args.installation_id)
        case "permissions":
            return await broker.list_repository_permissions(args.installation_id)
        case "token":
            token = await broker.issue_scoped_token(
                args.installation_id, args.repository
            )
            return {"repository": args.repository, "token": token}
    msg = f"unknown command: {args.command}"
    raise AssertionError(msg)


async def _run(args: argparse.Namespace) -> object:
    broker = create_broker()
    try:
        return await _dispatch(broker, args)
    finally:
        aclose = getattr(broker, "aclose", None)
        if aclose is not None:
            await aclose()


def main(argv: list[str] | None = None) -> int:
    """Run one broker operation and print its result as JSON.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when the broker operation fails, 2 when
        configuration is missing or invalid.

    """
    args = _build_parser().parse_args(argv)
    level, invalid = configure_logging(args.log_level)
    if invalid:
        log_warning(logger, "Invalid log level %r; using %s", args.log_level, level)

    try:
        result = asyncio.run(_run(args))
    except BrokerConfigError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return _EXIT_CONFIG_ERROR
    except CredentialBrokerError as exc:
        print(f"{type(exc).__name__} [{exc.step}]: {exc}", file=sys.stderr)
        return _EXIT_BROKER_ERROR

    print(msgspec.json.encode(result).decode("utf-8"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
