"""Draining of page-numbered GitHub listings into complete lists."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import typing as typ
import urllib.parse

from .errors import UpstreamUnavailableError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx

    from .errors import BrokerStep

# GitHub page numbers start at 1; 0 means "no next page"
FIRST_PAGE = 1
NO_NEXT_PAGE = 0

T = typ.TypeVar("T")


@dataclasses.dataclass(frozen=True, slots=True)
class Page(typ.Generic[T]):
    """One page of a listing plus the number of the page after it."""

    items: typ.Sequence[T]
    next_page: int = NO_NEXT_PAGE


@contextlib.asynccontextmanager
async def step_timeout(step: BrokerStep, timeout_s: float) -> typ.AsyncIterator[None]:
    """Bound one upstream step, raising ``UpstreamUnavailableError`` on expiry.

    Cancellation of the enclosing task is not converted: it propagates as
    ``asyncio.CancelledError``.
    """
    try:
        async with asyncio.timeout(timeout_s):
            yield
    except TimeoutError as exc:
        raise UpstreamUnavailableError.timeout(step) from exc


def next_page_from_links(response: httpx.Response) -> int:
    """Return the page number of the ``rel="next"`` link, or ``NO_NEXT_PAGE``."""
    next_link = response.links.get("next")
    if not next_link:
        return NO_NEXT_PAGE
    url = next_link.get("url")
    if not url:
        return NO_NEXT_PAGE
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    raw_page = query.get("page")
    if not raw_page:
        return NO_NEXT_PAGE
    try:
        page = int(raw_page[0])
    except ValueError:
        return NO_NEXT_PAGE
    return max(page, NO_NEXT_PAGE)


class PageCursorEnumerator(typ.Generic[T]):
    """Drain a page-numbered listing into one list.

    ``fetch`` receives a page number and returns a :class:`Page`. Requests
    continue while ``next_page`` differs from ``NO_NEXT_PAGE``; an empty page
    with a next page does not end the listing. Each page runs under its own
    timeout scope, released before the next page starts. Any failure aborts
    the whole listing and no partial result is returned.

    Examples
    --------
    >>> async def fetch(page: int) -> Page[int]:
    ...     return Page(items=[page], next_page=page + 1 if page < 3 else 0)
    >>> enumerator = PageCursorEnumerator(
    ...     fetch, step=BrokerStep.LIST_INSTALLATIONS, timeout_s=5
    ... )
    >>> asyncio.run(enumerator.drain())
    [1, 2, 3]

    """

    def __init__(
        self,
        fetch: cabc.Callable[[int], cabc.Awaitable[Page[T]]],
        *,
        step: BrokerStep,
        timeout_s: float,
    ) -> None:
        """Store the fetch callable, step name and per-page timeout."""
        self._fetch = fetch
        self._step = step
        self._timeout_s = timeout_s

    async def drain(self) -> list[T]:
        """Fetch every page and return the concatenated items."""
        items: list[T] = []
        page_number = FIRST_PAGE
        while True:
            async with step_timeout(self._step, self._timeout_s):
                page = await self._fetch(page_number)
            items.extend(page.items)
            if page.next_page == NO_NEXT_PAGE:
                return items
            page_number = page.next_page
