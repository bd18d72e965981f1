"""Pagination helpers for GitHub list endpoints.

GitHub paginates list results with a Link header pointing at the first,
previous, next and last pages, using either numbered pages (``page=``) or
opaque cursors (``after=``/``before=``). The helpers here walk those pages
lazily: a page is only requested once the previous one has been consumed.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

import httpx

from octorest.response import Response
from octorest.urls import QueryOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")
OptionsT = TypeVar("OptionsT", bound="ListOptions")


class ListOptions(QueryOptions):
    """Pagination parameters shared by all list endpoints.

    Endpoint specific option models subclass this so every list call has a
    ``page``/``after`` slot for the pagination helpers to fill in.
    """

    page: int = 0
    per_page: int = 0
    after: str = ""
    before: str = ""


PageFetcher = Callable[[OptionsT], Awaitable[tuple[list[T], Response]]]


def _advance(options: OptionsT, response: Response) -> OptionsT | None:
    if response.next_page is not None:
        return options.model_copy(update={"page": response.next_page})
    if response.after:
        return options.model_copy(update={"after": response.after})
    return None


def next_request(request: httpx.Request, response: Response) -> httpx.Request | None:
    """Build the request for the page after ``response``.

    Only the ``page`` (or ``after``) query parameter is replaced; filters,
    sorting and headers of ``request`` are kept.

    Args:
        request: Request that produced ``response``.
        response: Metadata of the current page.

    Returns:
        Request for the next page, or None if ``response`` is the last page.
    """
    if response.next_page is not None:
        url = request.url.copy_set_param("page", str(response.next_page))
    elif response.after:
        url = request.url.copy_set_param("after", response.after)
    else:
        return None

    return httpx.Request(
        request.method,
        url,
        headers=request.headers,
        content=request.content,
        extensions=request.extensions,
    )


async def scan_pages(
    fetch: PageFetcher[OptionsT, T],
    options: OptionsT | None = None,
) -> AsyncIterator[tuple[list[T], Response]]:
    """Iterate over every page of a list call.

    Args:
        fetch: Coroutine function fetching one page for the given options.
        options: Options for the first page. A default ``ListOptions`` is
            used when None.

    Yields:
        Tuple of (items list, response metadata) for each page.

    Raises:
        Exception: Whatever ``fetch`` raises; iteration stops there.
    """
    current: Any = options if options is not None else ListOptions()
    if not isinstance(current, ListOptions):
        raise TypeError(f"options must be ListOptions, got {type(current).__name__}")

    page_num = 1
    while current is not None:
        items, response = await fetch(current)
        yield items, response

        current = _advance(current, response)
        if current is not None:
            page_num += 1
            logger.debug("Following pagination to page %d", page_num)


async def scan(
    fetch: PageFetcher[OptionsT, T],
    options: OptionsT | None = None,
) -> AsyncIterator[T]:
    """Iterate over every item of a list call, page by page.

    Args:
        fetch: Coroutine function fetching one page for the given options.
        options: Options for the first page, or None for defaults.

    Yields:
        Items in the order the API returns them.
    """
    async for items, _ in scan_pages(fetch, options):
        for item in items:
            yield item


async def scan_and_collect(
    fetch: PageFetcher[OptionsT, T],
    options: OptionsT | None = None,
) -> list[T]:
    """Collect all items of a list call into a single list."""
    return [item async for item in scan(fetch, options)]
