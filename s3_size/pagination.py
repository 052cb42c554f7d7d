from __future__ import annotations
"""Marker-based pagination over object listings."""
import logging
from typing import Iterator, Optional, Protocol

from .models import ObjectDescriptor, PageResult
from .services import ListingError

LOGGER = logging.getLogger(__name__)


class PageFetcher(Protocol):
    def list_objects_page(
        self,
        bucket: str,
        region: str | None = None,
        marker: Optional[str] = None,
    ) -> PageResult: ...


class PageLimitExceededError(ListingError):
    """Raised when a listing keeps reporting truncation past ``max_pages``."""


def next_marker(page: PageResult) -> str | None:
    """Return the cursor for the page after ``page``: its last key."""
    if page.objects:
        return page.objects[-1].key
    return page.continuation_marker


def iter_pages(
    fetcher: PageFetcher,
    bucket: str,
    region: str,
    *,
    marker: str | None = None,
    max_pages: int | None = None,
) -> Iterator[PageResult]:
    """Lazily yield object pages until the backend reports no truncation.

    Each request after the first resumes from the last key of the previous
    page. ``max_pages`` bounds the number of requests; ``None`` or ``0``
    means unbounded.

    Raises:
        TransportError: when a page request fails.
        PageLimitExceededError: when more than ``max_pages`` pages would be needed.
        ListingError: when a truncated page provides no cursor to resume from.
    """
    pages_fetched = 0
    while True:
        if max_pages and pages_fetched >= max_pages:
            raise PageLimitExceededError(
                f"Listing still truncated after {pages_fetched} page(s)",
                operation="ListObjects",
                bucket=bucket,
                region=region,
                pages_fetched=pages_fetched,
            )
        page = fetcher.list_objects_page(bucket, region, marker)
        pages_fetched += 1
        yield page
        if not page.is_truncated:
            return

        cursor = next_marker(page)
        if not cursor or cursor == marker:
            raise ListingError(
                "Truncated page did not advance the listing cursor",
                operation="ListObjects",
                bucket=bucket,
                region=region,
                pages_fetched=pages_fetched,
            )
        LOGGER.debug("Last key: %s", cursor)
        marker = cursor


def collect_objects(
    fetcher: PageFetcher,
    bucket: str,
    region: str,
    *,
    max_pages: int | None = None,
) -> list[ObjectDescriptor]:
    """Return every object of ``bucket`` in listing order.

    On failure the raised :class:`ListingError` carries the objects gathered
    from the pages that did succeed.
    """
    LOGGER.info("Retrieving '%s' from '%s'", bucket, region)
    objects: list[ObjectDescriptor] = []
    pages_fetched = 0
    try:
        for page in iter_pages(fetcher, bucket, region, max_pages=max_pages):
            objects.extend(page.objects)
            pages_fetched += 1
    except ListingError as exc:
        exc.objects = list(objects)
        exc.pages_fetched = pages_fetched
        raise
    LOGGER.debug("Collected %d object(s) in %d page(s) from '%s'", len(objects), pages_fetched, bucket)
    return objects
