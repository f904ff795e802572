"""Offset/limit traversal of a remote collection until its total is reached."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

from scripts.migration.errors import ClerkAPIError, TransportError
from scripts.migration.models import Page, PaginationCursor

logger = logging.getLogger("migration.paginator")

FetchPage = Callable[[int, int], Page]


class Paginator:
    """Walk a collection page by page.

    The total reported with the first page is kept for the whole traversal;
    later totals are ignored. When the first page carries no total, paging
    continues until a page comes back shorter than page_size. Any failed
    page request aborts the traversal with TransportError and nothing
    fetched so far is returned.
    """

    def __init__(self, fetch_page: FetchPage, page_size: int, entity_type: str = "") -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._fetch_page = fetch_page
        self.page_size = page_size
        self.entity_type = entity_type
        self.requests_made = 0

    def iter_pages(self) -> Iterator[list[dict[str, Any]]]:
        cursor = PaginationCursor(page_size=self.page_size)
        while True:
            try:
                page = self._fetch_page(cursor.offset, cursor.page_size)
            except ClerkAPIError as exc:
                raise TransportError(
                    f"Fetching {self.entity_type or 'page'} at offset {cursor.offset} failed: {exc}"
                ) from exc
            first_page = self.requests_made == 0
            self.requests_made += 1

            if first_page:
                cursor.total_count = page.total_count
                if cursor.total_count is None:
                    logger.warning(
                        "No total reported with the first page, paging until a short page",
                        extra={"entity_type": self.entity_type},
                    )

            cursor.advance(len(page.items))
            yield page.items

            if cursor.exhausted:
                return
            if cursor.total_count is None and len(page.items) < cursor.page_size:
                return
            if not page.items:
                # Collection shrank below the captured total; stop instead of spinning
                logger.warning(
                    "Empty page before reaching reported total (%d/%d)",
                    cursor.fetched,
                    cursor.total_count,
                    extra={"entity_type": self.entity_type, "offset": cursor.offset},
                )
                return

    def fetch_all(self) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for page_items in self.iter_pages():
            items.extend(page_items)
        logger.info(
            "Fetched %d %s",
            len(items),
            self.entity_type or "items",
            extra={"entity_type": self.entity_type, "records": len(items)},
        )
        return items


def fetch_all(fetch_page: FetchPage, page_size: int, entity_type: str = "") -> list[dict[str, Any]]:
    """Convenience wrapper: Paginator(fetch_page, page_size).fetch_all()."""
    return Paginator(fetch_page, page_size, entity_type).fetch_all()
