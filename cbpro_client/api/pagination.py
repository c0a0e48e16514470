"""
Cursor pagination for list endpoints.

Coinbase Pro returns ``CB-BEFORE`` and ``CB-AFTER`` headers on paginated
responses. Passing the ``after`` value back as a query parameter returns the
next (older) page; ``before`` walks towards newer items.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from ..data.models import Model
from .decoder import decode


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=Model)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Cursor:
    """Continuation tokens of one page."""

    before: Optional[str] = None
    after: Optional[str] = None

    @classmethod
    def from_headers(cls, headers) -> "Cursor":
        return cls(
            before=headers.get("CB-BEFORE") or None,
            after=headers.get("CB-AFTER") or None,
        )

    def get(self, direction: str) -> Optional[str]:
        return self.after if direction == "after" else self.before


@dataclass(frozen=True)
class Page(Generic[M]):
    items: List[M]
    cursor: Cursor = field(default_factory=Cursor)


class Paginator(Generic[M]):
    """
    Lazy, forward-only iterator over every item of a paginated endpoint.

    Each page is a fresh signed request. Items are yielded in upstream order.
    If a page fails, the error is raised from ``next()``; items already
    yielded are not retracted, so the caller holds a possibly incomplete list.
    The iterator cannot be restarted; create a new Paginator instead.
    """

    def __init__(self, client, path: str, model: Type[M], endpoint_class: str = "accounts",
                 limit: Optional[int] = None, params: Optional[Dict[str, Any]] = None,
                 direction: str = "after", timeout: Optional[float] = None):
        """
        Args:
            client: CoinbaseProClient used to fetch each page
            path: list endpoint path (e.g. "/accounts/{id}/ledger")
            model: model class of the items
            endpoint_class: rate-limit class of the endpoint
            limit: page size, 1-100 (server default when None)
            params: extra query parameters sent with every page
            direction: "after" (older items, default) or "before" (newer items)
            timeout: per-page request timeout in seconds
        """
        if direction not in ("after", "before"):
            raise ValueError(f"direction must be 'after' or 'before', got {direction!r}")
        if limit is not None and not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}")

        self.client = client
        self.path = path
        self.model = model
        self.endpoint_class = endpoint_class
        self.limit = limit
        self.params = dict(params or {})
        self.direction = direction
        self.timeout = timeout
        self.pages_fetched = 0

        self._pages = self._iter_pages()
        self._items = (item for page in self._pages for item in page.items)

    def _iter_pages(self) -> Iterator[Page[M]]:
        cursor_value: Optional[str] = None
        while True:
            params = dict(self.params)
            if self.limit is not None:
                params["limit"] = self.limit
            if cursor_value is not None:
                params[self.direction] = cursor_value

            response = self.client.fetch("GET", self.path, self.endpoint_class,
                                         params=params, timeout=self.timeout)
            items = decode(response, self.model, many=True, path=self.path)
            cursor = Cursor.from_headers(response.headers)
            self.pages_fetched += 1
            logger.debug(f"Fetched page {self.pages_fetched} of {self.path}: "
                         f"{len(items)} items")

            yield Page(items=items, cursor=cursor)

            cursor_value = cursor.get(self.direction)
            if not cursor_value or not items:
                return

    def pages(self) -> Iterator[Page[M]]:
        """Iterate page by page instead of item by item (shares position with ``next()``)."""
        return self._pages

    def __iter__(self) -> "Paginator[M]":
        return self

    def __next__(self) -> M:
        return next(self._items)

    def to_list(self, max_items: Optional[int] = None) -> List[M]:
        """Consume the iterator into a list, stopping after ``max_items`` if given."""
        result: List[M] = []
        for item in self:
            result.append(item)
            if max_items is not None and len(result) >= max_items:
                break
        return result
