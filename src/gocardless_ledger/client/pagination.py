"""Cursor pagination over GoCardless API collections."""

import logging
from typing import Any, Dict, Iterator, List, Optional

from .cache import ObjectCache
from .http import GoCardlessClient
from .resources import Resource, decode_resource, is_known_type, singular
from ..errors import ResponseDecodeError

logger = logging.getLogger(__name__)


class CollectionIterator:
    """
    Lazy, finite, non-restartable iterator over a paginated collection.

    One GET is issued per page; the page's ``meta.cursors.after`` becomes the
    ``after`` parameter of the next request, and iteration stops once a page
    carries no cursor. Objects side-loaded under ``linked`` are put into the
    object cache before any of the page's own items are yielded.
    """

    def __init__(
        self,
        client: GoCardlessClient,
        cache: ObjectCache,
        collection: str,
        params: Optional[Dict[str, Any]] = None,
    ):
        self.client = client
        self.cache = cache
        self.collection = collection
        self.resource_type = singular(collection)
        self.params: Dict[str, Any] = dict(params or {})
        self.pages_fetched = 0
        self._buffer: List[Resource] = []
        self._index = 0
        self._cursor: Optional[str] = None
        self._exhausted = False

    def __iter__(self) -> Iterator[Resource]:
        return self

    def __next__(self) -> Resource:
        while self._index >= len(self._buffer):
            if self._exhausted:
                raise StopIteration
            self._fetch_page()

        item = self._buffer[self._index]
        self._index += 1
        return item

    def first(self) -> Optional[Resource]:
        """Return the next item, or None if the collection is empty."""
        return next(self, None)

    def _fetch_page(self) -> None:
        params = dict(self.params)
        if self._cursor is not None:
            params["after"] = self._cursor

        response = self.client.get(self.collection, params)
        self.pages_fetched += 1

        items = response.get(self.collection)
        if not isinstance(items, list):
            raise ResponseDecodeError(f"Response for {self.collection} has no '{self.collection}' list")

        self._cache_linked(response.get("linked") or {})

        self._buffer = [decode_resource(self.resource_type, item) for item in items]
        self._index = 0
        self._cursor = ((response.get("meta") or {}).get("cursors") or {}).get("after")
        if self._cursor is None:
            self._exhausted = True

        logger.debug(
            f"Fetched page {self.pages_fetched} of {self.collection} "
            f"with {len(self._buffer)} items"
        )

    def _cache_linked(self, linked: Dict[str, Any]) -> None:
        for linked_collection, objects in linked.items():
            linked_type = singular(linked_collection)
            if not is_known_type(linked_type):
                logger.debug(f"Not caching linked objects of unknown type '{linked_collection}'")
                continue
            for obj in objects:
                self.cache.put(linked_type, decode_resource(linked_type, obj))
