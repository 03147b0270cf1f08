"""Per-refresh bundle of client, object cache and resolver."""

from typing import Any, Dict, Optional

from .cache import ObjectCache, ObjectResolver
from .http import GoCardlessClient
from .pagination import CollectionIterator


class RefreshContext:
    """State owned by exactly one refresh; discard it when the refresh ends."""

    def __init__(self, client: GoCardlessClient):
        self.client = client
        self.cache = ObjectCache()
        self.resolver = ObjectResolver(client, self.cache)

    def collection(self, name: str, params: Optional[Dict[str, Any]] = None) -> CollectionIterator:
        """Start a new paginated query sharing this refresh's cache."""
        return CollectionIterator(self.client, self.cache, name, params)
