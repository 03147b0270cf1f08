"""Refresh-scoped object cache and cache-first resolver."""

import logging
from typing import Dict, Optional, Tuple, Union

from .http import GoCardlessClient
from .resources import Mandate, Payment, Refund, Resource, decode_resource
from ..errors import ResponseDecodeError

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


class ObjectCache:
    """Keyed store of API resources for one refresh.

    Populated both by direct fetches and by objects side-loaded into
    paginated responses. The first object stored for a ``(type, id)`` wins;
    entries are never refreshed or invalidated.
    """

    def __init__(self):
        self._objects: Dict[CacheKey, Resource] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def get(self, resource_type: str, resource_id: str) -> Optional[Resource]:
        return self._objects.get((resource_type, resource_id))

    def put(self, resource_type: str, resource: Resource) -> Resource:
        """Store a resource unless one is already cached under its key.

        Returns:
            The cached resource (the existing one if the key was taken).
        """
        return self._objects.setdefault((resource_type, resource.id), resource)


class ObjectResolver:
    """Fetches single resources by type and id, cache first."""

    def __init__(self, client: GoCardlessClient, cache: ObjectCache):
        self.client = client
        self.cache = cache

    def resolve(self, resource_type: str, resource_id: str) -> Resource:
        """Return a resource from the cache or fetch it from ``<type>s/<id>``.

        Args:
            resource_type: Singular resource type, e.g. ``mandate``.
            resource_id: ID of the resource.

        Returns:
            The decoded resource.

        Raises:
            CustomerDataRemovedError: The resource's personal data was erased.
            ApiError: Any other API failure.
        """
        cached = self.cache.get(resource_type, resource_id)
        if cached is not None:
            return cached

        collection = f"{resource_type}s"
        response = self.client.get(f"{collection}/{resource_id}")
        if collection not in response:
            raise ResponseDecodeError(f"Response for {collection}/{resource_id} has no '{collection}' key")

        resource = decode_resource(resource_type, response[collection])
        return self.cache.put(resource_type, resource)

    def resolve_mandate(self, obj: Union[Payment, Refund]) -> Mandate:
        """Resolve the mandate of a payment or refund.

        Refunds only link the mandate directly when they were created
        outside of a payment; otherwise the owning payment's mandate is used.
        """
        mandate_id = obj.links.mandate
        if mandate_id is None:
            payment = self.resolve("payment", obj.links.payment)
            mandate_id = payment.links.mandate
        return self.resolve("mandate", mandate_id)
