"""GoCardless API client: HTTP, pagination, object cache and resource models."""

from .http import GoCardlessClient
from .cache import ObjectCache, ObjectResolver
from .pagination import CollectionIterator
from .context import RefreshContext
from .resources import (
    Resource,
    Creditor,
    Mandate,
    BankAccount,
    Payment,
    Refund,
    Payout,
    Event,
    EventDetails,
    Balance,
    decode_resource,
)

__all__ = [
    "GoCardlessClient",
    "ObjectCache",
    "ObjectResolver",
    "CollectionIterator",
    "RefreshContext",
    # Resources
    "Resource",
    "Creditor",
    "Mandate",
    "BankAccount",
    "Payment",
    "Refund",
    "Payout",
    "Event",
    "EventDetails",
    "Balance",
    "decode_resource",
]
