"""Typed models for the GoCardless API resources the ledger reads."""

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ResponseDecodeError


class Resource(BaseModel):
    """Base for API resources; unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore", frozen=True)


class Creditor(Resource):
    """The merchant account whose ledger is synthesized."""
    id: str = Field(..., description="Creditor ID (CR...)")
    name: str = Field(..., description="Display name of the creditor")
    fx_payout_currency: Optional[str] = Field(None, description="Currency payouts are made in")


class MandateLinks(Resource):
    creditor: str
    customer_bank_account: Optional[str] = None
    customer: Optional[str] = None


class Mandate(Resource):
    """Authorization for the creditor to collect from a payer's bank account."""
    id: str
    scheme: str = Field(..., description="Payment scheme, e.g. sepa_core or bacs")
    reference: Optional[str] = None
    status: Optional[str] = None
    links: MandateLinks


class BankAccount(Resource):
    """Customer or creditor bank account, with the account number masked."""
    id: str
    account_number_ending: Optional[str] = None
    bank_name: Optional[str] = None
    account_holder_name: Optional[str] = None
    currency: Optional[str] = None


class PaymentLinks(Resource):
    mandate: str
    creditor: Optional[str] = None


class Payment(Resource):
    id: str
    amount: int = Field(..., description="Amount in minor units")
    currency: str
    status: str
    created_at: str
    charge_date: str
    description: Optional[str] = None
    reference: Optional[str] = None
    links: PaymentLinks


class RefundLinks(Resource):
    payment: Optional[str] = None
    mandate: Optional[str] = None


class Refund(Resource):
    id: str
    amount: int = Field(..., description="Amount in minor units")
    currency: str
    status: str
    created_at: str
    reference: Optional[str] = None
    links: RefundLinks


class PayoutLinks(Resource):
    creditor_bank_account: str
    creditor: Optional[str] = None


class Payout(Resource):
    id: str
    amount: int = Field(..., description="Amount in minor units")
    deducted_fees: int = Field(default=0, description="Fees deducted from the payout in minor units")
    currency: str
    status: str
    created_at: str
    arrival_date: Optional[str] = None
    reference: Optional[str] = None
    links: PayoutLinks


class EventDetails(Resource):
    reason_code: Optional[str] = None
    description: Optional[str] = None
    cause: Optional[str] = None
    origin: Optional[str] = None


class EventLinks(Resource):
    payment: Optional[str] = None
    refund: Optional[str] = None
    payout: Optional[str] = None
    mandate: Optional[str] = None


class Event(Resource):
    """Immutable record of a state transition on a payment or refund."""
    id: str
    action: str
    resource_type: str = Field(..., description="Plural resource type, e.g. 'payments'")
    created_at: str
    details: EventDetails = Field(default_factory=EventDetails)
    links: EventLinks = Field(default_factory=EventLinks)

    @property
    def resource_class(self) -> str:
        """Singular type of the affected resource ('payments' -> 'payment')."""
        return self.resource_type[:-1]

    @property
    def resource_id(self) -> Optional[str]:
        return getattr(self.links, self.resource_class, None)


class Balance(Resource):
    balance_type: str
    amount: Optional[int] = None
    currency: str


class TemporaryAccessToken(Resource):
    token: str
    links: Dict[str, Any] = Field(default_factory=dict)


# Singular resource type -> model; the collection path is the plural (type + "s")
RESOURCE_MODELS: Dict[str, Type[Resource]] = {
    "creditor": Creditor,
    "mandate": Mandate,
    "customer_bank_account": BankAccount,
    "creditor_bank_account": BankAccount,
    "payment": Payment,
    "refund": Refund,
    "payout": Payout,
    "event": Event,
    "balance": Balance,
    "temporary_access_token": TemporaryAccessToken,
}


def singular(collection: str) -> str:
    """Collection name to resource type ('customer_bank_accounts' -> 'customer_bank_account')."""
    return collection[:-1] if collection.endswith("s") else collection


def is_known_type(resource_type: str) -> bool:
    return resource_type in RESOURCE_MODELS


def decode_resource(resource_type: str, data: Any) -> Resource:
    """Decode a raw API object into its model.

    Args:
        resource_type: Singular resource type.
        data: The raw JSON object.

    Returns:
        The decoded resource.

    Raises:
        ResponseDecodeError: If the type is unknown or the shape doesn't match.
    """
    model = RESOURCE_MODELS.get(resource_type)
    if model is None:
        raise ResponseDecodeError(f"Unknown resource type '{resource_type}'")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ResponseDecodeError(f"Malformed {resource_type} in API response: {e}") from e
