"""Models for synthesized ledger output."""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ResourceClass(str, enum.Enum):
    """Classes of API objects that are turned into transactions."""
    PAYMENT = "payment"
    REFUND = "refund"
    PAYOUT = "payout"


class BalanceType(str, enum.Enum):
    """Balance types reported by the balances endpoint."""
    CONFIRMED_FUNDS = "confirmed_funds"
    PENDING_PAYMENTS_SUBMITTED = "pending_payments_submitted"
    PENDING_PAYOUTS = "pending_payouts"


class Transaction(BaseModel):
    """A ledger transaction as handed to the accounting application."""
    amount: Decimal = Field(..., description="Signed amount in major units")
    booked: bool = Field(..., description="Final entry that will not be retracted")
    booking_date: datetime = Field(..., description="Booking date")
    value_date: Optional[datetime] = Field(None, description="Value date (payout arrival)")
    currency: str = Field(..., description="Three-letter currency code")
    name: Optional[str] = Field(None, description="Counterparty name")
    account_number: Optional[str] = Field(None, description="Masked counterparty account")
    reference_id: str = Field(..., description="GoCardless object ID(s)")
    end_to_end_reference: Optional[str] = Field(None, description="Reference sent to the bank")
    mandate_reference: Optional[str] = Field(None, description="Mandate reference")
    booking_text: str = Field(..., description="Short booking label")
    purpose: Optional[str] = Field(None, description="Free-text purpose")


class BalanceAmount(BaseModel):
    amount: Decimal = Field(..., description="Balance in major units")
    currency: str = Field(..., description="Three-letter currency code")


class Account(BaseModel):
    """The single account exposed for a creditor."""
    account_number: str = Field(..., description="Creditor ID")
    name: str = Field(default="GoCardless")
    owner: str = Field(..., description="Creditor display name")
    currency: Optional[str] = Field(None, description="Payout currency")
    portfolio: bool = False
    type: str = Field(default="other")


class AccountResults(BaseModel):
    """Result of one refresh."""
    balances: List[BalanceAmount] = Field(default_factory=list)
    pending_balances: List[BalanceAmount] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return counts and totals without the individual transactions."""
        booked = [t for t in self.transactions if t.booked]
        return {
            "balances": [{"amount": str(b.amount), "currency": b.currency} for b in self.balances],
            "pending_balances": [
                {"amount": str(b.amount), "currency": b.currency} for b in self.pending_balances
            ],
            "statistics": {
                "total_transactions": len(self.transactions),
                "total_booked": len(booked),
                "total_pending": len(self.transactions) - len(booked),
            },
        }

    def to_full_dict(self) -> Dict[str, Any]:
        """Return the summary plus every transaction."""
        result = self.to_summary_dict()
        result["transactions"] = [t.model_dump(mode="json") for t in self.transactions]
        return result
