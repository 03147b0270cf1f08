"""Turns single payments, refunds and payouts into ledger transactions."""

import logging
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional, Union

from ..client.cache import ObjectResolver
from ..client.resources import BankAccount, Event, Mandate, Payment, Payout, Refund
from ..dates import parse_date
from ..errors import CustomerDataRemovedError
from ..localization import localize_text
from .models import ResourceClass, Transaction

logger = logging.getLogger(__name__)

LedgerObject = Union[Payment, Refund, Payout]

# Statuses in which an object is shown as booked. Failed/charged back payments
# and bounced/returned refunds are booked and countered by a negative booking.
BOOKED_STATUSES: Dict[ResourceClass, FrozenSet[str]] = {
    ResourceClass.PAYMENT: frozenset({"confirmed", "paid_out", "failed", "charged_back"}),
    ResourceClass.PAYOUT: frozenset({"paid"}),
    ResourceClass.REFUND: frozenset({"submitted", "paid", "bounced", "funds_returned"}),
}

SCHEME_LABELS = {
    "ach": "ACH",
    "autogiro": "Autogiro",
    "bacs": "Bacs",
    "becs": "BECS",
    "becs_nz": "BECS NZ",
    "betalingsservice": "Betalingsservice",
    "faster_payments": "Faster Payments",
    "pad": "PAD",
    "pay_to": "PayTo",
}

ACCOUNT_NUMBER_MASK = "····"


def to_major_units(minor: int) -> Decimal:
    """Convert an integer amount in minor units to a decimal in major units."""
    return Decimal(minor).scaleb(-2)


def masked_account_number(bank_account: BankAccount) -> Optional[str]:
    """Format the masked account number and bank name, leaving out missing parts."""
    parts = []
    if bank_account.account_number_ending:
        parts.append(f"{ACCOUNT_NUMBER_MASK}{bank_account.account_number_ending}")
    if bank_account.bank_name:
        parts.append(f"({bank_account.bank_name})")
    return " ".join(parts) or None


def is_booked(resource_class: ResourceClass, status: str) -> bool:
    """Whether an object with the given status is a final ledger entry.

    Raises:
        ValueError: If the class is not payment, refund or payout.
    """
    try:
        statuses = BOOKED_STATUSES[ResourceClass(resource_class)]
    except (KeyError, ValueError):
        raise ValueError(f"Invalid API class {resource_class}") from None
    return status in statuses


class TransactionSynthesizer:
    """Maps a GoCardless object plus its resolved relations to a Transaction."""

    def __init__(self, resolver: ObjectResolver, language: Optional[str] = None):
        self.resolver = resolver
        self.language = language

    def _text(self, en: str, de: str) -> str:
        return localize_text(en, de, self.language)

    def scheme_label(self, scheme: str) -> str:
        if scheme == "sepa_core":
            return self._text("SEPA Core", "SEPA-Basislastschrift")
        return SCHEME_LABELS.get(scheme, scheme)

    def synthesize(self, resource_class: ResourceClass, obj: LedgerObject) -> List[Transaction]:
        """Build all transactions for an object.

        Payouts yield a second transaction for the deducted fees, which the
        API only reports as a payout field.
        """
        transactions = [self.build_transaction(resource_class, obj)]
        if resource_class == ResourceClass.PAYOUT:
            transactions.append(self.build_fee_transaction(obj))
        return transactions

    def build_transaction(self, resource_class: ResourceClass, obj: LedgerObject) -> Transaction:
        """Build the transaction for a payment, refund or payout.

        Args:
            resource_class: Class of the object.
            obj: The API object.

        Returns:
            The synthesized Transaction.
        """
        resource_class = ResourceClass(resource_class)
        payment: Optional[Payment] = None
        mandate: Optional[Mandate] = None

        if resource_class == ResourceClass.PAYOUT:
            bank_account = self.resolver.resolve("creditor_bank_account", obj.links.creditor_bank_account)
        else:
            if resource_class == ResourceClass.REFUND and obj.links.payment is not None:
                payment = self.resolver.resolve("payment", obj.links.payment)
            mandate = self.resolver.resolve_mandate(obj)
            bank_account = self._customer_bank_account(mandate)

        transaction = Transaction(
            amount=to_major_units(obj.amount),
            booked=is_booked(resource_class, obj.status),
            booking_date=parse_date(obj.created_at),
            currency=obj.currency,
            reference_id=obj.id,
            end_to_end_reference=obj.reference,
            booking_text="",
        )

        if bank_account is not None:
            transaction.account_number = masked_account_number(bank_account)
            transaction.name = bank_account.account_holder_name
        elif resource_class != ResourceClass.PAYOUT:
            transaction.name = "(" + self._text("Removed customer", "Entfernte Kund:in") + ")"

        if resource_class == ResourceClass.PAYMENT:
            transaction.booking_date = parse_date(obj.charge_date)
            transaction.booking_text = self.scheme_label(mandate.scheme) + self._text(" Payment", "-Zahlung")
            transaction.mandate_reference = mandate.reference
            transaction.purpose = obj.description

        elif resource_class == ResourceClass.REFUND:
            # refunds are debit transactions
            transaction.amount = to_major_units(-obj.amount)
            transaction.booking_text = self._text("Refund", "Erstattung")
            transaction.purpose = self._text("Refund", "Erstattung")
            if payment is not None:
                transaction.reference_id = f"{obj.id}/{payment.id}"
                if payment.description is not None:
                    transaction.purpose = f"{transaction.purpose}: {payment.description}"

        else:
            # payouts are debit transactions
            transaction.amount = to_major_units(-obj.amount)
            transaction.booking_text = self._text("Payout", "Auszahlung")
            transaction.purpose = self._text("Payout", "Auszahlung")
            transaction.value_date = parse_date(obj.arrival_date)

        return transaction

    def build_fee_transaction(self, payout: Payout) -> Transaction:
        """Build the separate fee line for a payout."""
        return Transaction(
            amount=to_major_units(-payout.deducted_fees),
            booked=is_booked(ResourceClass.PAYOUT, payout.status),
            booking_date=parse_date(payout.created_at),
            booking_text=self._text("Fees", "Gebühren"),
            currency=payout.currency,
            name="GoCardless",
            reference_id=payout.id,
            purpose=self._text("Deducted fees", "Abgezogene Gebühren"),
        )

    def build_negative_transaction(
        self,
        resource_class: ResourceClass,
        event: Event,
        obj: Union[Payment, Refund],
    ) -> Transaction:
        """Build the counter-booking of an object for a reversal event."""
        transaction = self.build_transaction(resource_class, obj)
        transaction.amount = -transaction.amount
        transaction.booking_date = parse_date(event.created_at)
        return transaction

    def _customer_bank_account(self, mandate: Mandate) -> Optional[BankAccount]:
        bank_account_id = mandate.links.customer_bank_account
        if bank_account_id is None:
            return None
        try:
            return self.resolver.resolve("customer_bank_account", bank_account_id)
        except CustomerDataRemovedError:
            logger.info(f"Customer data of mandate {mandate.id} was removed, omitting counterparty")
            return None
