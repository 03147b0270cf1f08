"""Negative bookings for failed, charged back and bounced objects."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..client.context import RefreshContext
from ..client.resources import Event, Payment, Refund
from ..errors import ReconciliationError
from ..localization import localize_text
from .models import ResourceClass, Transaction
from .synthesizer import TransactionSynthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventQuery:
    """One pass over the events collection."""
    resource_type: str
    action: str

    @property
    def include(self) -> str:
        return self.resource_type[:-1]

    def params(self, since_datetime: str) -> Dict[str, str]:
        return {
            "resource_type": self.resource_type,
            "include": self.include,
            "action": self.action,
            "created_at[gte]": since_datetime,
        }


# Later queries overwrite the results of earlier ones for the same object
REVERSAL_QUERIES: Tuple[EventQuery, ...] = (
    EventQuery("payments", "failed"),
    EventQuery("payments", "charged_back"),
    EventQuery("payments", "chargeback_settled"),
    EventQuery("refunds", "failed"),
    EventQuery("refunds", "funds_returned"),
)

# A chargeback on a payment in one of these statuses was itself reversed
CHARGEBACK_REVERSED_STATUSES = frozenset({"confirmed", "paid_out"})


def _with_detail(text: str, detail: Optional[str]) -> str:
    return f"{text} ({detail})" if detail else text


def _prefix_purpose(prefix: str, purpose: Optional[str]) -> str:
    return f"{prefix}: {purpose}" if purpose else prefix


class ReversalReconciler:
    """
    Runs the ordered reversal event queries of a refresh.

    Payment failures are emitted once per event, since a failed payment may
    be retried and every retry shows up as its own payment. Chargebacks and
    refund failures are kept in a map keyed by the affected object's id, so
    the latest event in query order wins.
    """

    def __init__(
        self,
        context: RefreshContext,
        synthesizer: TransactionSynthesizer,
        language: Optional[str] = None,
    ):
        self.context = context
        self.synthesizer = synthesizer
        self.language = language

    def _text(self, en: str, de: str) -> str:
        return localize_text(en, de, self.language)

    def reconcile(self, account_id: str, since_datetime: str) -> List[Transaction]:
        """Collect the reversal transactions of a creditor since a point in time.

        Args:
            account_id: Creditor ID of the account being refreshed.
            since_datetime: Lower bound as ``YYYY-MM-DDThh:mm:ssZ``.

        Returns:
            All payment failure transactions followed by one transaction per
            charged back payment or bounced refund.

        Raises:
            ReconciliationError: A settled chargeback has no original event.
        """
        failures: List[Transaction] = []
        reversals: Dict[str, Transaction] = {}

        for query in REVERSAL_QUERIES:
            for event in self.context.collection("events", query.params(since_datetime)):
                if event.resource_id is None:
                    raise ReconciliationError(f"Event {event.id} does not link its {event.resource_class}")
                obj = self.context.resolver.resolve(event.resource_class, event.resource_id)
                mandate = self.context.resolver.resolve_mandate(obj)

                # the events API can't filter by creditor and resource type at once
                if mandate.links.creditor != account_id:
                    logger.debug(f"Skipping event {event.id} of creditor {mandate.links.creditor}")
                    continue

                if event.resource_class == "payment" and event.action == "failed":
                    failures.append(self._failed_payment(event, obj))

                elif event.resource_class == "payment" and event.action in ("charged_back", "chargeback_settled"):
                    if obj.status in CHARGEBACK_REVERSED_STATUSES:
                        logger.info(f"Chargeback of payment {obj.id} was reversed, omitting it")
                        continue
                    reversals[obj.id] = self._charged_back_payment(event, obj)

                elif event.resource_class == "refund" and event.action in ("failed", "funds_returned"):
                    reversals[obj.id] = self._failed_refund(event, obj)

        logger.info(
            f"Reconciled {len(failures)} payment failures and "
            f"{len(reversals)} chargebacks/refund failures for {account_id}"
        )
        return failures + list(reversals.values())

    def _failed_payment(self, event: Event, payment: Payment) -> Transaction:
        # a retry creates a new payment transaction, so the failure is final
        transaction = self.synthesizer.build_negative_transaction(ResourceClass.PAYMENT, event, payment)
        transaction.booked = True
        transaction.booking_text = _with_detail(
            self._text("Failed", "Fehlgeschlagene") + " " + transaction.booking_text,
            event.details.reason_code,
        )
        transaction.purpose = _prefix_purpose(
            _with_detail(self._text("Failed Payment", "Fehlgeschlagene Zahlung"), event.details.description),
            transaction.purpose,
        )
        return transaction

    def _charged_back_payment(self, event: Event, payment: Payment) -> Transaction:
        # chargebacks can still be cancelled by the customer's bank until settled
        original_event = event
        if event.action == "chargeback_settled":
            original_event = self._original_chargeback(payment)

        transaction = self.synthesizer.build_negative_transaction(ResourceClass.PAYMENT, event, payment)
        transaction.booked = event.action == "chargeback_settled"
        transaction.booking_text = _with_detail(
            self._text("Charged back", "Rückbelastete") + " " + transaction.booking_text,
            original_event.details.reason_code,
        )
        transaction.purpose = _prefix_purpose(
            _with_detail(self._text("Chargeback", "Rückbelastete Zahlung"), original_event.details.description),
            transaction.purpose,
        )
        return transaction

    def _original_chargeback(self, payment: Payment) -> Event:
        """Fetch the charged_back event; settlement events carry no reason code."""
        original_event = self.context.collection(
            "events", {"action": "charged_back", "payment": payment.id}
        ).first()
        if original_event is None:
            logger.error(f"No charged_back event found for settled payment {payment.id}")
            raise ReconciliationError(
                self._text(
                    f"Could not retrieve original event for charged back payment {payment.id}",
                    f"Konnte ursprüngliches Ereignis für rückbelastete Zahlung {payment.id} nicht abrufen",
                )
            )
        return original_event

    def _failed_refund(self, event: Event, refund: Refund) -> Transaction:
        transaction = self.synthesizer.build_negative_transaction(ResourceClass.REFUND, event, refund)
        transaction.booked = event.action == "funds_returned"
        transaction.booking_text = self._text("Failed Refund", "Fehlgeschlagene Erstattung")
        transaction.purpose = self._text("Failed ", "Fehlgeschlagene ") + (transaction.purpose or "")
        return transaction
