"""Service layer for refreshing a GoCardless account."""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from ..client.context import RefreshContext
from ..client.http import GoCardlessClient
from ..dates import format_since
from .balances import BalanceAggregator
from .models import Account, AccountResults, ResourceClass, Transaction
from .report import ReportGenerator
from .reversals import ReversalReconciler
from .synthesizer import TransactionSynthesizer

logger = logging.getLogger(__name__)

# Payments in these statuses never move money and are never reversed
IGNORED_PAYMENT_STATUSES = frozenset({"cancelled", "customer_approval_denied"})


class LedgerService:
    """Service for listing the creditor account and synthesizing its ledger."""

    def __init__(self, client: GoCardlessClient, language: Optional[str] = None):
        """Initialize the ledger service.

        Args:
            client: Authenticated GoCardless API client.
            language: Label language ('en' or 'de'); defaults to the environment.
        """
        self.client = client
        self.language = language

    def list_accounts(self, creditor_id: str) -> List[Account]:
        """Return the single account representing a creditor."""
        context = RefreshContext(self.client)
        creditor = context.resolver.resolve("creditor", creditor_id)
        return [
            Account(
                account_number=creditor.id,
                owner=creditor.name,
                currency=creditor.fx_payout_currency,
            )
        ]

    def refresh(self, account_id: str, since: Union[datetime, int, float]) -> AccountResults:
        """Fetch balances and all transactions of a creditor since a point in time.

        Args:
            account_id: Creditor ID.
            since: Oldest point in time to return transactions for, as
                datetime (naive means UTC) or POSIX timestamp.

        Returns:
            AccountResults with balances, pending balances and transactions.
        """
        if not isinstance(since, datetime):
            since = datetime.fromtimestamp(since, tz=timezone.utc)
        since_date, since_datetime = format_since(since)

        logger.info(f"Refreshing account {account_id} since {since_datetime}")

        # the context, and with it the object cache, lives for this refresh only
        context = RefreshContext(self.client)
        synthesizer = TransactionSynthesizer(context.resolver, language=self.language)

        balances, pending_balances = BalanceAggregator().aggregate(
            context.collection("balances", {"creditor": account_id})
        )

        transactions: List[Transaction] = []
        transactions.extend(self._collect_payments(context, synthesizer, account_id, since_date))
        transactions.extend(self._collect_refunds(context, synthesizer, account_id, since_datetime))
        transactions.extend(self._collect_payouts(context, synthesizer, account_id, since_datetime))

        reconciler = ReversalReconciler(context, synthesizer, language=self.language)
        transactions.extend(reconciler.reconcile(account_id, since_datetime))

        logger.info(
            f"Refresh of {account_id} complete: {len(transactions)} transactions, "
            f"{len(context.cache)} cached objects"
        )
        return AccountResults(
            balances=balances,
            pending_balances=pending_balances,
            transactions=transactions,
        )

    def _collect_payments(
        self,
        context: RefreshContext,
        synthesizer: TransactionSynthesizer,
        account_id: str,
        since_date: str,
    ) -> List[Transaction]:
        # the booking date of a payment is its charge date
        params = {"creditor": account_id, "charge_date[gte]": since_date}
        transactions = []
        for payment in context.collection("payments", params):
            if payment.status in IGNORED_PAYMENT_STATUSES:
                continue
            transactions.extend(synthesizer.synthesize(ResourceClass.PAYMENT, payment))
        return transactions

    def _collect_refunds(
        self,
        context: RefreshContext,
        synthesizer: TransactionSynthesizer,
        account_id: str,
        since_datetime: str,
    ) -> List[Transaction]:
        transactions = []
        for refund in context.collection("refunds", {"created_at[gte]": since_datetime}):
            # the refunds route can't filter by creditor
            mandate = context.resolver.resolve_mandate(refund)
            if mandate.links.creditor != account_id or refund.status == "cancelled":
                continue
            transactions.extend(synthesizer.synthesize(ResourceClass.REFUND, refund))
        return transactions

    def _collect_payouts(
        self,
        context: RefreshContext,
        synthesizer: TransactionSynthesizer,
        account_id: str,
        since_datetime: str,
    ) -> List[Transaction]:
        params = {"creditor": account_id, "created_at[gte]": since_datetime}
        transactions = []
        for payout in context.collection("payouts", params):
            transactions.extend(synthesizer.synthesize(ResourceClass.PAYOUT, payout))
        return transactions

    def generate_report(
        self,
        results: AccountResults,
        format: str = "json",
        include_details: bool = True,
    ) -> str:
        """Generate a formatted report from refresh results.

        Args:
            results: AccountResults to format.
            format: Output format ('json', 'csv', 'text').
            include_details: Include all transactions (for JSON format).

        Returns:
            Formatted report string.
        """
        generator = ReportGenerator(results)

        if format == "json":
            return generator.to_json(include_details=include_details)
        elif format == "csv":
            return generator.to_csv()
        elif format == "text":
            return generator.to_summary_text()
        else:
            raise ValueError(f"Unsupported report format: {format}")
