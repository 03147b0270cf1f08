"""Ledger synthesis for GoCardless creditors.

This module turns the GoCardless event-sourced ledger into a flat list of
signed, booked-or-pending transactions plus per-currency balances.

Features:
- Transactions for payments, refunds, payouts and payout fees
- Negative bookings for failed payments, chargebacks and bounced refunds
- Confirmed and pending balances per currency
- JSON, CSV and text reports
"""

from .models import (
    ResourceClass,
    BalanceType,
    Transaction,
    BalanceAmount,
    Account,
    AccountResults,
)
from .synthesizer import TransactionSynthesizer, is_booked, to_major_units
from .reversals import ReversalReconciler, EventQuery, REVERSAL_QUERIES
from .balances import BalanceAggregator
from .service import LedgerService
from .report import ReportGenerator

__all__ = [
    # Models
    "ResourceClass",
    "BalanceType",
    "Transaction",
    "BalanceAmount",
    "Account",
    "AccountResults",
    # Core Components
    "TransactionSynthesizer",
    "is_booked",
    "to_major_units",
    "ReversalReconciler",
    "EventQuery",
    "REVERSAL_QUERIES",
    "BalanceAggregator",
    "LedgerService",
    "ReportGenerator",
]
