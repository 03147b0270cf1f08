"""Aggregation of the balances collection into confirmed and pending totals."""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from ..client.resources import Balance
from .models import BalanceAmount, BalanceType
from .synthesizer import to_major_units

logger = logging.getLogger(__name__)


class BalanceAggregator:
    """Folds balance objects into per-currency confirmed and pending balances."""

    def aggregate(self, balances: Iterable[Balance]) -> Tuple[List[BalanceAmount], List[BalanceAmount]]:
        """Aggregate the balances of a creditor.

        Confirmed funds are reported as they come (one per currency is
        expected). Pending is pending_payments_submitted minus pending_payouts,
        summed per currency so there is exactly one pending figure per currency.

        Args:
            balances: Balance objects of the creditor.

        Returns:
            Tuple of (confirmed balances, pending balances).
        """
        confirmed: List[BalanceAmount] = []
        pending_per_currency: Dict[str, Decimal] = {}

        for balance in balances:
            amount = to_major_units(balance.amount or 0)

            if balance.balance_type == BalanceType.PENDING_PAYMENTS_SUBMITTED.value:
                pending_per_currency[balance.currency] = (
                    pending_per_currency.get(balance.currency, Decimal("0.00")) + amount
                )
            elif balance.balance_type == BalanceType.CONFIRMED_FUNDS.value:
                confirmed.append(BalanceAmount(amount=amount, currency=balance.currency))
            elif balance.balance_type == BalanceType.PENDING_PAYOUTS.value:
                # money on its way out no longer counts as pending income
                pending_per_currency[balance.currency] = (
                    pending_per_currency.get(balance.currency, Decimal("0.00")) - amount
                )
            else:
                logger.warning(f"Ignoring unknown balance type '{balance.balance_type}'")

        pending = [
            BalanceAmount(amount=amount, currency=currency)
            for currency, amount in pending_per_currency.items()
        ]
        return confirmed, pending
