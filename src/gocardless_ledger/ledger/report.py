"""Report generation for refresh results."""

import csv
import io
import json

from .models import AccountResults

CSV_COLUMNS = [
    "booking_date",
    "value_date",
    "booked",
    "amount",
    "currency",
    "name",
    "account_number",
    "booking_text",
    "purpose",
    "reference_id",
    "end_to_end_reference",
    "mandate_reference",
]


class ReportGenerator:
    """Generator for refresh reports in various formats."""

    def __init__(self, results: AccountResults):
        """Initialize the report generator.

        Args:
            results: The refresh results to generate output from.
        """
        self.results = results

    def to_json(self, include_details: bool = True, indent: int = 2) -> str:
        """Generate JSON representation of the results.

        Args:
            include_details: If True, include all transactions. If False, only summary.
            indent: JSON indentation level.

        Returns:
            JSON string representation of the results.
        """
        if include_details:
            data = self.results.to_full_dict()
        else:
            data = self.results.to_summary_dict()
        return json.dumps(data, indent=indent, ensure_ascii=False)

    def to_csv(self) -> str:
        """Generate a CSV with one row per transaction, ready for import."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_COLUMNS)

        for t in self.results.transactions:
            writer.writerow([
                t.booking_date.date().isoformat(),
                t.value_date.date().isoformat() if t.value_date else "",
                "yes" if t.booked else "no",
                f"{t.amount:.2f}",
                t.currency,
                t.name or "",
                t.account_number or "",
                t.booking_text,
                t.purpose or "",
                t.reference_id,
                t.end_to_end_reference or "",
                t.mandate_reference or "",
            ])

        return output.getvalue()

    def to_summary_text(self) -> str:
        """Generate a human-readable text summary of the results.

        Returns:
            Formatted text with balances and the transaction list.
        """
        summary = self.results.to_summary_dict()
        stats = summary["statistics"]

        lines = [
            "=" * 60,
            "GOCARDLESS ACCOUNT SUMMARY",
            "=" * 60,
            "Balances:",
        ]
        lines.extend(f"  {b['amount']} {b['currency']}" for b in summary["balances"])
        lines.append("Pending:")
        lines.extend(f"  {b['amount']} {b['currency']}" for b in summary["pending_balances"])
        lines.extend([
            "",
            "Statistics:",
            f"  Transactions: {stats['total_transactions']}",
            f"  Booked: {stats['total_booked']}",
            f"  Pending: {stats['total_pending']}",
        ])

        if self.results.transactions:
            lines.extend(["", "TRANSACTIONS", "-" * 40])
            for t in self.results.transactions:
                marker = " " if t.booked else "*"
                lines.append(
                    f"{marker} {t.booking_date.date().isoformat()}  "
                    f"{t.amount:>12.2f} {t.currency}  {t.booking_text}  [{t.reference_id}]"
                )

        lines.append("=" * 60)
        return "\n".join(lines)
