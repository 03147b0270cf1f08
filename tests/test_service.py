"""Tests for the ledger service and report generation."""

import csv
import io
import json
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from gocardless_ledger.ledger import (
    Account,
    AccountResults,
    BalanceAmount,
    LedgerService,
    ReportGenerator,
    Transaction,
)

from conftest import (
    CREDITOR_ID,
    OTHER_CREDITOR_ID,
    make_event,
    make_mandate,
    make_payment,
    make_payout,
    make_refund,
)

SINCE = datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(client, sepa_setup):
    return LedgerService(client, language="en")


@pytest.fixture
def populated_api(sepa_setup):
    """A creditor with balances, payments, a refund, a payout and a failure."""
    api = sepa_setup
    api.add_collection("balances", [[
        {"balance_type": "confirmed_funds", "amount": 50000, "currency": "EUR"},
        {"balance_type": "pending_payments_submitted", "amount": 7500, "currency": "EUR"},
        {"balance_type": "pending_payouts", "amount": 2500, "currency": "EUR"},
    ]], params={"creditor": CREDITOR_ID})
    api.add_collection("payments", [
        [make_payment("PM001"), make_payment("PM002", status="pending_submission")],
        [make_payment("PM003", status="failed")],
    ], params={"creditor": CREDITOR_ID, "charge_date[gte]": "2024-03-01"})
    api.add_collection("refunds", [[make_refund("RF001", payment="PM001")]],
                       params={"created_at[gte]": "2024-03-01T00:00:00Z"})
    api.add_collection("payouts", [[make_payout("PO001")]],
                       params={"creditor": CREDITOR_ID, "created_at[gte]": "2024-03-01T00:00:00Z"})
    api.add_collection("events", [[
        make_event("EV001", "failed", payment="PM003", reason_code="AM04", description="Insufficient funds"),
    ]], params={"resource_type": "payments", "action": "failed"})
    api.add_object("payment", make_payment("PM001"))
    api.add_object("payment", make_payment("PM003", status="failed"))
    return api


class TestListAccounts:
    """Tests for listing the creditor account."""

    def test_single_account(self, service):
        accounts = service.list_accounts(CREDITOR_ID)

        assert accounts == [Account(account_number=CREDITOR_ID, owner="Example Ltd", currency="EUR")]
        assert accounts[0].name == "GoCardless"
        assert accounts[0].portfolio is False
        assert accounts[0].type == "other"


class TestRefresh:
    """Tests for LedgerService.refresh."""

    def test_full_refresh(self, service, populated_api):
        """Test a refresh over all collections and reversal queries."""
        results = service.refresh(CREDITOR_ID, SINCE)

        assert [(b.amount, b.currency) for b in results.balances] == [(Decimal("500.00"), "EUR")]
        assert [(b.amount, b.currency) for b in results.pending_balances] == [(Decimal("50.00"), "EUR")]

        texts = [(t.reference_id, t.booking_text, t.amount) for t in results.transactions]
        assert texts == [
            ("PM001", "SEPA Core Payment", Decimal("25.00")),
            ("PM002", "SEPA Core Payment", Decimal("25.00")),
            ("PM003", "SEPA Core Payment", Decimal("25.00")),
            ("RF001/PM001", "Refund", Decimal("-10.00")),
            ("PO001", "Payout", Decimal("-100.00")),
            ("PO001", "Fees", Decimal("-1.50")),
            ("PM003", "Failed SEPA Core Payment (AM04)", Decimal("-25.00")),
        ]
        assert [t.booked for t in results.transactions] == [True, False, True, True, True, True, True]

    def test_query_filters(self, service, populated_api):
        """Test that collections are queried with the refresh bounds."""
        service.refresh(CREDITOR_ID, SINCE)

        payments = populated_api.params_of(populated_api.requests_to("payments")[0])
        assert payments == {"creditor": CREDITOR_ID, "charge_date[gte]": "2024-03-01"}
        refunds = populated_api.params_of(populated_api.requests_to("refunds")[0])
        assert refunds == {"created_at[gte]": "2024-03-01T00:00:00Z"}
        payouts = populated_api.params_of(populated_api.requests_to("payouts")[0])
        assert payouts == {"creditor": CREDITOR_ID, "created_at[gte]": "2024-03-01T00:00:00Z"}
        balances = populated_api.params_of(populated_api.requests_to("balances")[0])
        assert balances == {"creditor": CREDITOR_ID}

    def test_since_as_timestamp(self, service, populated_api):
        """Test that a POSIX timestamp is accepted as the lower bound."""
        results = service.refresh(CREDITOR_ID, SINCE.timestamp())

        assert len(results.transactions) == 7

    def test_ignored_payment_statuses(self, service, sepa_setup):
        """Test that cancelled and customer_approval_denied payments are skipped."""
        sepa_setup.add_collection("payments", [[
            make_payment("PM010", status="cancelled"),
            make_payment("PM011", status="customer_approval_denied"),
            make_payment("PM012", status="paid_out"),
        ]])

        results = service.refresh(CREDITOR_ID, SINCE)

        assert [t.reference_id for t in results.transactions] == ["PM012"]

    def test_refunds_filtered_by_creditor(self, service, sepa_setup):
        """Test that refunds of another creditor's mandates are skipped."""
        sepa_setup.add_object("mandate", make_mandate("MD900", creditor=OTHER_CREDITOR_ID))
        sepa_setup.add_object("payment", make_payment("PM001"))
        sepa_setup.add_object("payment", make_payment("PM900", mandate="MD900"))
        sepa_setup.add_collection("refunds", [[
            make_refund("RF001", payment="PM001"),
            make_refund("RF900", payment="PM900"),
            make_refund("RF002", payment="PM001", status="cancelled"),
        ]])

        results = service.refresh(CREDITOR_ID, SINCE)

        assert [t.reference_id for t in results.transactions] == ["RF001/PM001"]

    def test_linked_objects_avoid_lookups(self, service, sepa_setup):
        """Test that side-loaded objects are served from the cache."""
        sepa_setup.add_collection(
            "events",
            [[make_event("EV001", "failed", payment="PM050")]],
            params={"resource_type": "payments", "action": "failed"},
            linked=[{"payments": [make_payment("PM050", status="failed")]}],
        )

        results = service.refresh(CREDITOR_ID, SINCE)

        assert [t.reference_id for t in results.transactions] == ["PM050"]
        assert sepa_setup.requests_to("payments/PM050") == []

    def test_cache_is_per_refresh(self, service, sepa_setup):
        """Test that a second refresh fetches objects again."""
        sepa_setup.add_collection("payments", [[make_payment("PM001")]])

        service.refresh(CREDITOR_ID, SINCE)
        service.refresh(CREDITOR_ID, SINCE)

        assert len(sepa_setup.requests_to("mandates/MD001")) == 2

    def test_empty_account(self, service):
        results = service.refresh(CREDITOR_ID, SINCE)

        assert results == AccountResults()


def sample_results():
    return AccountResults(
        balances=[BalanceAmount(amount=Decimal("500.00"), currency="EUR")],
        pending_balances=[BalanceAmount(amount=Decimal("50.00"), currency="EUR")],
        transactions=[
            Transaction(
                amount=Decimal("25.00"),
                booked=True,
                booking_date=datetime(2024, 3, 5, tzinfo=timezone.utc),
                currency="EUR",
                name="Jane Doe",
                reference_id="PM001",
                booking_text="SEPA Core Payment",
                purpose="Monthly subscription",
            ),
            Transaction(
                amount=Decimal("-1.50"),
                booked=False,
                booking_date=datetime(2024, 3, 8, 6, tzinfo=timezone.utc),
                value_date=datetime(2024, 3, 9, tzinfo=timezone.utc),
                currency="EUR",
                name="GoCardless",
                reference_id="PO001",
                booking_text="Fees",
            ),
        ],
    )


class TestReportGenerator:
    """Tests for report output."""

    def test_json_full(self):
        data = json.loads(ReportGenerator(sample_results()).to_json())

        assert data["statistics"] == {"total_transactions": 2, "total_booked": 1, "total_pending": 1}
        assert len(data["transactions"]) == 2
        assert data["transactions"][0]["reference_id"] == "PM001"
        assert data["balances"] == [{"amount": "500.00", "currency": "EUR"}]

    def test_json_summary_only(self):
        data = json.loads(ReportGenerator(sample_results()).to_json(include_details=False))

        assert "transactions" not in data
        assert data["pending_balances"] == [{"amount": "50.00", "currency": "EUR"}]

    def test_csv(self):
        rows = list(csv.DictReader(io.StringIO(ReportGenerator(sample_results()).to_csv())))

        assert len(rows) == 2
        assert rows[0]["amount"] == "25.00"
        assert rows[0]["booked"] == "yes"
        assert rows[0]["value_date"] == ""
        assert rows[1]["amount"] == "-1.50"
        assert rows[1]["booked"] == "no"
        assert rows[1]["value_date"] == "2024-03-09"

    def test_summary_text(self):
        text = ReportGenerator(sample_results()).to_summary_text()

        assert "GOCARDLESS ACCOUNT SUMMARY" in text
        assert "Transactions: 2" in text
        assert "[PO001]" in text

    def test_service_report_formats(self, client):
        service = LedgerService(client)

        assert service.generate_report(sample_results(), format="csv").startswith("booking_date,")
        assert "GOCARDLESS" in service.generate_report(sample_results(), format="text")
        with pytest.raises(ValueError):
            service.generate_report(sample_results(), format="xml")
