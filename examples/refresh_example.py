"""
Simple refresh example. Log in once with the CLI (``gocardless-ledger login``)
or set GOCARDLESS_ACCESS_TOKEN, then fetch the last 30 days of a creditor's ledger.
"""
import os
from datetime import datetime, timedelta, timezone

from gocardless_ledger import GoCardlessClient, LedgerService


def run():
    creditor_id = os.environ.get("GOCARDLESS_CREDITOR_ID", "")  # e.g. CR000123
    since = datetime.now(timezone.utc) - timedelta(days=30)
    with GoCardlessClient() as client:
        service = LedgerService(client)
        results = service.refresh(creditor_id, since)
        print(service.generate_report(results, format="text"))

if __name__ == "__main__":
    run()
