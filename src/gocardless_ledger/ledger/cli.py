#!/usr/bin/env python3
"""Command-line interface for the GoCardless ledger.

Usage:
    gocardless-ledger login --email merchant@example.com
    gocardless-ledger accounts
    gocardless-ledger refresh --since 2024-01-01
    gocardless-ledger refresh --since 2024-01-01T00:00:00 --format csv --output ledger.csv
"""

import argparse
import getpass
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from ..client.http import GoCardlessClient
from ..config import get_session_file
from ..errors import GoCardlessError
from ..session import Authenticator, FileTokenStore, LoginStatus
from .service import LedgerService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_since(dt_string: str) -> datetime:
    """Parse the --since value in various formats.

    Args:
        dt_string: Datetime string in ISO format or date format, taken as UTC.

    Returns:
        Aware datetime in UTC.

    Raises:
        ValueError: If the string cannot be parsed.
    """
    formats = [
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(dt_string, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    raise ValueError(
        f"Unable to parse datetime: {dt_string}. "
        f"Expected formats: YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS"
    )


def run_login(store: FileTokenStore, email: str, password: Optional[str] = None) -> int:
    """Log in interactively, prompting for the password and any 2FA codes.

    Returns:
        Exit code (0 for success, 1 for rejected credentials, 2 for errors).
    """
    password = password or getpass.getpass("GoCardless password: ")

    with GoCardlessClient(token=store.token) as client:
        authenticator = Authenticator(client, store)
        result = authenticator.initialize_session(1, [email, password])

        while result.status == LoginStatus.CHALLENGE:
            code = input(f"{result.challenge.challenge} {result.challenge.label}: ").strip()
            result = authenticator.initialize_session(2, [code])

    if result.status == LoginStatus.SUCCESS:
        logger.info(f"Logged in, creditor {store.creditor}")
        return 0
    if result.status == LoginStatus.FAILED:
        logger.error("Login failed: invalid email or password")
        return 1
    logger.error(result.message)
    return 2


def run_accounts(store: FileTokenStore) -> int:
    """Print the account of the logged-in creditor."""
    if not store.token or not store.creditor:
        logger.error("Not logged in, run 'gocardless-ledger login' first")
        return 1

    with GoCardlessClient(token=store.token) as client:
        try:
            accounts = LedgerService(client).list_accounts(store.creditor)
        except GoCardlessError as e:
            logger.error(e.user_message)
            return 2

    for account in accounts:
        print(f"{account.account_number}\t{account.owner}\t{account.currency or ''}")
    return 0


def run_refresh(
    store: FileTokenStore,
    since: datetime,
    account_id: Optional[str] = None,
    output_file: Optional[str] = None,
    output_format: str = "json",
    include_details: bool = True,
) -> int:
    """Refresh an account and write the report.

    Args:
        store: Token store with the cached session.
        since: Oldest point in time to include.
        account_id: Creditor ID; defaults to the logged-in creditor.
        output_file: Optional output file path.
        output_format: Output format ('json', 'csv', 'text').
        include_details: Include all transactions in JSON output.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    account_id = account_id or store.creditor
    if not store.token or not account_id:
        logger.error("Not logged in, run 'gocardless-ledger login' first")
        return 1

    with GoCardlessClient(token=store.token) as client:
        service = LedgerService(client)
        try:
            results = service.refresh(account_id, since)
        except GoCardlessError as e:
            logger.error(f"Refresh failed: {e.user_message}")
            return 2

        output = service.generate_report(
            results=results,
            format=output_format,
            include_details=include_details,
        )

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info(f"Report written to {output_file}")
    else:
        print(output)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="gocardless-ledger",
        description="Synthesize GoCardless payments, refunds and payouts into ledger transactions.",
    )
    parser.add_argument(
        "--session-file",
        help="Session cache file (default: GOCARDLESS_LEDGER_SESSION_FILE or ~/.gocardless-ledger/session.json)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    login_parser = subparsers.add_parser("login", help="Log in and cache an access token")
    login_parser.add_argument("--email", "-u", required=True, help="GoCardless dashboard email")
    login_parser.add_argument("--password", "-p", help="Password (prompted if omitted)")

    subparsers.add_parser("accounts", help="Show the account of the logged-in creditor")

    refresh_parser = subparsers.add_parser("refresh", help="Fetch balances and transactions")
    refresh_parser.add_argument(
        "--since", "-s",
        required=True,
        help="Oldest transaction date/time, UTC (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS)",
    )
    refresh_parser.add_argument("--account", "-a", help="Creditor ID (default: logged-in creditor)")
    refresh_parser.add_argument("--output", "-o", help="Output file path (default: stdout)")
    refresh_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "text"],
        default="json",
        help="Output format (default: json)",
    )
    refresh_parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Only include balances and statistics, not transactions",
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Optional list of command-line arguments (for testing).

    Returns:
        Exit code.
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    store = FileTokenStore(parsed_args.session_file or get_session_file())

    if parsed_args.command == "login":
        return run_login(store, parsed_args.email, parsed_args.password)

    if parsed_args.command == "accounts":
        return run_accounts(store)

    if parsed_args.command == "refresh":
        try:
            since = parse_since(parsed_args.since)
        except ValueError as e:
            logger.error(str(e))
            return 1

        return run_refresh(
            store=store,
            since=since,
            account_id=parsed_args.account,
            output_file=parsed_args.output,
            output_format=parsed_args.format,
            include_details=not parsed_args.summary_only,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
