# gocardless_ledger package
__version__ = "0.1.0"

from .client import GoCardlessClient, ObjectCache, ObjectResolver, RefreshContext
from .errors import (
    GoCardlessError,
    ApiError,
    CustomerDataRemovedError,
    ApiConnectionError,
    ResponseDecodeError,
    ReconciliationError,
    DateParseError,
)
from .session import Authenticator, TokenStore, FileTokenStore, LoginResult, LoginStatus

# Ledger exports
from .ledger import (
    LedgerService,
    AccountResults,
    Account,
    Transaction,
    BalanceAmount,
    ReportGenerator,
)
