"""API endpoints exposing login, account listing and refresh to a host application."""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Iterator, List

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..auth import limiter, require_api_key
from ..client.http import GoCardlessClient
from ..config import get_refresh_rate_limit, get_session_file
from ..errors import GoCardlessError
from ..session import Authenticator, FileTokenStore, LoginResult, TokenStore
from .models import Account, AccountResults
from .service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])
session_router = APIRouter(prefix="/session", tags=["session"])


class LoginRequestBody(BaseModel):
    """Request body for one login step."""
    step: int = Field(1, ge=1, le=2, description="1 for email/password, 2 for the 2FA code")
    credentials: List[str] = Field(..., min_length=1, description="[email, password] or [code]")


class RefreshRequestBody(BaseModel):
    """Request body for refreshing an account."""
    since: datetime = Field(..., description="Oldest transaction to return")


@lru_cache()
def get_token_store() -> TokenStore:
    return FileTokenStore(get_session_file())


# one process-wide login; it only holds credentials while a 2FA challenge is open
@lru_cache()
def get_authenticator() -> Authenticator:
    store = get_token_store()
    return Authenticator(GoCardlessClient(token=store.token), store)


def get_ledger_service(store: TokenStore = Depends(get_token_store)) -> Iterator[LedgerService]:
    """
    Dependency injection function for FastAPI.

    Yields:
        LedgerService whose client is closed when the request ends.
    """
    with GoCardlessClient(token=store.token) as client:
        yield LedgerService(client)


@session_router.post("/login", response_model=LoginResult)
def login(
    body: LoginRequestBody,
    authenticator: Authenticator = Depends(get_authenticator),
    api_key: str = Depends(require_api_key),
):
    """
    Perform one step of the GoCardless login.

    Step 1 takes email and password; if the result is a challenge, answer it
    with step 2 and the one-time code.
    """
    if body.step == 1 and len(body.credentials) < 2:
        raise HTTPException(status_code=400, detail="Step 1 requires email and password")
    return authenticator.initialize_session(body.step, body.credentials)


@router.get("/accounts", response_model=List[Account])
def list_accounts(
    store: TokenStore = Depends(get_token_store),
    service: LedgerService = Depends(get_ledger_service),
    api_key: str = Depends(require_api_key),
):
    """List the account of the logged-in creditor."""
    if not store.creditor:
        raise HTTPException(status_code=404, detail="Not logged in to GoCardless")
    try:
        return service.list_accounts(store.creditor)
    except GoCardlessError as e:
        logger.error(f"Listing accounts failed: {e}")
        raise HTTPException(status_code=502, detail=e.user_message)


@router.post("/accounts/{account_id}/refresh", response_model=AccountResults)
@limiter.limit(get_refresh_rate_limit())
def refresh_account(
    request: Request,
    account_id: str,
    body: RefreshRequestBody,
    service: LedgerService = Depends(get_ledger_service),
    api_key: str = Depends(require_api_key),
):
    """
    Refresh an account.

    Returns balances, pending balances and all transactions since the given
    point in time, including negative bookings for reversals.
    """
    logger.info(f"Refresh requested for {account_id} since {body.since.isoformat()}")
    try:
        return service.refresh(account_id, body.since)
    except GoCardlessError as e:
        logger.error(f"Refresh of {account_id} failed: {e}")
        raise HTTPException(status_code=502, detail=e.user_message)
