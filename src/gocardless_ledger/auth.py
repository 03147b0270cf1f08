"""Access control for the reference API: bearer API key and refresh limits."""

import hashlib
import secrets
import logging

from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_reference_api_key

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(description="Key configured in the API_KEY environment variable")


def refresh_limit_key(request: Request) -> str:
    """Bucket requests by presented API key, or by client address without one."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        return "key:" + hashlib.sha256(token.encode()).hexdigest()[:16]
    return get_remote_address(request)


limiter = Limiter(key_func=refresh_limit_key)


async def require_api_key(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> str:
    """Reject requests that don't present the configured API key.

    Raises:
        HTTPException: 500 if no key is configured, 401 if the key doesn't match.
    """
    configured_key = get_reference_api_key()
    if configured_key is None:
        logger.error("Reference API called but API_KEY is not set")
        raise HTTPException(status_code=500, detail="Server configuration error: API_KEY is not set")
    if not secrets.compare_digest(credentials.credentials.encode(), configured_key.encode()):
        logger.warning("Rejected reference API request with a wrong API key")
        raise HTTPException(status_code=401, detail="Invalid API key")
    return credentials.credentials
