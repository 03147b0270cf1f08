"""Environment configuration for the GoCardless ledger client."""

import os
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.gocardless.com/"
API_VERSION = "2015-07-06"
DEFAULT_HTTP_TIMEOUT = 30.0
SUPPORTED_LANGUAGES = ("en", "de")


def get_api_url() -> str:
    """
    Get the GoCardless API base URL from the environment.
    Always returned with a trailing slash so relative paths can be joined.
    """
    url = os.getenv("GOCARDLESS_API_URL") or DEFAULT_API_URL
    if not url.endswith("/"):
        url = url + "/"
    return url


def get_access_token() -> Optional[str]:
    """Get a pre-issued bearer token, if one is configured."""
    return os.getenv("GOCARDLESS_ACCESS_TOKEN") or None


def get_language() -> str:
    """Get the UI language for transaction labels ('en' or 'de')."""
    language = (os.getenv("GOCARDLESS_LEDGER_LANGUAGE") or "en").lower()
    if language not in SUPPORTED_LANGUAGES:
        logger.warning(f"Unsupported language '{language}', falling back to English")
        return "en"
    return language


def get_http_timeout() -> float:
    """Get the HTTP timeout in seconds."""
    raw = os.getenv("GOCARDLESS_HTTP_TIMEOUT")
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"GOCARDLESS_HTTP_TIMEOUT must be a number, got '{raw}'")


def get_session_file() -> Path:
    """Get the path of the JSON file the CLI caches its session in."""
    path = os.getenv("GOCARDLESS_LEDGER_SESSION_FILE")
    if path:
        return Path(path)
    return Path.home() / ".gocardless-ledger" / "session.json"


def get_reference_api_key() -> Optional[str]:
    """Get the key clients of the reference HTTP API must present."""
    return os.getenv("API_KEY") or None


def get_refresh_rate_limit() -> str:
    """Get the slowapi limit applied to the refresh endpoint."""
    return os.getenv("GOCARDLESS_LEDGER_REFRESH_LIMIT") or "30/minute"
