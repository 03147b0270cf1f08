"""HTTP client for the GoCardless REST API."""

import time
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from ..config import API_VERSION, get_access_token, get_api_url, get_http_timeout
from ..dates import RFC_5322, parse_date
from ..errors import (
    ApiConnectionError,
    ApiError,
    CustomerDataRemovedError,
    ResponseDecodeError,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR_TYPE = "rate-limit-exceeded"
RATE_LIMIT_REASON = "rate_limit_exceeded"
RATE_LIMIT_RESET_HEADER = "ratelimit-reset"
# Used when a rate-limited response does not say when the limit resets
RATE_LIMIT_FALLBACK_SECONDS = 1.0


class GoCardlessClient:
    """
    Synchronous GoCardless API client.

    Every request is authenticated with the bearer token (if set) and pinned
    to a fixed API version. Rate-limited requests are transparently retried
    after sleeping until the server-declared reset time; any other API error
    is raised as an ``ApiError``.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the client.

        Args:
            token: Bearer token. Falls back to GOCARDLESS_ACCESS_TOKEN env var.
            base_url: API base URL. Falls back to GOCARDLESS_API_URL env var.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport (used by tests).
            sleep: Function used to block during rate-limit backoff.
            clock: Function returning the current POSIX time.
        """
        self.token = token if token is not None else get_access_token()
        self.base_url = base_url or get_api_url()
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout or get_http_timeout(),
            transport=transport,
        )
        self._sleep = sleep
        self._clock = clock

    def __enter__(self) -> "GoCardlessClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "GoCardless-Version": API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", path, payload=payload)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Perform an API request, retrying for as long as it is rate limited.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL, e.g. ``payments``.
            params: Query parameters; ``None`` values are dropped.
            payload: JSON body to send.

        Returns:
            The decoded JSON response.

        Raises:
            ApiError: The API answered with an error other than a rate limit.
            ApiConnectionError: The API could not be reached.
            ResponseDecodeError: The response body is not a JSON object.
            DateParseError: A rate-limit reset time could not be parsed.
        """
        query = {key: value for key, value in (params or {}).items() if value is not None}

        while True:
            try:
                response = self._http.request(
                    method,
                    path,
                    params=query or None,
                    json=payload,
                    headers=self._headers(),
                )
            except httpx.HTTPError as e:
                logger.error(f"Failed to connect to GoCardless API: {type(e).__name__}")
                raise ApiConnectionError(f"Failed to connect to GoCardless API: {e}") from e

            if response.status_code == 429:
                self._wait_for_reset(response)
                continue

            body = self._decode(response)
            error = body.get("error")
            if error is None and response.status_code < 400:
                return body

            error = error if isinstance(error, dict) else {}
            if self._is_rate_limit_error(error):
                self._wait_for_reset(response)
                continue

            raise self._to_api_error(response, error)

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise ResponseDecodeError(
                f"GoCardless API returned a non-JSON response (HTTP {response.status_code})"
            ) from e
        if not isinstance(body, dict):
            raise ResponseDecodeError("GoCardless API returned an unexpected response shape")
        return body

    @staticmethod
    def _is_rate_limit_error(error: Dict[str, Any]) -> bool:
        if error.get("type") == RATE_LIMIT_ERROR_TYPE or error.get("reason") == RATE_LIMIT_REASON:
            return True
        return any(
            isinstance(item, dict) and item.get("reason") == RATE_LIMIT_REASON
            for item in error.get("errors") or []
        )

    def _wait_for_reset(self, response: httpx.Response) -> None:
        """Block until the rate limit declared in the response has been reset."""
        delay = RATE_LIMIT_FALLBACK_SECONDS
        reset_header = response.headers.get(RATE_LIMIT_RESET_HEADER)
        if reset_header:
            # a malformed reset time aborts the request with DateParseError
            reset_time = parse_date(reset_header, RFC_5322)
            delay = reset_time.timestamp() - self._clock() + 1
        delay = max(delay, 0.0)

        resume_at = datetime.fromtimestamp(self._clock() + delay, tz=timezone.utc)
        logger.warning(f"Hit rate limit, sleeping until {resume_at.isoformat()}")
        self._sleep(delay)
        logger.info("Retrying request...")

    @staticmethod
    def _to_api_error(response: httpx.Response, error: Dict[str, Any]) -> ApiError:
        if not error:
            error = {"type": "http_error", "message": f"HTTP {response.status_code}"}
        api_error = ApiError.from_payload(error, status_code=response.status_code)
        if api_error.documentation_url:
            logger.info(f"GoCardless documentation: {api_error.documentation_url}")
        if isinstance(api_error, CustomerDataRemovedError):
            logger.info(f"Customer data removed: {api_error}")
        else:
            logger.error(f"GoCardless API error: {api_error} (reason: {api_error.reason})")
        return api_error
