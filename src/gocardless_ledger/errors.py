"""Exceptions raised by the GoCardless ledger client."""

from typing import Any, Dict, List, Optional


class GoCardlessError(Exception):
    """Base exception for everything raised by this package."""

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the end user."""
        return str(self)


class ApiError(GoCardlessError):
    """The GoCardless API answered with an error payload.

    Carries the structured error so callers can branch on ``reason``;
    ``str()`` gives the flattened ``"<message> (<type>)"`` form.
    """

    def __init__(
        self,
        error_type: str,
        message: str,
        reason: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        documentation_url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.error_type = error_type
        self.message = message
        self.errors = errors or []
        self.reason = reason or self._first_reason(self.errors)
        self.documentation_url = documentation_url
        self.status_code = status_code
        super().__init__(f"{message} ({error_type})")

    @staticmethod
    def _first_reason(errors: List[Dict[str, Any]]) -> Optional[str]:
        if errors and isinstance(errors[0], dict):
            return errors[0].get("reason")
        return None

    @property
    def metadata(self) -> Dict[str, Any]:
        """Metadata of the first detailed error, if any."""
        if self.errors and isinstance(self.errors[0], dict):
            return self.errors[0].get("metadata") or {}
        return {}

    @property
    def user_message(self) -> str:
        if self.documentation_url:
            return f"{self} - more information: {self.documentation_url}"
        return str(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], status_code: Optional[int] = None) -> "ApiError":
        """Build the matching exception from an API ``error`` object."""
        errors = payload.get("errors") or []
        reason = payload.get("reason") or cls._first_reason(errors)
        error_class = CustomerDataRemovedError if reason == CUSTOMER_DATA_REMOVED else cls
        return error_class(
            error_type=payload.get("type") or "unknown_error",
            message=payload.get("message") or "Unknown error",
            reason=reason,
            errors=errors,
            documentation_url=payload.get("documentation_url"),
            status_code=status_code,
        )


CUSTOMER_DATA_REMOVED = "customer_data_removed"


class CustomerDataRemovedError(ApiError):
    """The requested personal data was erased on the GoCardless side."""


class ApiConnectionError(GoCardlessError):
    """The API could not be reached."""


class ResponseDecodeError(GoCardlessError):
    """The API returned a body of an unexpected shape."""


class ReconciliationError(GoCardlessError):
    """A reversal event references something that cannot be resolved."""


class DateParseError(GoCardlessError, ValueError):
    """A date value could not be parsed."""
