"""Parsing of the date formats used by the GoCardless API."""

import re
import time
import logging
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Tuple

from .errors import DateParseError
from .localization import localize_text

logger = logging.getLogger(__name__)

ISO_8601 = "ISO 8601"
RFC_5322 = "RFC 5322"

_ISO_DATETIME = re.compile(r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.\d+)?Z")
_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")


def local_offset() -> timezone:
    """The host's standard UTC offset, deliberately ignoring daylight saving time."""
    return timezone(timedelta(seconds=-time.timezone))


def parse_date(value: Optional[str], fmt: str = ISO_8601) -> Optional[datetime]:
    """Parse an ISO 8601 or RFC 5322 date into an aware datetime.

    Args:
        value: Date string, or None.
        fmt: ISO_8601 (datetime ``YYYY-MM-DDThh:mm:ss.sssZ`` or plain date)
            or RFC_5322 (``Tue, 05 Mar 2024 10:00:00 GMT``).

    Returns:
        The same point in time expressed in the host's standard UTC offset,
        or None if value is None.

    Raises:
        DateParseError: If the value does not match the format.
    """
    if value is None:
        return None

    try:
        parsed = _parse(value, fmt)
    except (TypeError, ValueError, OverflowError) as e:
        logger.error(f"Failed to parse date '{value}' in {fmt} format")
        raise DateParseError(
            localize_text("Could not parse a date value", "Konnte einen Datumswert nicht verarbeiten")
        ) from e

    return parsed.astimezone(local_offset())


def _parse(value: str, fmt: str) -> datetime:
    if fmt == RFC_5322:
        parsed = parsedate_to_datetime(value)
        if parsed is None:
            raise ValueError(f"not an RFC 5322 date: {value}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    if fmt != ISO_8601:
        raise ValueError(f"unsupported date format {fmt}")

    match = _ISO_DATETIME.fullmatch(value)
    if match:
        return datetime(*(int(part) for part in match.groups()), tzinfo=timezone.utc)

    match = _ISO_DATE.fullmatch(value)
    if match:
        return datetime(*(int(part) for part in match.groups()), tzinfo=timezone.utc)

    raise ValueError(f"not an ISO 8601 date: {value}")


def format_since(since: datetime) -> Tuple[str, str]:
    """Format a lower bound as the ``(date, datetime)`` query filter values."""
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    since = since.astimezone(timezone.utc)
    return since.strftime("%Y-%m-%d"), since.strftime("%Y-%m-%dT%H:%M:%SZ")
