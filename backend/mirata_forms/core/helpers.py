"""Small date and mapping helpers shared by the services.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

# Local imports (core first, then alphabetical)
from .constants import ODATA_DATETIME_FORMAT

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = (
    "get_combined_date_and_time",
    "to_odata_datetime",
    "find_key_in_object",
)

# =============================================================================
# Section 3: Constants
# =============================================================================
_MIDNIGHT_DATE: Final[re.Pattern[str]] = re.compile(r"\d{4}-\d{2}-\d{2}T00:00:00", re.ASCII)
_TIME_OF_DAY: Final[re.Pattern[str]] = re.compile(r"([01]\d|2[0-3]):([0-5]\d):([0-5]\d)", re.ASCII)


# =============================================================================
# Section 12: Functions
# =============================================================================
def get_combined_date_and_time(date_time: Any, time_of_day: Any) -> Any:
    """Combine a midnight date-time with a separate time of day.

    Args:
        date_time: ISO 8601 date-time whose time part is ``00:00:00``
            (e.g. ``"2025-03-12T00:00:00"``).
        time_of_day: 24-hour ``HH:mm:ss`` time (e.g. ``"06:05:00"``).

    Returns:
        ``"<date>T<time>"``, or ``date_time`` unchanged if either input does
        not have the expected shape.
    """
    if not isinstance(date_time, str) or not _MIDNIGHT_DATE.fullmatch(date_time):
        return date_time
    if not isinstance(time_of_day, str) or not _TIME_OF_DAY.fullmatch(time_of_day):
        return date_time
    date_part = date_time.split("T", 1)[0]
    return f"{date_part}T{time_of_day}"


def to_odata_datetime(moment: datetime | None = None) -> str:
    """Format ``moment`` (default: now) as an OData DB date-time string in UTC."""
    moment = moment or datetime.now(UTC)
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.strftime(ODATA_DATETIME_FORMAT)


def find_key_in_object(obj: Mapping[str, Any], possible_keys: Iterable[str]) -> str | None:
    """Return the first of ``possible_keys`` present in ``obj``, ignoring case.

    The key is returned with its original casing from ``obj``.
    """
    normalized = {key.lower(): key for key in obj}
    for candidate in possible_keys:
        match = normalized.get(candidate.lower())
        if match is not None:
            return match
    return None
