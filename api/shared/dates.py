"""
Date validation for ``dd-mm-yyyy`` variables.

Dates earlier than the SPSS epoch (15 October 1582, the first day of the
Gregorian calendar) are not representable and are rejected.
"""

import re
from datetime import date
from typing import Any, Optional

SPSS_EPOCH = date(1582, 10, 15)
DATE_FORMAT = "DD-MM-YYYY"

_DATE_PATTERN = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")


def parse_spss_date(value: Any) -> date:
    """Parse a ``DD-MM-YYYY`` string into a date.

    Raises:
        ValueError: If the text is malformed, names a day that does not
            exist, or falls before the SPSS epoch.
    """
    text = str(value).strip() if value is not None else ""
    match = _DATE_PATTERN.match(text)
    if not match:
        raise ValueError(f"Date must use the {DATE_FORMAT} format")

    day, month, year = (int(part) for part in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        raise ValueError(f"{text} is not a valid calendar date") from None

    if parsed < SPSS_EPOCH:
        raise ValueError(f"Date must not be earlier than {SPSS_EPOCH.strftime('%d-%m-%Y')}")
    return parsed


def validate_spss_date(value: Any) -> Optional[str]:
    """Return the reason ``value`` is not an acceptable date, or None."""
    try:
        parse_spss_date(value)
    except ValueError as e:
        return str(e)
    return None


def format_spss_date(value: date) -> str:
    return value.strftime("%d-%m-%Y")
