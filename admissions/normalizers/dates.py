"""
Date parsing utilities.
"""

from datetime import date, datetime


def parse_date(value) -> date:
    """
    Parse an admission/discharge date.

    Accepts ``date``/``datetime`` objects and ISO strings (``2020-01-31``,
    optionally followed by a time part such as ``2020-01-31 00:00:00``).

    Raises:
        ValueError: if the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"unparseable date: {value!r}")

    text = value.strip()
    # Drop a time part: "2020-01-31 00:00:00" / "2020-01-31T00:00:00"
    if len(text) > 10 and text[10] in (" ", "T"):
        text = text[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValueError(f"unparseable date: {value!r}") from None


def month_start(value: date) -> date:
    """First day of the month containing ``value``."""
    return value.replace(day=1)
