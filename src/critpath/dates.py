"""Date normalisation for values arriving from persistence.

Everything inside the scheduler is a ``datetime.date``. Values from the outside
world may be dates, datetimes, or ISO strings; they are collapsed onto a date
with one fixed policy:

- date-only strings ("2025-03-03") are that calendar day (UTC midnight)
- datetimes with an offset, and strings ending in "Z", are converted to UTC first
- naive datetimes are truncated to their date
"""

from __future__ import annotations

from datetime import date, datetime, timezone

DateLike = date | datetime | str | None


def parse_date(value: DateLike, *, strict: bool = False) -> date | None:
    """Normalise a date-like value to a ``date``.

    Args:
        value: Date, datetime, ISO string, or None
        strict: Raise instead of returning None for malformed values

    Returns:
        The date, or None when the value is missing (or malformed and not strict)

    Raises:
        ValueError: If strict and the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _datetime_to_date(value)
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return _parse_iso(text)
    except ValueError:
        if strict:
            raise
        return None


def _parse_iso(text: str) -> date:
    if len(text) == 10:  # noqa: PLR2004 - YYYY-MM-DD
        return date.fromisoformat(text)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return _datetime_to_date(datetime.fromisoformat(text))


def _datetime_to_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def format_date(value: date | None) -> str:
    """Format a date for messages and reports ("-" when absent)."""
    if value is None:
        return "-"
    return value.isoformat()
