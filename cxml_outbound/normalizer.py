"""Value normalizers shared by the field validator and the renderer.

- Numbers are coerced through ``Decimal`` so numeric strings are accepted
- Dates and date-times are rendered as ISO 8601 text
- Purchasing-card expirations snap to the last day of their month
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    """Coerce *value* to a finite ``Decimal``; ``None`` when it is not numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not number.is_finite():
        return None
    return number


def is_numeric(value: Any) -> bool:
    return to_decimal(value) is not None


def number_text(value: Any) -> str:
    """Plain (non-scientific) text for a numeric value."""
    number = to_decimal(value)
    if number is None:
        return "" if value is None else str(value)
    return format(number, "f")


def now_timestamp() -> str:
    """Current local time, ISO 8601 with milliseconds and UTC offset."""
    return datetime.now().astimezone().isoformat(timespec="milliseconds")


def iso_timestamp(value: Any) -> str:
    """Render a ``date``/``datetime`` as ISO text; strings pass through verbatim."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.astimezone()
        return value.isoformat(timespec="milliseconds")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def parse_iso_date(text: str) -> date | None:
    """
    Best-effort ISO 8601 parser for expiration dates.

    Accepts full dates, date-times (with or without offset) and ``YYYY-MM``.
    """
    text = text.strip()
    if not text:
        return None
    candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        pass
    for fmt in ("%Y-%m", "%Y%m%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def end_of_month(value: Any) -> str | None:
    """
    Last day of the month containing *value* as ``YYYY-MM-DD``.

    Returns ``None`` when *value* is neither a parsable string nor a date.
    """
    if isinstance(value, datetime):
        day = value.date()
    elif isinstance(value, date):
        day = value
    elif isinstance(value, str):
        day = parse_iso_date(value)
        if day is None:
            return None
    else:
        return None

    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=last).isoformat()[:10]


def yes_flag(value: Any) -> str | None:
    """cXML boolean attributes are either ``"yes"`` or absent."""
    if isinstance(value, str):
        return "yes" if value.strip().lower() in ("yes", "true", "1") else None
    return "yes" if value else None
