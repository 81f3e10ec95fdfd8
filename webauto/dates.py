# webauto/dates.py
"""
@file dates.py
@brief Relative date keywords (TODAY, NEXT_MONTH, TODAY+5, ...) to formatted dates.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

DEFAULT_DATE_FORMAT = "%d-%b-%Y"

KEYWORD_OFFSETS = {
    "TODAY": relativedelta(),
    "TOMORROW": relativedelta(days=1),
    "YESTERDAY": relativedelta(days=-1),
    "NEXT_WEEK": relativedelta(days=7),
    "LAST_WEEK": relativedelta(days=-7),
    "NEXT_MONTH": relativedelta(months=1),
    "LAST_MONTH": relativedelta(months=-1),
    "NEXT_YEAR": relativedelta(years=1),
    "LAST_YEAR": relativedelta(years=-1),
}

_TODAY_OFFSET = re.compile(r"^TODAY([+-])(\d+)$")


def is_date_keyword(value: Optional[str]) -> bool:
    """True when the value starts with one of the keywords (case-insensitive)."""
    if not value or not value.strip():
        return False
    upper = value.strip().upper()
    return any(upper.startswith(k) for k in KEYWORD_OFFSETS)


def resolve_date(
    value: Optional[str],
    fmt: Optional[str] = None,
    today: Optional[Union[date, datetime]] = None,
) -> Optional[str]:
    """
    Resolve a keyword or a parseable date string to ``fmt``.

    Unparseable non-keyword values are returned unchanged.
    """
    if value is None or not value.strip():
        return value

    fmt = fmt or DEFAULT_DATE_FORMAT
    base = today or datetime.now()
    upper = value.strip().upper()

    offset = KEYWORD_OFFSETS.get(upper)
    if offset is not None:
        return (base + offset).strftime(fmt)

    m = _TODAY_OFFSET.match(upper)
    if m:
        days = int(m.group(2))
        try:
            shifted = base + relativedelta(days=days if m.group(1) == "+" else -days)
        except (OverflowError, ValueError):
            return value
        return shifted.strftime(fmt)

    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError):
        return value
    return parsed.strftime(fmt)
