# payroll_api/common/values.py
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from flask import request

from payroll_api.common.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
# Numeric(14, 2) holds 12 integer digits
MAX_AMOUNT = Decimal("1e12")

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def money(x, field: str = "amount") -> Decimal:
    try:
        d = Decimal(str(x or 0)).quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} is out of range")
    if abs(d) >= MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range")
    return d


def flt(x):
    try: return float(x) if x is not None else None
    except Exception: return None


def to_decimal(x, field: str) -> Optional[Decimal]:
    """None/"" -> None; bools and garbage -> ValidationError."""
    if x is None or x == "":
        return None
    if isinstance(x, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        d = Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number")
    if abs(d) >= MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range")
    return d


def json_object() -> Dict[str, Any]:
    """Request body as a dict; no body means {}, any other JSON value is a 400."""
    j = request.get_json(silent=True)
    if j is None:
        return {}
    if not isinstance(j, dict):
        raise ValidationError("request body must be a JSON object")
    return j


def parse_ymd(s, field: str = "date") -> str:
    """Normalize to the 'YYYY-MM-DD' key used by the date-keyed tables."""
    if isinstance(s, datetime):
        return s.date().isoformat()
    if isinstance(s, date):
        return s.isoformat()
    raw = str(s or "").strip()
    if not raw:
        raise ValidationError(f"{field} is required (YYYY-MM-DD)")
    try:
        if _YMD_RE.match(raw):
            return date.fromisoformat(raw).isoformat()
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD)")


def _ms(dt: datetime) -> datetime:
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def parse_action_datetime(s, field: str = "action_date") -> datetime:
    """
    'YYYY-MM-DD' or ISO datetime; tz info is dropped, wall-clock fields kept.
    Precision is cut to milliseconds, the same as the pay cycle bounds.
    """
    if isinstance(s, datetime):
        return _ms(s.replace(tzinfo=None))
    if isinstance(s, date):
        return datetime(s.year, s.month, s.day)
    raw = str(s or "").strip()
    try:
        if _YMD_RE.match(raw):
            d = date.fromisoformat(raw)
            return datetime(d.year, d.month, d.day)
        return _ms(datetime.fromisoformat(raw.replace("Z", "+00:00")).replace(tzinfo=None))
    except ValueError:
        raise ValidationError(f"{field} is not a valid date.")
