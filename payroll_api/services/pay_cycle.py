# payroll_api/services/pay_cycle.py
"""
Pay cycles run from the 18th of one month to the 17th of the next:

    day >= 18  ->  [this month 18th 00:00, next month 17th 23:59:59.999]
    day <  18  ->  [previous month 18th 00:00, this month 17th 23:59:59.999]

Only the civil calendar fields of the input are used; no timezone conversion.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time

from payroll_api.common.errors import ValidationError

ANCHOR_DAY = 18
_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class PayCycle:
    cycle_start: datetime
    cycle_end: datetime
    cycle_key: str

    def contains(self, value) -> bool:
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.min)
        return self.cycle_start <= value <= self.cycle_end

    def as_dict(self):
        return {
            "cycle_start": self.cycle_start.isoformat(),
            "cycle_end": self.cycle_end.isoformat(),
            "cycle_key": self.cycle_key,
        }


def _shift_month(year: int, month: int, delta: int):
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def make_cycle_key(start: date, end: date) -> str:
    return f"{start:%Y-%m-%d}_{end:%Y-%m-%d}"


def get_pay_cycle_for_date(value=None) -> PayCycle:
    if value is None:
        value = date.today()
    y, m, d = value.year, value.month, value.day

    if d >= ANCHOR_DAY:
        sy, sm = y, m
    else:
        sy, sm = _shift_month(y, m, -1)
    ey, em = _shift_month(sy, sm, 1)

    start = date(sy, sm, ANCHOR_DAY)
    end = date(ey, em, ANCHOR_DAY - 1)
    return PayCycle(
        cycle_start=datetime.combine(start, time.min),
        cycle_end=datetime.combine(end, _END_OF_DAY),
        cycle_key=make_cycle_key(start, end),
    )


def parse_cycle_key(key: str) -> PayCycle:
    """Validate a client supplied cycle key and return its window."""
    try:
        s, e = (key or "").strip().split("_")
        start = date.fromisoformat(s)
        end = date.fromisoformat(e)
    except ValueError:
        raise ValidationError("cycle_key must look like YYYY-MM-DD_YYYY-MM-DD")
    cycle = get_pay_cycle_for_date(start)
    if cycle.cycle_key != make_cycle_key(start, end):
        raise ValidationError(f"'{key}' is not a pay cycle key", payload={"expected": cycle.cycle_key})
    return cycle
