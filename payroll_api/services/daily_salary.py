# payroll_api/services/daily_salary.py
"""
Daily salary snapshots.

Separate from the pay-cycle ledger: each (employee, day) row snapshots the
employee's salary on first write and then accumulates increment/deduction.
Every applied amount also lands in salary_daily_events as an audit trail.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from payroll_api.common.errors import ConflictError, NotFoundError, ValidationError
from payroll_api.common.paging import Page, paginate
from payroll_api.common.values import ZERO, flt, money, parse_ymd, to_decimal
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.daily import SalaryDaily, SalaryDailyEvent

log = logging.getLogger(__name__)


def _clamp(x: Decimal) -> Decimal:
    return x if x > ZERO else ZERO


def _non_negative(raw, field: str, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    d = to_decimal(raw, field)
    if d is None:
        return default
    if d < ZERO:
        raise ValidationError("increment/deduction must be non-negative numbers")
    return money(d)


def _events(employee_id: str, salary_date: str, inc: Decimal, ded: Decimal, note: str) -> List[SalaryDailyEvent]:
    out = []
    if inc > ZERO:
        out.append(SalaryDailyEvent(employee_id=employee_id, salary_date=salary_date, type="increment", amount=inc, note=note))
    if ded > ZERO:
        out.append(SalaryDailyEvent(employee_id=employee_id, salary_date=salary_date, type="deduction", amount=ded, note=note))
    return out


def _commit():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Salary record already exists for this date")


def find_day(employee_id: str, salary_date: str) -> Optional[SalaryDaily]:
    return SalaryDaily.query.filter_by(employee_id=employee_id, salary_date=salary_date).first()


def upsert_daily_salary(employee_id, date, increment=None, deduction=None, note=None) -> SalaryDaily:
    """Delta semantics: each call moves the day's payable from where it is now."""
    employee_id = str(employee_id or "").strip()
    if not employee_id or not date:
        raise ValidationError("employee_id and date are required")
    inc = _non_negative(increment, "increment")
    ded = _non_negative(deduction, "deduction")
    salary_date = parse_ymd(date)

    emp = Employee.query.filter_by(employee_id=employee_id).first()
    if not emp:
        raise NotFoundError("Employee not found")

    doc = find_day(employee_id, salary_date)
    if not doc:
        base = money(emp.salary)
        doc = SalaryDaily(
            employee_id=employee_id,
            salary_date=salary_date,
            base_salary=base,
            increment=inc,
            deduction=ded,
            payable_amount=money(_clamp(base - ded + inc), "payable_amount"),
            note=note or "",
        )
        db.session.add(doc)
    else:
        # computed first so an out-of-range total leaves the row untouched
        total_inc = money(money(doc.increment) + inc, "increment")
        total_ded = money(money(doc.deduction) + ded, "deduction")
        payable = money(_clamp(money(doc.payable_amount) - ded + inc), "payable_amount")
        doc.increment, doc.deduction, doc.payable_amount = total_inc, total_ded, payable
        if note:
            doc.note = f"{doc.note}\n{note}" if doc.note else note

    db.session.add_all(_events(employee_id, salary_date, inc, ded, note or ""))
    _commit()
    return doc


def update_daily_salary(employee_id, date, increment=None, deduction=None, note=None) -> SalaryDaily:
    """
    Absolute semantics: increment/deduction become the day's totals and
    payable is recomputed from the base snapshot. Only growth of a total is
    written to the audit log.
    """
    salary_date = parse_ymd(date)
    doc = find_day(employee_id, salary_date)
    if not doc:
        raise NotFoundError("Salary record not found")

    old_inc = money(doc.increment)
    old_ded = money(doc.deduction)
    new_inc = _non_negative(increment, "increment", default=old_inc)
    new_ded = _non_negative(deduction, "deduction", default=old_ded)

    payable = money(_clamp(money(doc.base_salary) - new_ded + new_inc), "payable_amount")
    doc.increment, doc.deduction, doc.payable_amount = new_inc, new_ded, payable
    if note is not None:
        doc.note = note

    delta_inc = max(ZERO, new_inc - old_inc)
    delta_ded = max(ZERO, new_ded - old_ded)
    db.session.add_all(_events(employee_id, salary_date, delta_inc, delta_ded, note or ""))
    _commit()
    return doc


def delete_daily_salary(employee_id, date) -> Dict[str, Any]:
    salary_date = parse_ymd(date)
    doc = find_day(employee_id, salary_date)
    if not doc:
        raise NotFoundError("Salary record not found")
    row = daily_row(doc)
    db.session.delete(doc)
    db.session.commit()
    log.info("daily salary deleted: employee=%s date=%s", employee_id, salary_date)
    return row


def daily_salary_summary(employee_id: str) -> Dict[str, Any]:
    emp = Employee.query.filter_by(employee_id=employee_id).first()
    if not emp:
        raise NotFoundError("Employee not found")
    latest = (SalaryDaily.query
              .filter_by(employee_id=employee_id)
              .order_by(SalaryDaily.salary_date.desc())
              .first())
    return {
        "employee_id": emp.employee_id,
        "name": emp.name,
        "designation": emp.designation,
        "base_salary": flt(emp.salary),
        "current_employee": emp.current_employee,
        "latest_payable": flt(latest.payable_amount) if latest else flt(emp.salary),
        "last_update_date": latest.salary_date if latest else None,
        "last_increment": flt(latest.increment) if latest else 0,
        "last_deduction": flt(latest.deduction) if latest else 0,
        "last_note": latest.note if latest else "",
    }


def _date_filter(col, filters: Dict[str, Any]):
    """date | month (YYYY-MM prefix) | from/to (inclusive), first match wins."""
    if filters.get("date"):
        return [col == parse_ymd(filters["date"])]
    if filters.get("month"):
        month = str(filters["month"]).strip()
        if len(month) != 7 or month[4] != "-" or not (month[:4] + month[5:]).isdigit():
            raise ValidationError("month must be YYYY-MM")
        return [col.like(f"{month}-%")]
    if filters.get("from") or filters.get("to"):
        lo = parse_ymd(filters["from"], "from") if filters.get("from") else "0000-01-01"
        hi = parse_ymd(filters["to"], "to") if filters.get("to") else "9999-12-31"
        return [col >= lo, col <= hi]
    return []


def list_daily_salaries(filters: Dict[str, Any], page: int, limit: int) -> Page:
    q = SalaryDaily.query
    if filters.get("employee_id"):
        q = q.filter(SalaryDaily.employee_id == filters["employee_id"])
    q = q.filter(*_date_filter(SalaryDaily.salary_date, filters))
    q = q.order_by(SalaryDaily.salary_date.desc(), SalaryDaily.created_at.desc(), SalaryDaily.id.desc())
    pg = paginate(q, page, limit)
    pg.extra = {"totalPayable": flt(sum((money(r.payable_amount) for r in pg.rows), ZERO))}
    return pg


def _event_query(employee_id: str, filters: Dict[str, Any]):
    if not employee_id:
        raise ValidationError("employee_id is required")
    return [SalaryDailyEvent.employee_id == employee_id, *_date_filter(SalaryDailyEvent.salary_date, filters)]


def list_salary_events(employee_id: str, filters: Dict[str, Any], page: int, limit: int) -> Page:
    conds = _event_query(employee_id, filters)
    q = (SalaryDailyEvent.query.filter(*conds)
         .order_by(SalaryDailyEvent.salary_date.desc(), SalaryDailyEvent.created_at.desc(), SalaryDailyEvent.id.desc()))
    pg = paginate(q, page, limit)

    sums = dict(
        db.session.query(SalaryDailyEvent.type, func.sum(SalaryDailyEvent.amount))
        .filter(*conds)
        .group_by(SalaryDailyEvent.type)
        .all()
    )
    inc = money(sums.get("increment"))
    ded = money(sums.get("deduction"))
    pg.extra = {
        "employee_id": employee_id,
        "total_increment": flt(inc),
        "total_deduction": flt(ded),
        "net_change": flt(inc - ded),
    }
    return pg


def salary_events_summary(employee_id: str, filters: Dict[str, Any], group_by: str = "none") -> Dict[str, Any]:
    conds = _event_query(employee_id, filters)
    by_day = group_by == "day"
    cols = [SalaryDailyEvent.salary_date, SalaryDailyEvent.type] if by_day else [SalaryDailyEvent.type]
    q = (db.session.query(*cols, func.sum(SalaryDailyEvent.amount), func.count(SalaryDailyEvent.id))
         .filter(*conds)
         .group_by(*cols)
         .order_by(*cols))

    rows = []
    total_inc = total_ded = ZERO
    for r in q.all():
        if by_day:
            day, typ, amount, count = r
            key = {"date": day, "type": typ}
        else:
            typ, amount, count = r
            key = {"type": typ}
        amount = money(amount)
        if typ == "increment":
            total_inc += amount
        elif typ == "deduction":
            total_ded += amount
        rows.append({"_id": key, "amount": flt(amount), "count": count})

    return {
        "employee_id": employee_id,
        "groupBy": group_by,
        "total_increment": flt(total_inc),
        "total_deduction": flt(total_ded),
        "net_change": flt(total_inc - total_ded),
        "rows": rows,
    }


def daily_row(d: SalaryDaily) -> Dict[str, Any]:
    return {
        "id": d.id,
        "employee_id": d.employee_id,
        "salary_date": d.salary_date,
        "base_salary": flt(d.base_salary),
        "increment": flt(d.increment),
        "deduction": flt(d.deduction),
        "payable_amount": flt(d.payable_amount),
        "note": d.note,
        "created_at": d.created_at.isoformat() if d.created_at else None,
        "updated_at": d.updated_at.isoformat() if d.updated_at else None,
    }


def event_row(e: SalaryDailyEvent) -> Dict[str, Any]:
    return {
        "id": e.id,
        "employee_id": e.employee_id,
        "salary_date": e.salary_date,
        "type": e.type,
        "amount": flt(e.amount),
        "note": e.note,
        "created_at": e.created_at.isoformat() if e.created_at else None,
    }
