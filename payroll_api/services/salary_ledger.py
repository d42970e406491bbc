# payroll_api/services/salary_ledger.py
"""
Per-cycle salary ledger.

A ledger is created lazily the first time anything salary-relevant happens in
a pay cycle and snapshots the employee's salary and salary_per_hour at that
moment. Every adjustment after that is an appended, already-signed
transaction, so ``payable_salary == base_salary + sum(amount)`` at all times.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from payroll_api.common.errors import ConflictError, CycleMismatchError, NotFoundError, ValidationError
from payroll_api.common.paging import Page, paginate
from payroll_api.common.values import ZERO, money, parse_action_datetime, to_decimal
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.ledger import SalaryCycleLedger
from payroll_api.services.pay_cycle import PayCycle, get_pay_cycle_for_date, parse_cycle_key

log = logging.getLogger(__name__)

ADJUSTMENT_FIELDS = (
    "increment", "decrement", "bonus_amount", "bonus_percentage", "extra_hour",
    "attendance_bonus", "overtime_percent", "overtime_hours", "absent_amount", "early_hour",
)


def find_ledger(employee_id: str, cycle_key: str) -> Optional[SalaryCycleLedger]:
    return SalaryCycleLedger.query.filter_by(employee_id=employee_id, cycle_key=cycle_key).first()


def get_or_create_ledger(employee: Employee, cycle: PayCycle) -> SalaryCycleLedger:
    """
    Fetch the (employee, cycle) ledger or insert it with a fresh snapshot.
    The insert is flushed immediately so a concurrent creator loses on the
    unique constraint instead of producing a second ledger.
    """
    doc = find_ledger(employee.employee_id, cycle.cycle_key)
    if doc:
        return doc

    base = money(employee.salary)
    doc = SalaryCycleLedger(
        employee_pk=employee.id,
        employee_id=employee.employee_id,
        cycle_key=cycle.cycle_key,
        cycle_start=cycle.cycle_start,
        cycle_end=cycle.cycle_end,
        base_salary=base,
        salary_per_hour=money(employee.salary_per_hour),
        payable_salary=base,
        attendance_count=0,
        attendance_bonus_awarded=False,
        status="unpaid",
    )
    db.session.add(doc)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(
            "Salary ledger for this cycle was created concurrently.",
            payload={"employee_id": employee.employee_id, "cycle_key": cycle.cycle_key},
        )
    log.info("salary ledger opened: employee=%s cycle=%s base=%s", employee.employee_id, cycle.cycle_key, base)
    return doc


def _effective_sph(doc: SalaryCycleLedger, employee: Employee) -> Decimal:
    sph = Decimal(str(doc.salary_per_hour or 0))
    if not sph:
        sph = Decimal(str(employee.salary_per_hour or 0))
    return sph


def _read_adjustments(j: Dict[str, Any]) -> Dict[str, Optional[Decimal]]:
    vals = {k: to_decimal(j.get(k), k) for k in ADJUSTMENT_FIELDS}
    bp = vals["bonus_percentage"]
    if bp is not None and bp != ZERO:
        eh = vals["extra_hour"]
        if eh is None or eh <= ZERO:
            raise ValidationError("extra_hour is required and must be > 0 when bonus_percentage is sent.")
    return vals


def _plan_transactions(vals, sph: Decimal) -> List[Dict[str, Any]]:
    """Turn the validated inputs into (type, signed amount, meta) in a fixed order."""
    out: List[Dict[str, Any]] = []

    def nz(k):
        v = vals[k]
        return v is not None and v != ZERO

    def pos(k):
        v = vals[k]
        return v is not None and v > ZERO

    if nz("increment"):
        out.append({"type": "increment", "amount": vals["increment"], "meta": {"increment": float(vals["increment"])}})
    if nz("decrement"):
        out.append({"type": "decrement", "amount": -abs(vals["decrement"]), "meta": {"decrement": float(vals["decrement"])}})
    if nz("bonus_amount"):
        out.append({"type": "bonus_amount", "amount": vals["bonus_amount"], "meta": {"bonus_amount": float(vals["bonus_amount"])}})
    if nz("bonus_percentage"):
        amt = vals["extra_hour"] * vals["bonus_percentage"] * sph
        out.append({"type": "bonus_percentage", "amount": amt, "meta": {
            "bonus_percentage": float(vals["bonus_percentage"]),
            "extra_hour": float(vals["extra_hour"]),
            "salary_per_hour": float(sph),
            "formula": "extra_hour * bonus_percentage * salary_per_hour",
        }})
    if nz("attendance_bonus"):
        out.append({"type": "attendance_bonus", "amount": vals["attendance_bonus"],
                    "meta": {"attendance_bonus": float(vals["attendance_bonus"])}})
    if pos("overtime_percent") and pos("overtime_hours"):
        amt = vals["overtime_hours"] * (vals["overtime_percent"] / Decimal(100)) * sph
        out.append({"type": "overtime", "amount": amt, "meta": {
            "overtime_percent": float(vals["overtime_percent"]),
            "overtime_hours": float(vals["overtime_hours"]),
            "salary_per_hour": float(sph),
            "formula": "overtime_hours * (overtime_percent / 100) * salary_per_hour",
        }})
    if pos("absent_amount"):
        out.append({"type": "absent", "amount": -abs(vals["absent_amount"] * sph), "meta": {
            "absent_amount": float(vals["absent_amount"]),
            "salary_per_hour": float(sph),
            "formula": "absent_amount * salary_per_hour",
        }})
    if pos("early_hour"):
        out.append({"type": "early_leave", "amount": -abs(vals["early_hour"] * sph), "meta": {
            "early_hour": float(vals["early_hour"]),
            "salary_per_hour": float(sph),
            "formula": "early_hour * salary_per_hour",
        }})
    return out


def apply_salary_action(j: Dict[str, Any]) -> SalaryCycleLedger:
    """
    Body (all adjustments optional, each yields at most one transaction):
      employee_id, note, action_date   (required)
      increment, decrement, bonus_amount, attendance_bonus
      bonus_percentage + extra_hour
      overtime_percent + overtime_hours
      absent_amount, early_hour        (hours, priced at salary_per_hour)
    """
    employee_id = (str(j.get("employee_id") or "")).strip()
    note = (str(j.get("note") or "")).strip()
    if not employee_id or not note or not j.get("action_date"):
        raise ValidationError("employee_id, note and action_date are required.")

    action_dt = parse_action_datetime(j.get("action_date"))
    vals = _read_adjustments(j)

    employee = Employee.query.filter_by(employee_id=employee_id).first()
    if not employee:
        raise NotFoundError("Employee not found")

    cycle = get_pay_cycle_for_date(action_dt)
    if not cycle.contains(action_dt):
        raise CycleMismatchError(
            "action_date does not fall inside computed pay cycle.",
            payload={"action_date": action_dt.isoformat(), **cycle.as_dict()},
        )

    doc = get_or_create_ledger(employee, cycle)
    planned = _plan_transactions(vals, _effective_sph(doc, employee))
    try:
        for p in planned:
            doc.add_transaction(p["type"], p["amount"], note=note, meta=p["meta"], action_date=action_dt)
    except ValidationError:
        # drop the half-applied action and a ledger opened just for it
        db.session.rollback()
        raise
    doc.last_action_at = action_dt

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Salary ledger changed concurrently, retry the action.")

    log.info(
        "salary action: employee=%s cycle=%s txns=%s payable=%s",
        employee_id, cycle.cycle_key, [p["type"] for p in planned], doc.payable_salary,
    )
    return doc


def salary_history(employee_id: str, page: int, limit: int) -> Page:
    q = (SalaryCycleLedger.query
         .filter(SalaryCycleLedger.employee_id == employee_id)
         .order_by(SalaryCycleLedger.cycle_start.desc(), SalaryCycleLedger.id.desc()))
    return paginate(q, page, limit)


def get_ledger(employee_id: str, cycle_key: str) -> SalaryCycleLedger:
    parse_cycle_key(cycle_key)
    doc = find_ledger(employee_id, cycle_key)
    if not doc:
        raise NotFoundError("Salary document not found for this cycle")
    return doc


def txn_row(t) -> Dict[str, Any]:
    return {
        "seq": t.seq,
        "type": t.type,
        "amount": float(t.amount),
        "meta": t.meta or {},
        "note": t.note,
        "action_date": t.action_date.isoformat() if t.action_date else None,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def ledger_row(doc: SalaryCycleLedger) -> Dict[str, Any]:
    return {
        "id": doc.id,
        "employee_id": doc.employee_id,
        "cycle_key": doc.cycle_key,
        "cycle_start": doc.cycle_start.isoformat(),
        "cycle_end": doc.cycle_end.isoformat(),
        "base_salary": float(doc.base_salary),
        "salary_per_hour": float(doc.salary_per_hour or 0),
        "payable_salary": float(doc.payable_salary),
        "attendance_count": doc.attendance_count,
        "attendance_bonus_awarded": doc.attendance_bonus_awarded,
        "status": doc.status,
        "paid_at": doc.paid_at.isoformat() if doc.paid_at else None,
        "last_action_at": doc.last_action_at.isoformat() if doc.last_action_at else None,
        "transactions": [txn_row(t) for t in doc.transactions],
        "created_at": doc.created_at.isoformat() if doc.created_at else None,
        "updated_at": doc.updated_at.isoformat() if doc.updated_at else None,
    }
