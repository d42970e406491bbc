# payroll_api/services/attendance_bonus.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.ledger import SalaryCycleLedger
from payroll_api.services.pay_cycle import get_pay_cycle_for_date
from payroll_api.services.salary_ledger import get_or_create_ledger
from payroll_api.settings import PayrollSettings

log = logging.getLogger(__name__)


@dataclass
class BonusOutcome:
    ledger: Optional[SalaryCycleLedger]
    awarded: bool = False
    error: bool = False


def apply_attendance_bonus(employee_id: str, attendance_date: str, *, settings: PayrollSettings) -> BonusOutcome:
    """
    Count one qualifying day against the employee's ledger for the cycle that
    contains attendance_date. The first time the count reaches the target an
    attendance_bonus_auto transaction is appended; the flag keeps it one-shot.
    """
    emp = Employee.query.filter_by(employee_id=employee_id).first()
    if not emp:
        log.warning("attendance bonus skipped: employee %s not found", employee_id)
        return BonusOutcome(ledger=None)

    day = date.fromisoformat(attendance_date)
    cycle = get_pay_cycle_for_date(day)
    doc = get_or_create_ledger(emp, cycle)

    doc.attendance_count = (doc.attendance_count or 0) + 1
    awarded = False
    if doc.attendance_count >= settings.attendance_target and not doc.attendance_bonus_awarded:
        doc.add_transaction(
            "attendance_bonus_auto",
            settings.attendance_bonus_amount,
            note=f"Auto attendance bonus for {settings.attendance_target} days in this cycle.",
            meta={"attendance_count": doc.attendance_count, "target": settings.attendance_target},
            action_date=datetime(day.year, day.month, day.day),
        )
        doc.attendance_bonus_awarded = True
        awarded = True

    db.session.commit()
    if awarded:
        log.info(
            "attendance bonus awarded: employee=%s cycle=%s count=%s amount=%s",
            employee_id, cycle.cycle_key, doc.attendance_count, settings.attendance_bonus_amount,
        )
    return BonusOutcome(ledger=doc, awarded=awarded)
