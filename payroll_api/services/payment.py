# payroll_api/services/payment.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from flask import render_template
from sqlalchemy import update

from payroll_api.common.errors import ConflictError, NotFoundError, ValidationError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.ledger import SalaryCycleLedger
from payroll_api.services.mailer import Mailer
from payroll_api.services.pay_cycle import parse_cycle_key
from payroll_api.services.salary_ledger import find_ledger
from payroll_api.settings import PayrollSettings

log = logging.getLogger(__name__)


@dataclass
class PaymentOutcome:
    ledger: SalaryCycleLedger
    employee: Employee
    notified: List[str] = field(default_factory=list)


def _bump_salary_count(doc: SalaryCycleLedger) -> Employee:
    """
    Second write of the finalize sequence: salary_count + 1 in SQL, then mark
    the ledger as counted so a re-run never bumps it twice.
    """
    res = db.session.execute(
        update(Employee)
        .where(Employee.employee_id == doc.employee_id)
        .values(salary_count=Employee.salary_count + 1)
    )
    if res.rowcount == 0:
        db.session.rollback()
        raise NotFoundError("Employee not found (after marking paid)")
    doc.paid_counted = True
    db.session.commit()
    emp = Employee.query.filter_by(employee_id=doc.employee_id).first()
    db.session.refresh(emp)
    return emp


def _notify(doc: SalaryCycleLedger, emp: Employee, *, settings: PayrollSettings, mailer: Mailer) -> List[str]:
    sent = []
    label = doc.cycle_key
    messages = [(
        emp.email,
        f"Salary Paid — {label}",
        "email/salary_paid.html",
        dict(
            name=emp.name,
            month_label=label,
            amount=doc.payable_salary,
            cycle_start=doc.cycle_start.date().isoformat(),
            cycle_end=doc.cycle_end.date().isoformat(),
        ),
    )]
    if (emp.referred_by or "").strip() and emp.salary_count == settings.referral_salary_count and settings.owner_email:
        messages.append((
            settings.owner_email,
            f"Referral Bonus Due — {emp.name} ({settings.referral_salary_count} months reached)",
            "email/referral_bonus.html",
            dict(
                employee_name=emp.name,
                referred_by=emp.referred_by,
                month_label=label,
                salary_count=emp.salary_count,
            ),
        ))

    for to, subject, template, context in messages:
        # the payment is already final; a broken template or mail server only costs the mail
        try:
            if mailer.send(to, subject, render_template(template, **context)):
                sent.append(to)
        except Exception:
            log.exception("notification to %s failed (%s)", to, subject)
    return sent


def mark_salary_paid(employee_id, cycle_key, *, settings: PayrollSettings, mailer: Mailer) -> PaymentOutcome:
    employee_id = str(employee_id or "").strip()
    cycle_key = str(cycle_key or "").strip()
    if not employee_id or not cycle_key:
        raise ValidationError("employee_id and cycle_key are required")
    parse_cycle_key(cycle_key)

    doc = find_ledger(employee_id, cycle_key)
    if not doc:
        raise NotFoundError("Salary document not found for this cycle")

    if doc.is_paid:
        if not doc.paid_counted:
            # crashed between the two writes last time: finish phase two only
            log.warning("recovering salary_count for employee=%s cycle=%s", employee_id, cycle_key)
            _bump_salary_count(doc)
        raise ConflictError("This cycle is already marked as paid.", payload={"cycle_key": cycle_key})

    doc.status = "paid"
    doc.paid_at = datetime.utcnow()
    db.session.commit()

    emp = _bump_salary_count(doc)
    log.info("salary paid: employee=%s cycle=%s amount=%s count=%s",
             employee_id, cycle_key, doc.payable_salary, emp.salary_count)

    notified = _notify(doc, emp, settings=settings, mailer=mailer)
    return PaymentOutcome(ledger=doc, employee=emp, notified=notified)
