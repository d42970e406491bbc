# payroll_api/services/employee_service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from payroll_api.common.errors import ConflictError, NotFoundError, ValidationError
from payroll_api.common.values import CENT, to_decimal
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.ledger import SalaryCycleLedger
from payroll_api.settings import PayrollSettings

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("email", "employee_id", "name", "designation", "phone_no", "job_shift", "salary")
TEXT_FIELDS = (
    "name", "email", "designation", "phone_no", "job_shift", "referred_by",
    "current_employee", "iban_number", "account_title", "bank_name",
)


def compute_salary_per_hour(monthly_salary, settings: PayrollSettings) -> Decimal:
    if not settings.monthly_hours:
        return Decimal("0.00")
    return (Decimal(str(monthly_salary)) / Decimal(settings.monthly_hours)).quantize(CENT)


def _joining_date(j: Dict[str, Any]) -> Optional[date]:
    raw = j.get("joining_date") or j.get("joiningDate") or j.get("joining")
    if not raw:
        return None
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(str(raw), fmt).date()
        except ValueError:
            pass
    raise ValidationError("joining_date must be YYYY-MM-DD")


def _salary(raw) -> Decimal:
    d = to_decimal(raw, "salary")
    if d is None or d < 0:
        raise ValidationError("salary must be a non-negative number")
    return d


def get_employee(employee_id: str) -> Employee:
    emp = Employee.query.filter_by(employee_id=employee_id).first()
    if not emp:
        raise NotFoundError("Employee not found")
    return emp


def create_employee(j: Dict[str, Any], *, settings: PayrollSettings) -> Employee:
    missing = [k for k in REQUIRED_FIELDS if j.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} missing", payload={"missingFields": missing})
    salary = _salary(j.get("salary"))

    emp = Employee(
        employee_id=str(j["employee_id"]).strip(),
        salary=salary,
        salary_per_hour=compute_salary_per_hour(salary, settings),
        joining_date=_joining_date(j),
        salary_count=0,
    )
    for k in TEXT_FIELDS:
        if j.get(k) is not None:
            setattr(emp, k, str(j[k]).strip())
    emp.email = (emp.email or "").lower()
    if not emp.current_employee:
        emp.current_employee = "Active Employee"

    db.session.add(emp)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Employee ID must be unique.")
    log.info("employee %s created (salary=%s, per_hour=%s)", emp.employee_id, emp.salary, emp.salary_per_hour)
    return emp


def update_employee(employee_id: str, j: Dict[str, Any], *, settings: PayrollSettings) -> Employee:
    emp = get_employee(employee_id)

    # the old dashboard sometimes sends "salaray"
    incoming = j.get("salary", j.get("salaray"))
    if incoming is not None:
        emp.salary = _salary(incoming)
        emp.salary_per_hour = compute_salary_per_hour(emp.salary, settings)

    for k in TEXT_FIELDS:
        if k in j and j[k] is not None:
            setattr(emp, k, str(j[k]).strip())
    jd = _joining_date(j)
    if jd is not None:
        emp.joining_date = jd

    db.session.commit()
    return emp


def delete_employee(employee_id: str) -> None:
    emp = get_employee(employee_id)
    # ledgers keep the pay history; sqlite does not enforce the RESTRICT fk
    if SalaryCycleLedger.query.filter_by(employee_pk=emp.id).first():
        raise ConflictError("Employee has salary ledgers and cannot be deleted.")
    db.session.delete(emp)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Employee has salary ledgers and cannot be deleted.")
    log.info("employee %s deleted", employee_id)


def list_employees():
    rows = Employee.query.order_by(Employee.created_at.desc(), Employee.id.desc()).all()
    active = (
        db.session.query(func.count(Employee.id))
        .filter(func.lower(Employee.current_employee).like("active%"))
        .scalar()
    ) or 0
    return rows, {"active_employee": active, "ex-employee": len(rows) - active}
