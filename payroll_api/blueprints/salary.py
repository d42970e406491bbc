from __future__ import annotations

from flask import Blueprint

from payroll_api.blueprints.employees import _row as employee_row
from payroll_api.common.auth import requires_roles
from payroll_api.common.http import ok, ok_page
from payroll_api.common.paging import page_limit
from payroll_api.common.values import json_object
from payroll_api.services.payment import mark_salary_paid
from payroll_api.services.salary_ledger import apply_salary_action, get_ledger, ledger_row, salary_history
from payroll_api.settings import current_mailer, current_settings

bp = Blueprint("salary", __name__, url_prefix="/api/salary")


@bp.post("/apply")
@requires_roles("admin")
def apply_action():
    j = json_object()
    doc = apply_salary_action(j)
    return ok(ledger_row(doc), message="Salary updated for selected date's pay cycle.")


@bp.get("/history/<employee_id>")
def history(employee_id: str):
    page, limit = page_limit(default_limit=10)
    return ok_page(salary_history(employee_id, page, limit), ledger_row)


@bp.get("/<employee_id>/<cycle_key>")
def get_cycle(employee_id: str, cycle_key: str):
    doc = get_ledger(employee_id, cycle_key)
    row = ledger_row(doc)
    row["recomputed_payable"] = float(doc.recomputed_payable())
    return ok(row)


@bp.post("/mark-paid")
@requires_roles("admin")
def mark_paid():
    j = json_object()
    out = mark_salary_paid(
        j.get("employee_id"), j.get("cycle_key"),
        settings=current_settings(), mailer=current_mailer(),
    )
    message = "Salary marked as paid. " + (
        "Notification(s) sent." if out.notified else "No notification was sent."
    )
    return ok(
        {"salaryDoc": ledger_row(out.ledger), "employee": employee_row(out.employee)},
        message=message,
        notified=out.notified,
    )
