from __future__ import annotations

from flask import Blueprint, request

from payroll_api.common.auth import requires_roles
from payroll_api.common.http import ok, ok_page
from payroll_api.common.paging import page_limit
from payroll_api.common.values import json_object
from payroll_api.services import daily_salary as svc

bp = Blueprint("employee_salary", __name__, url_prefix="/api/employee-salary")

_FILTER_KEYS = ("employee_id", "date", "month", "from", "to")


def _filters():
    return {k: request.args.get(k) for k in _FILTER_KEYS if request.args.get(k)}


@bp.post("")
@requires_roles("admin")
def upsert_day():
    """Create/accumulate a day: increment/deduction are deltas on the current payable."""
    j = json_object()
    doc = svc.upsert_daily_salary(
        j.get("employee_id"), j.get("date"),
        increment=j.get("increment"), deduction=j.get("deduction"), note=j.get("note"),
    )
    return ok(svc.daily_row(doc), message="Daily salary saved")


@bp.get("")
def list_days():
    """
    ?employee_id=EMP-001                      -> base salary + latest payable summary
    ?employee_id=&date= | &month= | &from=&to= -> paginated daily rows
    """
    f = _filters()
    if set(f) == {"employee_id"}:
        return ok(svc.daily_salary_summary(f["employee_id"]))
    page, limit = page_limit()
    return ok_page(svc.list_daily_salaries(f, page, limit), svc.daily_row)


@bp.get("/events")
def events():
    page, limit = page_limit()
    pg = svc.list_salary_events(request.args.get("employee_id"), _filters(), page, limit)
    return ok_page(pg, svc.event_row)


@bp.get("/events/summary")
def events_summary():
    group_by = request.args.get("groupBy") or request.args.get("group_by") or "none"
    return ok(svc.salary_events_summary(request.args.get("employee_id"), _filters(), group_by))


@bp.patch("/<employee_id>/<day>")
@requires_roles("admin")
def update_day(employee_id: str, day: str):
    """Absolute totals for the day."""
    j = json_object()
    doc = svc.update_daily_salary(
        employee_id, day,
        increment=j.get("increment"), deduction=j.get("deduction"), note=j.get("note"),
    )
    return ok(svc.daily_row(doc), message="Daily salary updated")


@bp.delete("/<employee_id>/<day>")
@requires_roles("admin")
def delete_day(employee_id: str, day: str):
    return ok(svc.delete_daily_salary(employee_id, day), message="Daily salary deleted")
