from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import get_jwt

from payroll_api.common.auth import requires_roles
from payroll_api.common.http import ok, ok_page
from payroll_api.common.paging import page_limit
from payroll_api.common.values import json_object
from payroll_api.services import attendance_service as svc
from payroll_api.services.salary_ledger import ledger_row
from payroll_api.settings import current_settings

bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")


@bp.post("")
@requires_roles("admin")
def record_attendance():
    """
    POST /api/attendance
      { employee_id, attendance_date: YYYY-MM-DD, status, note?, extra_note?, changed_by? }
    201 when the day is new, 200 when it was updated (history appended).
    """
    j = json_object()
    changed_by = j.get("changed_by") or (get_jwt() or {}).get("email") or "system"
    out = svc.record_attendance(
        j.get("employee_id"),
        j.get("attendance_date"),
        j.get("status"),
        note=j.get("note") or "",
        extra_note=j.get("extra_note") or "",
        changed_by=changed_by,
        settings=current_settings(),
    )
    data = svc.record_row(out.record)
    if out.bonus is not None:
        data["attendance_bonus"] = {
            "awarded": out.bonus.awarded,
            "error": out.bonus.error,
            "cycle": ledger_row(out.bonus.ledger) if out.bonus.ledger else None,
        }
    message = "Attendance marked successfully." if out.created else "Attendance updated successfully."
    return ok(data, 201 if out.created else 200, message=message)


@bp.get("/today")
def today():
    rows = svc.list_today()
    return ok([svc.record_row(r) for r in rows], total=len(rows), date=svc.today_ymd())


@bp.get("/date/<day>")
def by_date(day: str):
    page, limit = page_limit(default_limit=100)
    return ok_page(svc.list_by_date(day, page, limit), svc.record_row)


@bp.get("/range/<employee_id>")
def by_employee_range(employee_id: str):
    page, limit = page_limit()
    pg = svc.list_by_employee_range(
        employee_id, request.args.get("start"), request.args.get("end"), page, limit
    )
    return ok_page(pg, svc.record_row)


@bp.get("/<employee_id>/<day>")
def by_employee_and_date(employee_id: str, day: str):
    rec = svc.get_for_employee_date(employee_id, day)
    if not rec:
        return ok(None, found=False)
    return ok(svc.record_row(rec), found=True)


@bp.get("/<employee_id>")
def by_employee(employee_id: str):
    page, limit = page_limit()
    return ok_page(svc.list_by_employee(employee_id, page, limit), svc.record_row)
