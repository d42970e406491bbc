# payroll_api/services/attendance_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from payroll_api.common.errors import APIError, ConflictError, ValidationError
from payroll_api.common.paging import Page, paginate
from payroll_api.common.values import parse_ymd
from payroll_api.extensions import db
from payroll_api.models.attendance import AttendanceHistory, AttendanceRecord, AttendanceStatus
from payroll_api.services.attendance_bonus import BonusOutcome, apply_attendance_bonus
from payroll_api.settings import PayrollSettings

log = logging.getLogger(__name__)


def today_ymd() -> str:
    return date.today().isoformat()


@dataclass
class AttendanceOutcome:
    record: AttendanceRecord
    created: bool
    bonus: Optional[BonusOutcome] = None


def record_attendance(
    employee_id,
    attendance_date,
    status,
    note: str = "",
    extra_note: str = "",
    changed_by: str = "system",
    *,
    settings: PayrollSettings,
) -> AttendanceOutcome:
    employee_id = str(employee_id or "").strip()
    status = str(status or "").strip()
    if not employee_id or not attendance_date or not status:
        raise ValidationError("employee_id, attendance_date and status are required.")

    day = parse_ymd(attendance_date, "attendance_date")
    today = today_ymd()
    if day > today:
        raise ValidationError("You cannot mark attendance for a future date.", payload={"today": today})

    entry = AttendanceHistory(
        status=status,
        note=note or "",
        extra_note=extra_note or "",
        changed_by=changed_by or "system",
        changed_at=datetime.utcnow(),
    )

    rec = get_for_employee_date(employee_id, day)
    created = rec is None
    if created:
        rec = AttendanceRecord(employee_id=employee_id, attendance_date=day, status=status, note=note or "")
        db.session.add(rec)
    else:
        rec.status = status
        rec.note = note or ""
    rec.history.append(entry)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Attendance already marked for this employee and date.")

    out = AttendanceOutcome(record=rec, created=created)
    if AttendanceStatus.parse(status).qualifies_for_bonus:
        # attendance is already committed; a bonus failure must not undo it
        try:
            out.bonus = apply_attendance_bonus(employee_id, day, settings=settings)
        except (SQLAlchemyError, APIError):
            db.session.rollback()
            log.exception("attendance bonus failed for employee=%s date=%s", employee_id, day)
            out.bonus = BonusOutcome(ledger=None, error=True)
    return out


def list_by_employee(employee_id: str, page: int, limit: int) -> Page:
    q = (AttendanceRecord.query
         .filter(AttendanceRecord.employee_id == employee_id)
         .order_by(AttendanceRecord.attendance_date.desc(), AttendanceRecord.id.asc()))
    return paginate(q, page, limit)


def list_by_employee_range(employee_id: str, start, end, page: int, limit: int) -> Page:
    if not start or not end:
        raise ValidationError("start and end query params are required in YYYY-MM-DD format.")
    start = parse_ymd(start, "start")
    end = parse_ymd(end, "end")
    if start > end:
        raise ValidationError("start must be on or before end")
    q = (AttendanceRecord.query
         .filter(AttendanceRecord.employee_id == employee_id,
                 AttendanceRecord.attendance_date >= start,
                 AttendanceRecord.attendance_date <= end)
         .order_by(AttendanceRecord.attendance_date.desc(), AttendanceRecord.id.asc()))
    pg = paginate(q, page, limit)
    pg.extra = {"start": start, "end": end}
    return pg


def get_for_employee_date(employee_id: str, day) -> Optional[AttendanceRecord]:
    return AttendanceRecord.query.filter_by(employee_id=employee_id, attendance_date=parse_ymd(day)).first()


def list_by_date(day, page: int, limit: int) -> Page:
    q = (AttendanceRecord.query
         .filter(AttendanceRecord.attendance_date == parse_ymd(day))
         .order_by(AttendanceRecord.employee_id.asc(), AttendanceRecord.id.asc()))
    return paginate(q, page, limit)


def list_today():
    return (AttendanceRecord.query
            .filter(AttendanceRecord.attendance_date == today_ymd())
            .order_by(AttendanceRecord.employee_id.asc(), AttendanceRecord.id.asc())
            .all())


def history_row(h: AttendanceHistory) -> Dict[str, Any]:
    return {
        "status": h.status,
        "note": h.note,
        "extra_note": h.extra_note,
        "changed_by": h.changed_by,
        "changed_at": h.changed_at.isoformat() if h.changed_at else None,
    }


def record_row(r: AttendanceRecord) -> Dict[str, Any]:
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "attendance_date": r.attendance_date,
        "status": r.status,
        "note": r.note,
        "history": [history_row(h) for h in r.history],
        "created_at": r.created_at.isoformat() if r.created_at else None,
        "updated_at": r.updated_at.isoformat() if r.updated_at else None,
    }
