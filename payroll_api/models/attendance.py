from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import event

from payroll_api.common.errors import FatalInvariantError
from payroll_api.extensions import db


class AttendanceStatus(str, enum.Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    LEAVE = "LEAVE"
    NONS = "NONS"
    EARLY_LEAVE = "Earlyleave"
    HALF_DAY = "Halfday"
    OTHER = "other"   # anything the UI sends that we don't know yet

    @classmethod
    def parse(cls, raw) -> "AttendanceStatus":
        s = str(raw or "").strip()
        for m in cls:
            if m is not cls.OTHER and m.value == s:
                return m
        return cls.OTHER

    @property
    def qualifies_for_bonus(self) -> bool:
        return self in QUALIFYING_STATUSES


# only these two count toward the attendance bonus
QUALIFYING_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LEAVE})


class AttendanceRecord(db.Model):
    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id     = db.Column(db.String(64), nullable=False, index=True)
    attendance_date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    status = db.Column(db.String(40), nullable=False)   # raw string, see AttendanceStatus
    note   = db.Column(db.String(500), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    history = db.relationship(
        "AttendanceHistory",
        order_by="AttendanceHistory.id",
        cascade="all, delete-orphan",
        lazy="selectin",
        back_populates="record",
    )

    __table_args__ = (
        db.UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
    )

    @property
    def status_enum(self) -> AttendanceStatus:
        return AttendanceStatus.parse(self.status)


class AttendanceHistory(db.Model):
    """Append-only; rows are never updated or reordered."""
    __tablename__ = "attendance_history"

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey("attendance_records.id", ondelete="CASCADE"), nullable=False, index=True)
    status     = db.Column(db.String(40), nullable=False)
    note       = db.Column(db.String(500), nullable=False, default="")
    extra_note = db.Column(db.String(500), nullable=False, default="")
    changed_by = db.Column(db.String(120), nullable=False, default="system")
    changed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    record = db.relationship("AttendanceRecord", back_populates="history")


@event.listens_for(AttendanceHistory, "before_update")
def _history_is_append_only(mapper, connection, target):
    raise FatalInvariantError(
        "IMMUTABLE_ROW", "attendance history entries cannot be modified", payload={"id": target.id}
    )
