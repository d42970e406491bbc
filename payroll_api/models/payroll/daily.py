from datetime import datetime
from payroll_api.extensions import db


class SalaryDaily(db.Model):
    """Per-day snapshot ledger; independent of SalaryCycleLedger."""
    __tablename__ = "salary_daily"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), nullable=False, index=True)
    salary_date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD

    base_salary    = db.Column(db.Numeric(14, 2), nullable=False)            # Employee.salary at first write
    increment      = db.Column(db.Numeric(14, 2), nullable=False, default=0) # cumulative, >= 0
    deduction      = db.Column(db.Numeric(14, 2), nullable=False, default=0) # cumulative, >= 0
    payable_amount = db.Column(db.Numeric(14, 2), nullable=False)            # never below 0
    note = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "salary_date", name="uq_salary_daily_employee_date"),
    )


class SalaryDailyEvent(db.Model):
    __tablename__ = "salary_daily_events"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), nullable=False, index=True)
    salary_date = db.Column(db.String(10), nullable=False, index=True)
    type   = db.Column(db.Enum("increment", "deduction", name="salary_daily_event_type_enum"), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)   # delta applied by one call, >= 0
    note   = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_salary_daily_events_emp_date_created", "employee_id", "salary_date", "created_at"),
    )
