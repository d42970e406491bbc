from datetime import datetime
from payroll_api.extensions import db

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), unique=True, nullable=False, index=True)  # business key, e.g. EMP-001

    name        = db.Column(db.String(160), nullable=False)
    email       = db.Column(db.String(255), nullable=False)
    designation = db.Column(db.String(120), nullable=False)
    phone_no    = db.Column(db.String(32), nullable=False)
    job_shift   = db.Column(db.String(60), nullable=False)
    joining_date = db.Column(db.Date, nullable=True)
    referred_by = db.Column(db.String(160), nullable=False, default="")

    salary          = db.Column(db.Numeric(14, 2), nullable=False)              # monthly base
    salary_per_hour = db.Column(db.Numeric(14, 2), nullable=False, default=0)   # salary / MONTHLY_HOURS
    salary_count    = db.Column(db.Integer, nullable=False, default=0)          # cycles marked paid

    current_employee = db.Column(db.String(40), nullable=False, default="Active Employee")

    iban_number   = db.Column(db.String(64), nullable=False, default="")
    account_title = db.Column(db.String(160), nullable=False, default="")
    bank_name     = db.Column(db.String(160), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return (self.current_employee or "").strip().lower().startswith("active")
