from datetime import datetime
from decimal import Decimal

from sqlalchemy import event

from payroll_api.common.errors import FatalInvariantError
from payroll_api.common.values import money
from payroll_api.extensions import db

TXN_TYPES = (
    "increment",
    "decrement",
    "bonus_amount",
    "bonus_percentage",
    "attendance_bonus",
    "attendance_bonus_auto",
    "overtime",
    "absent",
    "early_leave",
)


class SalaryCycleLedger(db.Model):
    """One row per (employee, pay cycle). payable = base_salary + sum(transactions.amount)."""
    __tablename__ = "salary_cycle_ledgers"

    id = db.Column(db.Integer, primary_key=True)
    employee_pk = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_id = db.Column(db.String(64), nullable=False, index=True)

    cycle_key   = db.Column(db.String(21), nullable=False, index=True)  # YYYY-MM-DD_YYYY-MM-DD
    cycle_start = db.Column(db.DateTime, nullable=False)
    cycle_end   = db.Column(db.DateTime, nullable=False)

    base_salary     = db.Column(db.Numeric(14, 2), nullable=False)
    salary_per_hour = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    payable_salary  = db.Column(db.Numeric(14, 2), nullable=False)

    attendance_count         = db.Column(db.Integer, nullable=False, default=0)
    attendance_bonus_awarded = db.Column(db.Boolean, nullable=False, default=False)

    status = db.Column(db.Enum("unpaid", "paid", name="salary_ledger_status_enum"), nullable=False, default="unpaid")
    paid_at = db.Column(db.DateTime, nullable=True)
    paid_counted = db.Column(db.Boolean, nullable=False, default=False)  # employee.salary_count bumped for this cycle
    last_action_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
    transactions = db.relationship(
        "SalaryTransaction",
        order_by="SalaryTransaction.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
        back_populates="ledger",
    )

    __table_args__ = (
        db.UniqueConstraint("employee_id", "cycle_key", name="uq_salary_ledger_employee_cycle"),
        db.Index("ix_salary_ledger_employee_start", "employee_id", "cycle_start"),
    )

    def add_transaction(self, type_, amount, note="", meta=None, action_date=None):
        amount = money(amount, type_)
        payable = money(Decimal(str(self.payable_salary or 0)) + amount, "payable_salary")
        txn = SalaryTransaction(
            type=type_,
            amount=amount,
            meta=meta or {},
            note=note or "",
            action_date=action_date or datetime.utcnow(),
            seq=len(self.transactions) + 1,
        )
        self.transactions.append(txn)
        self.payable_salary = payable
        return txn

    def recomputed_payable(self) -> Decimal:
        base = Decimal(str(self.base_salary or 0))
        return base + sum((Decimal(str(t.amount)) for t in self.transactions), Decimal("0"))

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"


class SalaryTransaction(db.Model):
    """Immutable once appended; amount is already signed."""
    __tablename__ = "salary_transactions"

    id = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey("salary_cycle_ledgers.id", ondelete="CASCADE"), nullable=False, index=True)
    seq = db.Column(db.Integer, nullable=False)

    type = db.Column(db.Enum(*TXN_TYPES, name="salary_txn_type_enum"), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    meta = db.Column(db.JSON, nullable=False, default=dict)
    note = db.Column(db.String(500), nullable=False, default="")
    action_date = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    ledger = db.relationship("SalaryCycleLedger", back_populates="transactions")

    __table_args__ = (
        db.UniqueConstraint("ledger_id", "seq", name="uq_salary_txn_ledger_seq"),
    )


@event.listens_for(SalaryTransaction, "before_update")
def _transactions_are_immutable(mapper, connection, target):
    raise FatalInvariantError(
        "IMMUTABLE_ROW", "salary transactions cannot be modified; append a correcting one",
        payload={"ledger_id": target.ledger_id, "seq": target.seq},
    )
