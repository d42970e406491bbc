# payroll_api/models/payroll/__init__.py
from .ledger import SalaryCycleLedger, SalaryTransaction, TXN_TYPES
from .daily import SalaryDaily, SalaryDailyEvent

__all__ = [
    "SalaryCycleLedger", "SalaryTransaction", "TXN_TYPES",
    "SalaryDaily", "SalaryDailyEvent",
]
