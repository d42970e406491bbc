# payroll_api/settings.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

# 9 h/day * 5 days/week * 4 weeks
DEFAULT_MONTHLY_HOURS = 180


@dataclass(frozen=True)
class PayrollSettings:
    monthly_hours: int = DEFAULT_MONTHLY_HOURS
    attendance_target: int = 20
    attendance_bonus_amount: Decimal = Decimal("5000")
    referral_salary_count: int = 3
    owner_email: str = ""

    @classmethod
    def from_config(cls, config) -> "PayrollSettings":
        return cls(
            monthly_hours=int(config.get("MONTHLY_HOURS") or DEFAULT_MONTHLY_HOURS),
            attendance_target=int(config.get("ATTENDANCE_TARGET") or 20),
            attendance_bonus_amount=Decimal(str(config.get("ATTENDANCE_BONUS_AMOUNT") or "5000")),
            referral_salary_count=int(config.get("REFERRAL_SALARY_COUNT") or 3),
            owner_email=(config.get("OWNER_EMAIL") or "").strip(),
        )


def current_settings() -> PayrollSettings:
    return current_app.extensions["payroll_settings"]


def current_mailer():
    return current_app.extensions["mailer"]
