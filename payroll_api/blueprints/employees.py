from __future__ import annotations

from flask import Blueprint
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import requires_roles
from payroll_api.common.http import ok
from payroll_api.common.values import flt, json_object
from payroll_api.models.employee import Employee
from payroll_api.services import employee_service as svc
from payroll_api.settings import current_settings

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")


def _row(x: Employee):
    return {
        "id": x.id,
        "employee_id": x.employee_id,
        "name": x.name,
        "email": x.email,
        "designation": x.designation,
        "phone_no": x.phone_no,
        "job_shift": x.job_shift,
        "joining_date": x.joining_date.isoformat() if x.joining_date else None,
        "referred_by": x.referred_by,
        "salary": flt(x.salary),
        "salary_per_hour": flt(x.salary_per_hour),
        "salary_count": x.salary_count,
        "current_employee": x.current_employee,
        "iban_number": x.iban_number,
        "account_title": x.account_title,
        "bank_name": x.bank_name,
        "created_at": x.created_at.isoformat() if x.created_at else None,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }


@bp.post("")
@requires_roles("admin")
def create_employee():
    j = json_object()
    emp = svc.create_employee(j, settings=current_settings())
    return ok(_row(emp), 201)


@bp.get("")
@jwt_required()
def list_employees():
    rows, counts = svc.list_employees()
    return ok([_row(x) for x in rows], count=len(rows), **counts)


@bp.get("/<employee_id>")
@jwt_required()
def get_employee(employee_id: str):
    return ok(_row(svc.get_employee(employee_id)))


@bp.patch("/<employee_id>")
@requires_roles("admin")
def update_employee(employee_id: str):
    j = json_object()
    emp = svc.update_employee(employee_id, j, settings=current_settings())
    return ok(_row(emp))


@bp.delete("/<employee_id>")
@requires_roles("admin")
def delete_employee(employee_id: str):
    svc.delete_employee(employee_id)
    return ok({"deleted": employee_id})
