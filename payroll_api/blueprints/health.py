from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.common.http import ok, fail
from payroll_api.extensions import db
from payroll_api.services.pay_cycle import get_pay_cycle_for_date

bp = Blueprint("health", __name__, url_prefix="/api")


@bp.get("/health")
def health():
    """Liveness plus the pay cycle the server currently resolves to."""
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        return fail("database unavailable", status=503, detail=str(e))
    return ok({
        "status": "ok",
        "db": db.engine.dialect.name,
        "current_cycle": get_pay_cycle_for_date().as_dict(),
    })
