import os

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.services.employee_service import create_employee
from payroll_api.services.mailer import OutboxMailer
from payroll_api.settings import current_settings


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    app.extensions["mailer"] = OutboxMailer()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    return app.extensions["mailer"].outbox


@pytest.fixture
def admin_headers(app):
    token = create_access_token(identity="1", additional_claims={"roles": ["admin"], "email": "admin@test.local"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def viewer_headers(app):
    token = create_access_token(identity="2", additional_claims={"roles": ["viewer"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_employee(app):
    def _make(employee_id="EMP-001", salary=18000, **kw):
        body = {
            "employee_id": employee_id,
            "name": kw.pop("name", "Test Employee"),
            "email": kw.pop("email", f"{employee_id.lower()}@test.local"),
            "designation": "Engineer",
            "phone_no": "0300-0000000",
            "job_shift": "Morning",
            "salary": salary,
        }
        body.update(kw)
        return create_employee(body, settings=current_settings())
    return _make
