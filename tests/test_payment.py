from dataclasses import replace

import pytest

from payroll_api.common.errors import ConflictError, NotFoundError, ValidationError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.services.mailer import Mailer, OutboxMailer
from payroll_api.services import payment
from payroll_api.services.payment import mark_salary_paid
from payroll_api.services.salary_ledger import apply_salary_action
from payroll_api.settings import current_settings

MAY = "2025-05-18_2025-06-17"


def _open_cycle(employee_id="EMP-001", action_date="2025-06-05"):
    return apply_salary_action({"employee_id": employee_id, "note": "open", "action_date": action_date, "increment": 500})


def _pay(mailer, cycle_key=MAY, employee_id="EMP-001", settings=None):
    return mark_salary_paid(employee_id, cycle_key, settings=settings or current_settings(), mailer=mailer)


class BrokenMailer(Mailer):
    def send(self, to, subject, html):
        raise OSError("smtp down")


def test_mark_paid_finalizes_and_notifies(app, make_employee, outbox):
    make_employee("EMP-001", salary=18000, name="Ali")
    _open_cycle()

    out = _pay(app.extensions["mailer"])
    assert out.ledger.status == "paid"
    assert out.ledger.paid_at is not None
    assert out.ledger.paid_counted is True
    assert out.employee.salary_count == 1
    assert out.notified == ["emp-001@test.local"]

    to, subject, html = outbox[0]
    assert to == "emp-001@test.local"
    assert subject == f"Salary Paid — {MAY}"
    assert "Ali" in html
    assert "18500" in html.replace(",", "")


def test_second_mark_paid_conflicts_without_double_count(app, make_employee, outbox):
    make_employee("EMP-001")
    _open_cycle()
    mailer = app.extensions["mailer"]
    _pay(mailer)

    with pytest.raises(ConflictError):
        _pay(mailer)
    assert Employee.query.filter_by(employee_id="EMP-001").one().salary_count == 1
    assert len(outbox) == 1


def test_interrupted_payment_recovers_salary_count(app, make_employee, outbox):
    make_employee("EMP-001")
    doc = _open_cycle()
    # simulate a crash after the ledger write and before the count bump
    doc.status = "paid"
    doc.paid_counted = False
    db.session.commit()

    with pytest.raises(ConflictError):
        _pay(app.extensions["mailer"])
    assert Employee.query.filter_by(employee_id="EMP-001").one().salary_count == 1
    assert doc.paid_counted is True

    with pytest.raises(ConflictError):
        _pay(app.extensions["mailer"])
    assert Employee.query.filter_by(employee_id="EMP-001").one().salary_count == 1
    assert outbox == []


def test_referral_mail_on_third_paid_cycle_only(app, make_employee):
    make_employee("EMP-001", referred_by="Bilal", name="Ali")
    settings = replace(current_settings(), owner_email="owner@test.local")
    mailer = OutboxMailer()

    cycles = []
    for day in ("2025-03-01", "2025-04-01", "2025-05-01", "2025-06-01"):
        cycles.append(_open_cycle(action_date=day).cycle_key)

    referral_counts = []
    for n, key in enumerate(cycles, start=1):
        before = len(mailer.outbox)
        _pay(mailer, cycle_key=key, settings=settings)
        sent = mailer.outbox[before:]
        if any(to == "owner@test.local" for to, _, _ in sent):
            referral_counts.append(n)

    assert referral_counts == [3]
    owner_mail = [m for m in mailer.outbox if m[0] == "owner@test.local"][0]
    assert owner_mail[1] == "Referral Bonus Due — Ali (3 months reached)"
    assert "Bilal" in owner_mail[2]


def test_no_referral_mail_without_referrer(app, make_employee):
    make_employee("EMP-001")
    settings = replace(current_settings(), owner_email="owner@test.local")
    mailer = OutboxMailer()
    for day in ("2025-03-01", "2025-04-01", "2025-05-01"):
        _pay(mailer, cycle_key=_open_cycle(action_date=day).cycle_key, settings=settings)
    assert {to for to, _, _ in mailer.outbox} == {"emp-001@test.local"}


def test_mail_failure_keeps_payment(app, make_employee):
    make_employee("EMP-001")
    _open_cycle()
    out = _pay(BrokenMailer())
    assert out.notified == []
    assert out.ledger.status == "paid"
    assert out.employee.salary_count == 1


def test_template_failure_keeps_payment(app, make_employee, outbox, monkeypatch):
    make_employee("EMP-001")
    _open_cycle()

    def broken(*a, **kw):
        raise RuntimeError("template missing")

    monkeypatch.setattr(payment, "render_template", broken)
    out = _pay(app.extensions["mailer"])
    assert out.notified == []
    assert out.ledger.status == "paid"
    assert out.employee.salary_count == 1
    assert outbox == []


def test_validation_and_missing_cycle(app, make_employee):
    make_employee("EMP-001")
    mailer = app.extensions["mailer"]
    with pytest.raises(ValidationError):
        _pay(mailer, cycle_key="")
    with pytest.raises(ValidationError):
        _pay(mailer, cycle_key="2025-06-01_2025-06-30")
    with pytest.raises(NotFoundError):
        _pay(mailer, cycle_key=MAY)


# ---------- HTTP ----------

def test_mark_paid_endpoint(client, admin_headers, make_employee, outbox):
    make_employee("EMP-001", salary=18000)
    _open_cycle()
    body = {"employee_id": "EMP-001", "cycle_key": MAY}

    assert client.post("/api/salary/mark-paid", json=body).status_code == 401

    r = client.post("/api/salary/mark-paid", json=body, headers=admin_headers)
    assert r.status_code == 200
    payload = r.get_json()
    assert payload["data"]["salaryDoc"]["status"] == "paid"
    assert payload["data"]["employee"]["salary_count"] == 1
    assert payload["meta"]["notified"] == ["emp-001@test.local"]
    assert payload["meta"]["message"] == "Salary marked as paid. Notification(s) sent."

    again = client.post("/api/salary/mark-paid", json=body, headers=admin_headers)
    assert again.status_code == 409
    assert again.get_json()["error"]["message"] == "This cycle is already marked as paid."

    missing = client.post("/api/salary/mark-paid", json={"employee_id": "EMP-001"}, headers=admin_headers)
    assert missing.status_code == 400


def test_mark_paid_message_reflects_notifications(app, client, admin_headers, make_employee, monkeypatch):
    make_employee("EMP-001")
    _open_cycle()
    monkeypatch.setitem(app.extensions, "mailer", BrokenMailer())

    r = client.post("/api/salary/mark-paid", json={"employee_id": "EMP-001", "cycle_key": MAY}, headers=admin_headers)
    assert r.status_code == 200
    meta = r.get_json()["meta"]
    assert meta["notified"] == []
    assert meta["message"] == "Salary marked as paid. No notification was sent."
