from datetime import date, timedelta

import pytest

from payroll_api.common.errors import ConflictError, ValidationError
from payroll_api.extensions import db
from payroll_api.models.attendance import AttendanceRecord, AttendanceStatus
from payroll_api.models.payroll.ledger import SalaryCycleLedger
from payroll_api.services import attendance_service
from payroll_api.services.attendance_service import record_attendance
from payroll_api.settings import current_settings


def _mark(employee_id, day, status="Present", **kw):
    return record_attendance(employee_id, day, status, settings=current_settings(), **kw)


def test_status_parse_keeps_unknown_values_as_other():
    assert AttendanceStatus.parse("Present") is AttendanceStatus.PRESENT
    assert AttendanceStatus.parse("LEAVE") is AttendanceStatus.LEAVE
    assert AttendanceStatus.parse("WFH") is AttendanceStatus.OTHER
    assert AttendanceStatus.parse(None) is AttendanceStatus.OTHER
    assert AttendanceStatus.PRESENT.qualifies_for_bonus
    assert not AttendanceStatus.LATE.qualifies_for_bonus
    assert not AttendanceStatus.OTHER.qualifies_for_bonus


def test_second_write_same_day_updates_and_appends_history(app, make_employee):
    make_employee("EMP-001")
    first = _mark("EMP-001", "2025-06-02", "Absent", note="sick")
    second = _mark("EMP-001", "2025-06-02", "Late", note="traffic", extra_note="30 min", changed_by="hr@test")

    assert first.created is True
    assert second.created is False
    assert AttendanceRecord.query.filter_by(employee_id="EMP-001", attendance_date="2025-06-02").count() == 1

    rec = second.record
    assert rec.status == "Late"
    assert rec.note == "traffic"
    assert [h.status for h in rec.history] == ["Absent", "Late"]
    assert rec.history[1].extra_note == "30 min"
    assert rec.history[1].changed_by == "hr@test"


def test_future_date_is_rejected(app):
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    with pytest.raises(ValidationError):
        _mark("EMP-001", tomorrow)
    assert AttendanceRecord.query.count() == 0


@pytest.mark.parametrize("emp, day, status", [("", "2025-06-01", "Present"), ("E", None, "Present"), ("E", "2025-06-01", "")])
def test_missing_fields_are_rejected(app, emp, day, status):
    with pytest.raises(ValidationError):
        _mark(emp, day, status)


def test_lost_insert_race_is_a_conflict(app, make_employee, monkeypatch):
    make_employee("EMP-001")
    _mark("EMP-001", "2025-06-02", "Absent")
    # another writer created the record between our lookup and commit
    monkeypatch.setattr(attendance_service, "get_for_employee_date", lambda employee_id, day: None)
    with pytest.raises(ConflictError):
        _mark("EMP-001", "2025-06-02", "Late")

    rec = AttendanceRecord.query.one()
    assert rec.status == "Absent"
    assert [h.status for h in rec.history] == ["Absent"]


def test_non_qualifying_status_does_not_touch_ledger(app, make_employee):
    make_employee("EMP-001")
    out = _mark("EMP-001", "2025-06-02", "Absent")
    assert out.bonus is None
    assert SalaryCycleLedger.query.count() == 0


def test_qualifying_status_opens_ledger_with_snapshot(app, make_employee):
    make_employee("EMP-001", salary=18000)
    out = _mark("EMP-001", "2025-06-02", "LEAVE")
    doc = out.bonus.ledger
    assert doc.cycle_key == "2025-05-18_2025-06-17"
    assert doc.attendance_count == 1
    assert float(doc.base_salary) == 18000
    assert float(doc.salary_per_hour) == 100
    assert float(doc.payable_salary) == 18000
    assert doc.transactions == []


def test_attendance_bonus_is_awarded_once_on_twentieth_day(app, make_employee):
    make_employee("EMP-001", salary=18000)
    start = date(2025, 5, 18)
    awarded_on = []
    for i in range(25):
        out = _mark("EMP-001", (start + timedelta(days=i)).isoformat(), "Present")
        if out.bonus.awarded:
            awarded_on.append(i + 1)

    assert awarded_on == [20]
    doc = SalaryCycleLedger.query.filter_by(employee_id="EMP-001").one()
    auto = [t for t in doc.transactions if t.type == "attendance_bonus_auto"]
    assert len(auto) == 1
    assert float(auto[0].amount) == 5000
    assert auto[0].meta == {"attendance_count": 20, "target": 20}
    assert doc.attendance_count == 25
    assert doc.attendance_bonus_awarded is True
    assert float(doc.payable_salary) == 23000
    assert doc.recomputed_payable() == doc.payable_salary


def test_days_in_different_cycles_count_separately(app, make_employee):
    make_employee("EMP-001")
    _mark("EMP-001", "2025-06-17")
    _mark("EMP-001", "2025-06-18")
    keys = sorted(d.cycle_key for d in SalaryCycleLedger.query.all())
    assert keys == ["2025-05-18_2025-06-17", "2025-06-18_2025-07-17"]


def test_unknown_employee_keeps_attendance_and_skips_bonus(app):
    out = _mark("GHOST", "2025-06-02", "Present")
    assert out.record.id is not None
    assert out.bonus.ledger is None
    assert SalaryCycleLedger.query.count() == 0


def test_bonus_failure_does_not_lose_attendance(app, make_employee, monkeypatch):
    make_employee("EMP-001")

    def boom(*a, **kw):
        raise ValidationError("bonus exploded")
    monkeypatch.setattr(attendance_service, "apply_attendance_bonus", boom)

    out = _mark("EMP-001", "2025-06-02", "Present")
    assert out.bonus.error is True
    db.session.expire_all()
    assert AttendanceRecord.query.filter_by(employee_id="EMP-001").count() == 1


# ---------- HTTP ----------

def test_post_requires_admin(client, viewer_headers):
    body = {"employee_id": "EMP-001", "attendance_date": "2025-06-02", "status": "Present"}
    assert client.post("/api/attendance", json=body).status_code == 401
    assert client.post("/api/attendance", json=body, headers=viewer_headers).status_code == 403


def test_post_create_then_update_status_codes(client, admin_headers, make_employee):
    make_employee("EMP-001")
    body = {"employee_id": "EMP-001", "attendance_date": "2025-06-02", "status": "Present"}
    r1 = client.post("/api/attendance", json=body, headers=admin_headers)
    r2 = client.post("/api/attendance", json={**body, "status": "Late"}, headers=admin_headers)
    assert r1.status_code == 201
    assert r2.status_code == 200
    data = r2.get_json()["data"]
    assert data["status"] == "Late"
    assert [h["status"] for h in data["history"]] == ["Present", "Late"]
    assert data["history"][0]["changed_by"] == "admin@test.local"
    assert r1.get_json()["data"]["attendance_bonus"]["cycle"]["attendance_count"] == 1


def test_post_future_date_is_400(client, admin_headers):
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    r = client.post("/api/attendance", json={"employee_id": "E", "attendance_date": tomorrow, "status": "Present"},
                    headers=admin_headers)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_post_body_must_be_an_object_and_race_is_409(client, admin_headers, make_employee, monkeypatch):
    make_employee("EMP-001")
    body = {"employee_id": "EMP-001", "attendance_date": "2025-06-02", "status": "Absent"}
    r = client.post("/api/attendance", json=[body], headers=admin_headers)
    assert r.status_code == 400
    assert r.get_json()["error"]["message"] == "request body must be a JSON object"

    assert client.post("/api/attendance", json=body, headers=admin_headers).status_code == 201
    monkeypatch.setattr(attendance_service, "get_for_employee_date", lambda employee_id, day: None)
    r = client.post("/api/attendance", json=body, headers=admin_headers)
    assert r.status_code == 409
    assert AttendanceRecord.query.count() == 1


def test_list_by_employee_is_paginated_newest_first(client, make_employee):
    make_employee("EMP-001")
    for d in range(1, 6):
        _mark("EMP-001", f"2025-06-0{d}", "Absent")

    r = client.get("/api/attendance/EMP-001?page=2&limit=2")
    body = r.get_json()
    assert [x["attendance_date"] for x in body["data"]] == ["2025-06-03", "2025-06-02"]
    assert body["meta"] == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}


def test_range_query_is_inclusive(client):
    for d in ("2025-06-01", "2025-06-05", "2025-06-10", "2025-06-11"):
        _mark("EMP-001", d, "Absent")
    r = client.get("/api/attendance/range/EMP-001?start=2025-06-05&end=2025-06-10")
    body = r.get_json()
    assert [x["attendance_date"] for x in body["data"]] == ["2025-06-10", "2025-06-05"]
    assert body["meta"]["start"] == "2025-06-05"
    assert client.get("/api/attendance/range/EMP-001?start=2025-06-05").status_code == 400


def test_single_day_lookup_reports_found(client):
    _mark("EMP-001", "2025-06-02", "NONS")
    hit = client.get("/api/attendance/EMP-001/2025-06-02").get_json()
    miss = client.get("/api/attendance/EMP-001/2025-06-03").get_json()
    assert hit["meta"]["found"] is True
    assert hit["data"]["status"] == "NONS"
    assert miss["meta"]["found"] is False
    assert miss["data"] is None


def test_by_date_and_today(client, monkeypatch):
    _mark("EMP-002", "2025-06-02", "Present")
    _mark("EMP-001", "2025-06-02", "Absent")
    _mark("EMP-001", "2025-06-03", "Absent")

    body = client.get("/api/attendance/date/2025-06-02").get_json()
    assert [x["employee_id"] for x in body["data"]] == ["EMP-001", "EMP-002"]
    assert body["meta"]["limit"] == 100

    monkeypatch.setattr(attendance_service, "today_ymd", lambda: "2025-06-03")
    today = client.get("/api/attendance/today").get_json()
    assert [x["attendance_date"] for x in today["data"]] == ["2025-06-03"]
