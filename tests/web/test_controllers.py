from __future__ import annotations

import logging
from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.attendance.model import Attendance
from kmsi_school.attendance.service import AttendanceService
from kmsi_school.books.service import BookService
from kmsi_school.certificates.service import CertificateService
from kmsi_school.container import Container
from kmsi_school.examinations.model import Examination, StudentExamination
from kmsi_school.examinations.service import ExaminationService
from kmsi_school.grades.model import Grade
from kmsi_school.grades.service import GradeProgressService
from kmsi_school.main import create_app
from kmsi_school.organization.model import Company, Site
from kmsi_school.payroll.model import BillingPeriod
from kmsi_school.payroll.service import PayrollService
from kmsi_school.teachers.model import ClassSchedule, Teacher
from kmsi_school.teachers.service import TeacherService
from kmsi_school.users.model import User
from tests.fakes import (
    InMemoryAttendance,
    InMemoryBooks,
    InMemoryCertificates,
    InMemoryExaminations,
    InMemoryGradeHistories,
    InMemoryPayrolls,
    InMemoryReferences,
    InMemoryTeachers,
)


@pytest.fixture
def container(audit):
    references = InMemoryReferences(
        companies={1: Company(company_id=1, company_code="KMSI", company_name="KMSI Music School")},
        sites={1: Site(site_id=1, company_id=1, site_code="JKT", site_name="Jakarta")},
        grades={2: Grade(grade_id=2, company_id=1, grade_code="G1", grade_name="Grade 1")},
    )
    teachers = InMemoryTeachers(
        teachers={
            3: Teacher(
                user_id=20, company_id=1, site_id=1, teacher_code="T001", hourly_rate=Decimal("50000"), teacher_id=3
            )
        },
        users={
            20: User(user_id=20, full_name="Ayu Lestari", username="ayu", company_id=1, site_id=1, level_code="TEACHER")
        },
        class_schedules={
            1: ClassSchedule(
                class_schedule_id=1,
                company_id=1,
                site_id=1,
                student_id=10,
                teacher_id=3,
                grade_id=2,
                schedule_date=date(2025, 3, 10),
                start_time=time(9, 0),
                end_time=time(10, 0),
            )
        },
    )
    attendance = InMemoryAttendance()
    attendance.add(
        Attendance(
            class_schedule_id=50,
            student_id=11,
            teacher_id=3,
            attendance_date=date(2025, 3, 3),
            status="Present",
            actual_start_time=time(13, 0),
            actual_end_time=time(15, 0),
        )
    )

    exams = InMemoryExaminations()
    exams.exams[1] = Examination(
        company_id=1,
        site_id=1,
        grade_id=2,
        examiner_teacher_id=3,
        exam_code="EX-JKT-G1-2503-01",
        exam_name="Grade 1 Piano",
        exam_date=date(2025, 3, 5),
        start_time=time(9, 0),
        end_time=time(10, 0),
        status="Completed",
        examination_id=1,
    )
    registration = StudentExamination(examination_id=1, student_id=11, student_examination_id=1)
    registration.record_attendance("Present", time(9, 0))
    registration.grade_examination(Decimal("88"))
    exams.registrations[1] = registration

    certificate_service = CertificateService(
        InMemoryCertificates(), exams, references, audit, verify_url="https://kmsi.example/verify"
    )
    return Container(
        conn=None,
        audit_trail=audit,
        teacher_service=TeacherService(teachers, attendance),
        attendance_service=AttendanceService(attendance, teachers, audit, grace_minutes=5),
        certificate_service=certificate_service,
        examination_service=ExaminationService(exams, references, certificate_service, audit),
        payroll_service=PayrollService(
            InMemoryPayrolls(
                periods={
                    1: BillingPeriod(
                        company_id=1,
                        period_name="March 2025",
                        start_date=date(2025, 3, 1),
                        end_date=date(2025, 3, 31),
                        due_date=date(2025, 4, 5),
                        billing_period_id=1,
                    )
                }
            ),
            teachers,
            attendance,
            references,
            audit,
            tax_rate=Decimal("0.05"),
        ),
        grade_progress_service=GradeProgressService(InMemoryGradeHistories(), references, audit),
        book_service=BookService(InMemoryBooks(), references, audit),
    )


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield create_app(container=container)
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def client(app):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["user_id"] = 7
        sess["company_id"] = 1
    return client


def test_requires_login(app):
    resp = app.test_client().post("/api/attendance/arrivals", json={})

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_record_arrival(client):
    resp = client.post(
        "/api/attendance/arrivals",
        json={"class_schedule_id": 1, "student_id": 10, "arrived_at": "09:02", "ended_at": "10:00"},
    )

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "Present"
    assert data["attendance_date"] == "2025-03-10"
    assert "class_schedule" not in data


def test_missing_field_is_bad_request(client):
    resp = client.post("/api/attendance/arrivals", json={"student_id": 10})

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["class_schedule_id is required"]


def test_validation_errors_are_listed(client):
    resp = client.post(
        "/api/attendance/arrivals",
        json={"class_schedule_id": 1, "student_id": 10, "arrived_at": "09:00", "ended_at": "09:03"},
    )

    body = resp.get_json()
    assert resp.status_code == 400
    assert body["success"] is False
    assert body["errors"]


def test_bad_time_format(client):
    resp = client.post(
        "/api/attendance/arrivals",
        json={"class_schedule_id": 1, "student_id": 10, "arrived_at": "nine", "ended_at": "10:00"},
    )

    assert resp.status_code == 400
    assert "HH:MM" in resp.get_json()["message"]


def test_unknown_record_is_not_found(client):
    resp = client.get("/api/payrolls/999")

    assert resp.status_code == 404


def test_invalid_transition_is_conflict(client):
    cert = client.post("/api/student-examinations/1/certificate", json={}).get_json()["data"]
    cert_id = cert["certificate_id"]

    assert client.post(f"/api/certificates/{cert_id}/revoke", json={"reason": "Issued in error"}).status_code == 200
    resp = client.post(f"/api/certificates/{cert_id}/revoke", json={"reason": "Again"})

    assert resp.status_code == 409


def test_certificate_verification_is_public(app, client):
    number = client.post("/api/student-examinations/1/certificate", json={}).get_json()["data"]["certificate_number"]

    resp = app.test_client().get(f"/api/certificates/verify/{number.lower()}")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["is_valid"] is True


def test_certificate_qr_image(client):
    cert_id = client.post("/api/student-examinations/1/certificate", json={}).get_json()["data"]["certificate_id"]

    resp = client.get(f"/api/certificates/{cert_id}/qr.png")

    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data.startswith(b"\x89PNG")


def test_payroll_csv_export(client):
    assert client.post("/api/payrolls", json={"teacher_id": 3, "billing_period_id": 1}).status_code == 201

    resp = client.get("/api/billing-periods/1/payroll.csv")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "attachment" in resp.headers["Content-Disposition"]
    text = resp.data.decode("utf-8-sig")
    assert text.splitlines()[0].startswith("payroll_number,teacher_code")
    assert "PAY-T001-202503-001" in text


def test_performance_needs_date_range(client):
    resp = client.get("/api/teachers/3/performance?start=2025-03-01")

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Missing start/end parameters"


def test_recent_audit_is_scoped_to_session_company(client):
    client.post(
        "/api/attendance/arrivals",
        json={"class_schedule_id": 1, "student_id": 10, "arrived_at": "09:00", "ended_at": "10:00"},
    )

    resp = client.get("/api/audit/recent?limit=5")

    entries = resp.get_json()["data"]
    assert resp.status_code == 200
    assert len(entries) == 1
    assert entries[0]["log"]["action"] == "Insert"
    assert entries[0]["log"]["table_name"] == "Attendances"


def test_unexpected_error_is_500(client, container, monkeypatch):
    def boom(teacher_id):
        raise RuntimeError("db went away")

    monkeypatch.setattr(container.teacher_service, "check", boom)

    resp = client.get("/api/teachers/3/check")

    assert resp.status_code == 500
    assert resp.get_json()["message"] == "Internal server error"


@pytest.mark.parametrize("score", ["NaN", "Infinity", "-inf"])
def test_non_finite_number_is_bad_request(client, score):
    resp = client.post("/api/student-examinations/1/grade", json={"score": score})

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "score must be a number"
