# tests/test_attendance_service.py
"""Unit tests for the monthly attendance skeleton."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from decimal import Decimal
from fleet_settlement.models.attendance import AttendanceMaster, AttendanceDetail
from fleet_settlement.models.machinery import Personnel
from fleet_settlement.services.attendance_service import generate_attendance


def add_person(db, name, status="active"):
    person = Personnel(name=name, monthly_salary=Decimal("3000"), daily_salary=Decimal("100"), status=status)
    db.add(person)
    db.commit()
    return person


class TestGenerateAttendance:
    def test_one_row_per_active_person_per_day(self, db):
        add_person(db, "A")
        add_person(db, "B")
        add_person(db, "C", status="left")

        assert generate_attendance(db, "2026-09") == 60
        master = db.query(AttendanceMaster).one()
        assert master.year_month == "2026-09"
        assert master.status == "editing"
        details = db.query(AttendanceDetail).all()
        assert {d.meal_status for d in details} == {"normal"}
        assert {d.attendance_status for d in details} == {"present"}

    def test_rerun_keeps_existing_rows(self, db):
        add_person(db, "A")
        generate_attendance(db, "2026-02")
        detail = db.query(AttendanceDetail).first()
        detail.meal_status = "none"
        db.commit()

        assert generate_attendance(db, "2026-02") == 0
        assert db.query(AttendanceDetail).count() == 28
        assert db.query(AttendanceMaster).count() == 1
        db.refresh(detail)
        assert detail.meal_status == "none"

    def test_new_hire_filled_in_on_rerun(self, db):
        add_person(db, "A")
        generate_attendance(db, "2026-09")
        add_person(db, "B")
        assert generate_attendance(db, "2026-09") == 30

    def test_malformed_month_rejected(self, db):
        with pytest.raises(ValueError):
            generate_attendance(db, "September")
