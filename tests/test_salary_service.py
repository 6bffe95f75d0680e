# tests/test_salary_service.py
"""Unit tests for attendance-based monthly salary."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fleet_settlement.models.attendance import AttendanceMaster, AttendanceDetail
from fleet_settlement.models.machinery import Personnel
from fleet_settlement.services.errors import PersonnelNotFoundError
from fleet_settlement.services.salary_service import calculate_monthly_salary


def add_person(db, monthly_salary="3000"):
    person = Personnel(name="Driver", monthly_salary=Decimal(monthly_salary),
                       daily_salary=Decimal(monthly_salary) / 30, status="active")
    db.add(person)
    db.commit()
    return person


def add_sheet(db, person, statuses, year_month="2026-09"):
    master = AttendanceMaster(year_month=year_month, status="editing")
    db.add(master)
    db.flush()
    first = date(2026, 9, 1)
    for offset, status in enumerate(statuses):
        db.add(AttendanceDetail(master_id=master.id, personnel_id=person.id,
                                attendance_date=first + timedelta(days=offset), attendance_status=status))
    db.commit()


class TestMonthlySalary:
    def test_present_and_overtime_days_are_paid(self, db):
        person = add_person(db)
        add_sheet(db, person, ["present"] * 18 + ["overtime"] * 2 + ["leave"] * 3 + ["absent"])

        summary = calculate_monthly_salary(db, "2026-09", person.id)
        assert summary.base_salary == Decimal("3000")
        assert summary.attendance_days == 20
        assert summary.actual_salary == Decimal("2000.00")
        assert summary.payable_salary == summary.actual_salary

    def test_no_sheet_means_nothing_payable(self, db):
        person = add_person(db)
        summary = calculate_monthly_salary(db, "2026-09", person.id)
        assert summary.base_salary == Decimal("3000")
        assert summary.attendance_days == 0
        assert summary.payable_salary == Decimal("0")

    def test_daily_rate_rounded_to_cents(self, db):
        person = add_person(db, monthly_salary="1000")
        add_sheet(db, person, ["present"] * 7)
        # 1000 / 30 × 7 = 233.333...
        assert calculate_monthly_salary(db, "2026-09", person.id).actual_salary == Decimal("233.33")

    def test_unknown_person_raises(self, db):
        with pytest.raises(PersonnelNotFoundError):
            calculate_monthly_salary(db, "2026-09", 999)
