# fleet_settlement/services/salary_service.py
"""
Monthly salary from the attendance sheet.

    attendance_days = detail rows marked present or overtime
    actual_salary   = monthly_salary / 30 × attendance_days

Overtime pay and deductions are applied when the payroll sheet is drawn up,
so payable_salary starts out equal to actual_salary.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session
from fleet_settlement.models.attendance import AttendanceDetail
from fleet_settlement.models.machinery import Personnel
from fleet_settlement.services import roster_service
from fleet_settlement.services.errors import PersonnelNotFoundError
from fleet_settlement.utils.money import ZERO, to_decimal, round_currency

PAID_STATUSES = ("present", "overtime")
DAYS_PER_MONTH = 30


@dataclass
class SalarySummary:
    personnel_id: int
    year_month: str
    base_salary: Decimal
    attendance_days: int = 0
    actual_salary: Decimal = ZERO
    payable_salary: Decimal = ZERO


def calculate_monthly_salary(db: Session, year_month: str, personnel_id: int) -> SalarySummary:
    person = db.get(Personnel, personnel_id)
    if person is None:
        raise PersonnelNotFoundError(f"Personnel {personnel_id} not found")

    base_salary = to_decimal(person.monthly_salary)
    summary = SalarySummary(personnel_id=personnel_id, year_month=year_month, base_salary=base_salary)
    master = roster_service.attendance_master_for(db, year_month)
    if master is None:
        return summary

    days = db.query(AttendanceDetail).filter(
        AttendanceDetail.master_id == master.id,
        AttendanceDetail.personnel_id == personnel_id,
        AttendanceDetail.attendance_status.in_(PAID_STATUSES),
    ).count()

    summary.attendance_days = days
    summary.actual_salary = round_currency(base_salary / DAYS_PER_MONTH * days)
    summary.payable_salary = summary.actual_salary
    return summary
