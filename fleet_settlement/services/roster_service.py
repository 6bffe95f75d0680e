# fleet_settlement/services/roster_service.py
"""
Roster lookups: active machinery, vehicle metadata, driver assignments on a
date, and attendance meal status. Read-only.
"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session
from fleet_settlement.models.machinery import Machinery, Personnel, DriverAssignment
from fleet_settlement.models.attendance import AttendanceMaster, AttendanceDetail

ACTIVE = "active"


def active_vehicles(db: Session, machinery_type: Optional[str] = None) -> list[Machinery]:
    q = db.query(Machinery).filter(Machinery.status == ACTIVE)
    if machinery_type:
        q = q.filter(Machinery.machinery_type == machinery_type)
    return q.order_by(Machinery.vehicle_no.asc()).all()


def vehicle_info(db: Session, machinery_type: str, vehicle_no: str) -> Optional[Machinery]:
    """Find a vehicle by its natural key. Returns None if not found."""
    return db.query(Machinery).filter(
        Machinery.machinery_type == machinery_type,
        Machinery.vehicle_no == vehicle_no,
    ).first()


def drivers_for_vehicle(db: Session, machinery_type: str, vehicle_no: str,
                        on_date: date) -> list[DriverAssignment]:
    """Assignments covering on_date: start_date <= on_date and (open or end_date >= on_date)."""
    return (
        db.query(DriverAssignment)
        .filter(
            DriverAssignment.machinery_type == machinery_type,
            DriverAssignment.vehicle_no == vehicle_no,
            DriverAssignment.start_date <= on_date,
            or_(DriverAssignment.end_date.is_(None), DriverAssignment.end_date >= on_date),
        )
        .order_by(DriverAssignment.personnel_id.asc())
        .all()
    )


def active_personnel(db: Session) -> list[Personnel]:
    return db.query(Personnel).filter(Personnel.status == ACTIVE).order_by(Personnel.id.asc()).all()


def attendance_master_for(db: Session, year_month: str) -> Optional[AttendanceMaster]:
    return db.query(AttendanceMaster).filter(AttendanceMaster.year_month == year_month).first()


def meal_status_for(db: Session, master: AttendanceMaster, personnel_id: int,
                    on_date: date) -> Optional[str]:
    """Meal status from the attendance sheet, or None when the person has no row that day."""
    detail = db.query(AttendanceDetail).filter(
        AttendanceDetail.master_id == master.id,
        AttendanceDetail.personnel_id == personnel_id,
        AttendanceDetail.attendance_date == on_date,
    ).first()
    return detail.meal_status if detail else None
