# fleet_settlement/services/attendance_service.py
"""
Monthly attendance skeleton: one master per year-month and one detail row
per active person per calendar day, all "present" / "normal" until a
supervisor edits them. Existing rows are kept, so re-running is safe.
"""

from datetime import timedelta

from sqlalchemy.orm import Session
from fleet_settlement.models.attendance import AttendanceMaster, AttendanceDetail
from fleet_settlement.services import roster_service
from fleet_settlement.services.monthly_service import month_bounds
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


def generate_attendance(db: Session, year_month: str) -> int:
    """Create the month's attendance skeleton. Returns the number of detail rows added."""
    first, last = month_bounds(year_month)

    master = roster_service.attendance_master_for(db, year_month)
    if master is None:
        master = AttendanceMaster(year_month=year_month, status="editing")
        db.add(master)
        db.flush()

    existing = {
        (personnel_id, day)
        for personnel_id, day in db.query(AttendanceDetail.personnel_id, AttendanceDetail.attendance_date)
        .filter(AttendanceDetail.master_id == master.id)
        .all()
    }

    added = 0
    for person in roster_service.active_personnel(db):
        day = first
        while day <= last:
            if (person.id, day) not in existing:
                db.add(AttendanceDetail(
                    master_id=master.id,
                    personnel_id=person.id,
                    attendance_date=day,
                    attendance_status="present",
                    meal_status="normal",
                ))
                added += 1
            day += timedelta(days=1)

    db.commit()
    logger.info(f"[ATTENDANCE] {year_month}: {added} attendance row(s) created")
    return added
