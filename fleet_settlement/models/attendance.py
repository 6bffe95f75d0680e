"""
Attendance sheets. One master per year-month, one detail row per person per day.
The monthly job creates the skeleton; supervisors edit statuses afterwards.
"""

from sqlalchemy import Column, Integer, String, Date, ForeignKey
from fleet_settlement.database import Base


class AttendanceMaster(Base):
    __tablename__ = "attendance_master"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year_month = Column(String(7), unique=True, nullable=False, index=True)   # YYYY-MM
    status = Column(String(20), default="editing", nullable=False)

    def __repr__(self):
        return f"<AttendanceMaster {self.year_month} status={self.status}>"


class AttendanceDetail(Base):
    __tablename__ = "attendance_detail"

    id = Column(Integer, primary_key=True, autoincrement=True)
    master_id = Column(Integer, ForeignKey("attendance_master.id"), nullable=False, index=True)
    personnel_id = Column(Integer, ForeignKey("personnel.id"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)
    attendance_status = Column(String(20), default="present", nullable=False)
    meal_status = Column(String(30), default="normal", nullable=False)
