"""
Roster tables: machinery units, personnel, and driver-to-vehicle assignments.
Maintained by the roster CRUD layer; read-only to the settlement engine.
"""

import enum

from sqlalchemy import Column, Integer, String, Date, Numeric, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fleet_settlement.database import Base


class MachineryType(str, enum.Enum):
    DUMP_TRUCK = "dump_truck"
    EXCAVATOR = "excavator"
    BULLDOZER = "bulldozer"
    LOADER = "loader"


class RentalUnit(str, enum.Enum):
    MONTHLY = "monthly"
    DAILY = "daily"


class Machinery(Base):
    __tablename__ = "machinery"
    __table_args__ = (UniqueConstraint("machinery_type", "vehicle_no", name="uq_machinery_vehicle"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    machinery_type = Column(String(30), nullable=False, index=True)
    vehicle_no = Column(String(50), nullable=False, index=True)
    model = Column(String(100))
    capacity = Column(Numeric(10, 2))
    owning_unit = Column(String(200))
    is_rental = Column(Boolean, default=False, nullable=False)
    rental_fee = Column(Numeric(14, 2), default=0)
    rental_unit = Column(String(20))                       # monthly | daily
    status = Column(String(20), default="active", nullable=False)  # active | stopped | under_repair

    def __repr__(self):
        return f"<Machinery {self.machinery_type}-{self.vehicle_no} status={self.status}>"


class Personnel(Base):
    __tablename__ = "personnel"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    monthly_salary = Column(Numeric(14, 2), default=0, nullable=False)
    daily_salary = Column(Numeric(14, 2), default=0, nullable=False)   # monthly_salary / 30
    status = Column(String(20), default="active", nullable=False)      # active | left

    def __repr__(self):
        return f"<Personnel {self.id} {self.name}>"


class DriverAssignment(Base):
    __tablename__ = "driver_assignment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    personnel_id = Column(Integer, ForeignKey("personnel.id"), nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)                                # NULL = currently assigned

    personnel = relationship("Personnel", lazy="joined")

    def __repr__(self):
        return (f"<DriverAssignment person={self.personnel_id} "
                f"{self.machinery_type}-{self.vehicle_no} {self.start_date}..{self.end_date}>")
