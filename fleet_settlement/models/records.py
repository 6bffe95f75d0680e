"""
Daily operational source records: trips, fuel purchases, shift hours,
deductions, miscellaneous fees and repairs.
Entered through the bookkeeping forms; aggregated per vehicle/day by calculation_service.
"""

from sqlalchemy import Column, Integer, String, Date, Numeric, UniqueConstraint
from fleet_settlement.database import Base


class TruckRecord(Base):
    __tablename__ = "truck_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    truck_no = Column(String(50), index=True)             # haul vehicle that carried the load
    excavator_no = Column(String(50), index=True)         # excavator that loaded it
    truck_count = Column(Integer, default=0, nullable=False)
    total_capacity = Column(Numeric(14, 2), default=0)
    total_fee = Column(Numeric(14, 2))                    # NULL = price from distance tariff
    load_type_id = Column(Integer)
    distance = Column(Numeric(10, 2))


class OilRecord(Base):
    __tablename__ = "oil_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False, index=True)
    oil_type = Column(String(30), default="diesel", nullable=False)
    oil_amount = Column(Numeric(14, 2), default=0, nullable=False)
    oil_price = Column(Numeric(10, 2))
    total_fee = Column(Numeric(14, 2))                    # NULL = price from oil price table


class ShiftHours(Base):
    __tablename__ = "shift_hours"
    __table_args__ = (
        UniqueConstraint("record_date", "machinery_type", "vehicle_no", name="uq_shift_hours_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False)
    work_hours = Column(Numeric(6, 2), default=0, nullable=False)


class Deduction(Base):
    __tablename__ = "deduction"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False)
    deduction_amount = Column(Numeric(14, 2), default=0, nullable=False)
    reason = Column(String(200))


class MiscFee(Base):
    __tablename__ = "misc_fee"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False)
    fee_type = Column(String(50), nullable=False)
    fee_amount = Column(Numeric(14, 2), default=0, nullable=False)


class RepairRecord(Base):
    __tablename__ = "repair_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False)
    repair_fee = Column(Numeric(14, 2), default=0, nullable=False)
    parts_fee = Column(Numeric(14, 2), default=0, nullable=False)
    description = Column(String(500))
