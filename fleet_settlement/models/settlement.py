"""
Settlement tables: one daily row per (record_date, machinery_type, vehicle_no)
and one monthly row per (year_month, machinery_type, vehicle_no).
Written only by calculation_service / monthly_service through upsert_by_key.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, UniqueConstraint
from fleet_settlement.database import Base

# Field order matches the settlement sheet columns
SUMMED_FIELDS = (
    "truck_count", "total_capacity", "income", "oil_amount", "oil_fee",
    "work_hours", "shift_fee", "balance", "deduction", "meal_fee",
    "medical_fee", "walkie_talkie_fee", "bluetooth_card_fee", "amplifier_fee",
    "reflective_vest_fee", "safety_insurance_fee", "driver_salary",
    "repair_fee", "parts_fee", "unrecognized_fee", "actual_balance",
)


def _money():
    return Column(Numeric(14, 2), default=0, nullable=False)


class DailySettlement(Base):
    __tablename__ = "daily_settlement"
    __table_args__ = (
        UniqueConstraint("record_date", "machinery_type", "vehicle_no", name="uq_daily_settlement_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False, index=True)
    vehicle_no = Column(String(50), nullable=False, index=True)

    truck_count = Column(Integer, default=0, nullable=False)
    total_capacity = _money()
    income = _money()
    oil_amount = _money()
    oil_fee = _money()
    work_hours = _money()
    shift_fee = _money()
    balance = _money()
    deduction = _money()
    meal_fee = _money()
    medical_fee = _money()
    walkie_talkie_fee = _money()
    bluetooth_card_fee = _money()
    amplifier_fee = _money()
    reflective_vest_fee = _money()
    safety_insurance_fee = _money()
    driver_salary = _money()
    repair_fee = _money()
    parts_fee = _money()
    unrecognized_fee = _money()        # misc fees with an unknown fee_type, not deducted
    actual_balance = _money()

    last_refresh_time = Column(DateTime)

    def __repr__(self):
        return (f"<DailySettlement {self.record_date} {self.machinery_type}-{self.vehicle_no} "
                f"actual={self.actual_balance}>")


class MonthlySettlement(Base):
    __tablename__ = "monthly_settlement"
    __table_args__ = (
        UniqueConstraint("year_month", "machinery_type", "vehicle_no", name="uq_monthly_settlement_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    year_month = Column(String(7), nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False, index=True)
    vehicle_no = Column(String(50), nullable=False, index=True)

    truck_count = Column(Integer, default=0, nullable=False)
    total_capacity = _money()
    income = _money()
    oil_amount = _money()
    oil_fee = _money()
    work_hours = _money()
    shift_fee = _money()
    balance = _money()
    deduction = _money()
    meal_fee = _money()
    medical_fee = _money()
    walkie_talkie_fee = _money()
    bluetooth_card_fee = _money()
    amplifier_fee = _money()
    reflective_vest_fee = _money()
    safety_insurance_fee = _money()
    driver_salary = _money()
    repair_fee = _money()
    parts_fee = _money()
    unrecognized_fee = _money()
    rental_fee = _money()
    actual_balance = _money()

    settlement_days = Column(Integer, default=0, nullable=False)   # daily rows found
    missing_days = Column(Integer, default=0, nullable=False)      # calendar days without a row
    generated_at = Column(DateTime)

    def __repr__(self):
        return (f"<MonthlySettlement {self.year_month} {self.machinery_type}-{self.vehicle_no} "
                f"actual={self.actual_balance}>")
