"""
Fuel balance ledger: one row per vehicle per day, appended by
fuel_balance_service after that day's settlement exists. Rows are never updated.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, UniqueConstraint
from fleet_settlement.database import Base


class FuelBalance(Base):
    __tablename__ = "fuel_balance"
    __table_args__ = (
        UniqueConstraint("record_date", "machinery_type", "vehicle_no", name="uq_fuel_balance_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False, index=True)
    opening_balance = Column(Numeric(14, 2), default=0, nullable=False)
    refuel_amount = Column(Numeric(14, 2), default=0, nullable=False)
    consumption_amount = Column(Numeric(14, 2), default=0, nullable=False)
    closing_balance = Column(Numeric(14, 2), default=0, nullable=False)
    theoretical_consumption = Column(Numeric(14, 2), default=0, nullable=False)
    consumption_difference = Column(Numeric(14, 2), default=0, nullable=False)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<FuelBalance {self.record_date} {self.machinery_type}-{self.vehicle_no} close={self.closing_balance}>"
