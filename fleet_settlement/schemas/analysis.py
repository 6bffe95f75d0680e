# fleet_settlement/schemas/analysis.py
from pydantic import BaseModel
from datetime import date
from decimal import Decimal


class PerTruckOilOut(BaseModel):
    machinery_type: str
    vehicle_no: str
    start_date: date
    end_date: date
    total_oil: Decimal
    total_trucks: int
    per_truck_oil: Decimal

    class Config:
        from_attributes = True


class SettlementTotalsOut(BaseModel):
    truck_count: int
    total_capacity: Decimal
    income: Decimal
    oil_fee: Decimal
    actual_balance: Decimal


class SettlementSummaryOut(BaseModel):
    totals: SettlementTotalsOut
    by_type: dict[str, SettlementTotalsOut]
    record_count: int

    class Config:
        from_attributes = True


class SalaryOut(BaseModel):
    personnel_id: int
    year_month: str
    base_salary: Decimal
    attendance_days: int
    actual_salary: Decimal
    payable_salary: Decimal

    class Config:
        from_attributes = True
