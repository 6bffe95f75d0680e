# fleet_settlement/schemas/settlement.py
from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


class _SettlementFields(BaseModel):
    machinery_type: str
    vehicle_no: str
    truck_count: int
    total_capacity: Decimal
    income: Decimal
    oil_amount: Decimal
    oil_fee: Decimal
    work_hours: Decimal
    shift_fee: Decimal
    balance: Decimal
    deduction: Decimal
    meal_fee: Decimal
    medical_fee: Decimal
    walkie_talkie_fee: Decimal
    bluetooth_card_fee: Decimal
    amplifier_fee: Decimal
    reflective_vest_fee: Decimal
    safety_insurance_fee: Decimal
    driver_salary: Decimal
    repair_fee: Decimal
    parts_fee: Decimal
    unrecognized_fee: Decimal
    actual_balance: Decimal

    class Config:
        from_attributes = True


class DailySettlementOut(_SettlementFields):
    id: int
    record_date: date
    last_refresh_time: Optional[datetime]


class MonthlySettlementOut(_SettlementFields):
    id: Optional[int] = None        # None for the open month, which is never stored
    year_month: str
    rental_fee: Decimal
    settlement_days: int
    missing_days: int
    generated_at: Optional[datetime] = None


class RefreshRequest(BaseModel):
    record_date: date
    machinery_type: str
    vehicle_no: str


class SettlementFiguresOut(_SettlementFields):
    """A stored row, or figures computed live for a day not yet settled."""
    id: Optional[int] = None
    record_date: date
    last_refresh_time: Optional[datetime] = None


class VehicleOut(BaseModel):
    machinery_type: str
    vehicle_no: str
    model: Optional[str] = None
    capacity: Optional[Decimal] = None
    owning_unit: Optional[str] = None
    is_rental: bool
    rental_fee: Optional[Decimal] = None
    rental_unit: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


class PersonnelOut(BaseModel):
    id: int
    name: str
    daily_salary: Decimal

    class Config:
        from_attributes = True


class DriverOut(BaseModel):
    personnel_id: int
    start_date: date
    end_date: Optional[date] = None
    personnel: Optional[PersonnelOut] = None

    class Config:
        from_attributes = True


class SettlementDetailOut(BaseModel):
    settlement: SettlementFiguresOut
    vehicle: Optional[VehicleOut] = None
    drivers: list[DriverOut] = []
    is_realtime: bool = False

    class Config:
        from_attributes = True
