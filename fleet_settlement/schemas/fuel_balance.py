# fleet_settlement/schemas/fuel_balance.py
from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal


class FuelBalanceOut(BaseModel):
    id: int
    record_date: date
    machinery_type: str
    vehicle_no: str
    opening_balance: Decimal
    refuel_amount: Decimal
    consumption_amount: Decimal
    closing_balance: Decimal
    theoretical_consumption: Decimal
    consumption_difference: Decimal
    created_at: datetime

    class Config:
        from_attributes = True
