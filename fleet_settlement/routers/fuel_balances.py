# fleet_settlement/routers/fuel_balances.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fleet_settlement.database import get_db
from fleet_settlement.models.fuel_balance import FuelBalance
from fleet_settlement.schemas.fuel_balance import FuelBalanceOut

router = APIRouter()


@router.get("/fuel-balances", response_model=list[FuelBalanceOut], summary="Fuel ledger rows")
def list_fuel_balances(
    machinery_type: Optional[str] = None,
    vehicle_no: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    q = db.query(FuelBalance)
    if machinery_type:
        q = q.filter(FuelBalance.machinery_type == machinery_type)
    if vehicle_no:
        q = q.filter(FuelBalance.vehicle_no == vehicle_no)
    if start_date:
        q = q.filter(FuelBalance.record_date >= start_date)
    if end_date:
        q = q.filter(FuelBalance.record_date <= end_date)
    return q.order_by(FuelBalance.record_date.desc()).limit(limit).all()
