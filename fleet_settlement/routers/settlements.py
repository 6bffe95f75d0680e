# fleet_settlement/routers/settlements.py
"""Daily and monthly settlement sheets: list, refresh one vehicle, regenerate a day or month."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from fleet_settlement.database import get_db
from fleet_settlement.models.settlement import DailySettlement, MonthlySettlement
from fleet_settlement.routers.tasks import get_scheduler
from fleet_settlement.schemas.analysis import SettlementSummaryOut
from fleet_settlement.schemas.settlement import (
    DailySettlementOut, MonthlySettlementOut, RefreshRequest,
    SettlementDetailOut, SettlementFiguresOut, VehicleOut, DriverOut,
)
from fleet_settlement.schemas.task import BatchResultOut
from fleet_settlement.services import roster_service
from fleet_settlement.services.calculation_service import (
    get_daily_settlement, daily_settlement_detail, refresh_daily_settlement,
)
from fleet_settlement.services.analysis_service import settlement_summary
from fleet_settlement.services.errors import NoActiveVehiclesError, PriceNotFoundError, SettlementNotFoundError
from fleet_settlement.services.scheduler import TaskScheduler
from fleet_settlement.services.monthly_service import (
    generate_monthly_settlements, current_month_settlements, month_bounds,
)

router = APIRouter()


@router.get("/settlements/daily", response_model=list[DailySettlementOut], summary="Daily settlement rows")
def list_daily_settlements(
    record_date: Optional[date] = None,
    machinery_type: Optional[str] = None,
    vehicle_no: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    q = db.query(DailySettlement)
    if record_date:
        q = q.filter(DailySettlement.record_date == record_date)
    if machinery_type:
        q = q.filter(DailySettlement.machinery_type == machinery_type)
    if vehicle_no:
        q = q.filter(DailySettlement.vehicle_no == vehicle_no)
    return (q.order_by(DailySettlement.record_date.desc(), DailySettlement.vehicle_no.asc())
            .limit(limit).all())


@router.get("/settlements/daily/detail", response_model=SettlementDetailOut,
            summary="Settlement with vehicle and drivers; computed live when not yet settled")
def get_detail(record_date: date, machinery_type: str, vehicle_no: str, db: Session = Depends(get_db)):
    if roster_service.vehicle_info(db, machinery_type, vehicle_no) is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    try:
        detail = daily_settlement_detail(db, record_date, machinery_type, vehicle_no)
    except PriceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SettlementDetailOut(
        settlement=SettlementFiguresOut.model_validate(detail.settlement),
        vehicle=VehicleOut.model_validate(detail.vehicle),
        drivers=[DriverOut.model_validate(d) for d in detail.drivers],
        is_realtime=detail.is_realtime,
    )


@router.get("/settlements/daily/{record_date}/{machinery_type}/{vehicle_no}", response_model=DailySettlementOut,
            summary="One vehicle's daily settlement")
def get_one(record_date: date, machinery_type: str, vehicle_no: str, db: Session = Depends(get_db)):
    try:
        return get_daily_settlement(db, record_date, machinery_type, vehicle_no)
    except SettlementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/settlements/daily/refresh", response_model=DailySettlementOut,
             summary="Recompute one vehicle's daily settlement")
def refresh_one(body: RefreshRequest, db: Session = Depends(get_db)):
    if roster_service.vehicle_info(db, body.machinery_type, body.vehicle_no) is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    try:
        return refresh_daily_settlement(db, body.record_date, body.machinery_type, body.vehicle_no)
    except PriceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/settlements/daily/refresh-all", response_model=BatchResultOut,
             summary="Recompute every active vehicle for one day")
async def refresh_all(record_date: date, machinery_type: Optional[str] = None,
                      scheduler: TaskScheduler = Depends(get_scheduler)):
    try:
        result = await scheduler.trigger_daily_settlement(record_date, machinery_type)
    except NoActiveVehiclesError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if result is None:
        raise HTTPException(status_code=409, detail=f"Daily settlement for {record_date} is already running")
    return result


@router.get("/settlements/monthly", response_model=list[MonthlySettlementOut],
            summary="Monthly rollups; the open month is computed live")
def list_monthly_settlements(year_month: Optional[str] = None, db: Session = Depends(get_db)):
    today = date.today()
    if year_month is None or year_month == today.strftime("%Y-%m"):
        return current_month_settlements(db, today)
    try:
        month_bounds(year_month)
    except ValueError:
        raise HTTPException(status_code=400, detail="year_month must be YYYY-MM")
    return (db.query(MonthlySettlement)
            .filter(MonthlySettlement.year_month == year_month)
            .order_by(MonthlySettlement.machinery_type.asc(), MonthlySettlement.vehicle_no.asc())
            .all())


@router.post("/settlements/monthly/generate", response_model=BatchResultOut,
             summary="Roll up a completed month")
def generate_monthly(year_month: str, db: Session = Depends(get_db)):
    try:
        month_bounds(year_month)
    except ValueError:
        raise HTTPException(status_code=400, detail="year_month must be YYYY-MM")
    try:
        return generate_monthly_settlements(db, year_month)
    except NoActiveVehiclesError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/settlements/stats/summary", response_model=SettlementSummaryOut,
            summary="Daily settlement totals per machinery class")
def stats_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    machinery_type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return settlement_summary(db, start_date, end_date, machinery_type)
