# fleet_settlement/routers/analysis.py
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from fleet_settlement.database import get_db
from fleet_settlement.schemas.analysis import PerTruckOilOut, SalaryOut
from fleet_settlement.services.analysis_service import calculate_per_truck_oil
from fleet_settlement.services.errors import PersonnelNotFoundError
from fleet_settlement.services.monthly_service import month_bounds
from fleet_settlement.services.salary_service import calculate_monthly_salary

router = APIRouter()


@router.get("/analysis/per-truck-oil", response_model=PerTruckOilOut,
            summary="Fuel per truck load for one vehicle over a date range")
def per_truck_oil(machinery_type: str, vehicle_no: str, start_date: date, end_date: date,
                  db: Session = Depends(get_db)):
    try:
        return calculate_per_truck_oil(db, machinery_type, vehicle_no, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/salaries/{year_month}/{personnel_id}", response_model=SalaryOut,
            summary="Attendance-based salary for one person and month")
def monthly_salary(year_month: str, personnel_id: int, db: Session = Depends(get_db)):
    try:
        month_bounds(year_month)
    except ValueError:
        raise HTTPException(status_code=400, detail="year_month must be YYYY-MM")
    try:
        return calculate_monthly_salary(db, year_month, personnel_id)
    except PersonnelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
