# fleet_settlement/services/monthly_service.py
"""
Monthly rollup of daily settlements.

Every numeric field is summed across the month's daily rows for a vehicle.
Rental machinery then carries a rental fee deducted from actual_balance only:
  - rental_unit "monthly": the flat fee
  - rental_unit "daily":   fee × number of daily rows found
The current month is still open, so its rollup is computed on every request
and never stored; completed months are upserted by (year_month, type, vehicle_no).
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session
from fleet_settlement.models.machinery import Machinery, RentalUnit
from fleet_settlement.models.settlement import DailySettlement, MonthlySettlement, SUMMED_FIELDS
from fleet_settlement.services import roster_service
from fleet_settlement.services.errors import BatchResult, NoActiveVehiclesError
from fleet_settlement.services.persistence import upsert_by_key
from fleet_settlement.utils.money import ZERO, to_decimal, round_currency
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


def month_bounds(year_month: str) -> tuple[date, date]:
    """'2026-09' → (2026-09-01, 2026-09-30). Raises ValueError on a malformed value."""
    first = datetime.strptime(year_month, "%Y-%m").date()
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first, first.replace(day=last_day)


def previous_month(today: date) -> str:
    return (today.replace(day=1) - timedelta(days=1)).strftime("%Y-%m")


def rental_fee_for(vehicle: Machinery, settlement_days: int):
    if not vehicle.is_rental:
        return ZERO
    fee = to_decimal(vehicle.rental_fee)
    if vehicle.rental_unit == RentalUnit.MONTHLY.value:
        return fee
    if vehicle.rental_unit == RentalUnit.DAILY.value:
        return round_currency(fee * settlement_days)
    logger.warning(f"[MONTHLY] {vehicle.machinery_type}-{vehicle.vehicle_no}: "
                   f"unknown rental_unit '{vehicle.rental_unit}', no rental charged")
    return ZERO


def aggregate_month(daily_rows: list[DailySettlement], vehicle: Machinery,
                    period_days: Optional[int] = None) -> dict:
    """
    Field-wise sums of the daily rows plus rental. `period_days` is the number
    of calendar days the rows should cover; the shortfall is reported as
    missing_days.
    """
    values = {name: (0 if name == "truck_count" else ZERO) for name in SUMMED_FIELDS}
    for row in daily_rows:
        for name in SUMMED_FIELDS:
            if name == "truck_count":
                values[name] += row.truck_count or 0
            else:
                values[name] += to_decimal(getattr(row, name))

    settlement_days = len(daily_rows)
    missing_days = max((period_days or settlement_days) - settlement_days, 0)
    rental_fee = rental_fee_for(vehicle, settlement_days)

    values["rental_fee"] = rental_fee
    values["actual_balance"] = values["actual_balance"] - rental_fee
    values["settlement_days"] = settlement_days
    values["missing_days"] = missing_days

    if missing_days and vehicle.is_rental and vehicle.rental_unit == RentalUnit.DAILY.value:
        logger.warning(
            f"[MONTHLY] {vehicle.machinery_type}-{vehicle.vehicle_no}: daily rental prorated over "
            f"{settlement_days} settled days, {missing_days} day(s) have no daily settlement"
        )
    return values


def _daily_rows(db: Session, vehicle: Machinery, first: date, last: date) -> list[DailySettlement]:
    return (
        db.query(DailySettlement)
        .filter(
            DailySettlement.machinery_type == vehicle.machinery_type,
            DailySettlement.vehicle_no == vehicle.vehicle_no,
            DailySettlement.record_date >= first,
            DailySettlement.record_date <= last,
        )
        .order_by(DailySettlement.record_date.asc())
        .all()
    )


def rollup_month(db: Session, year_month: str, vehicle: Machinery,
                 today: Optional[date] = None) -> MonthlySettlement:
    """
    Current month → transient MonthlySettlement (not added to the session).
    Completed month → upserted and committed.
    """
    today = today or date.today()
    first, last = month_bounds(year_month)
    if first > today:
        raise ValueError(f"Cannot roll up future month {year_month}")

    is_current = first <= today <= last
    rows = _daily_rows(db, vehicle, first, last)
    if is_current:
        # Daily settlements run for yesterday, so the open period ends there
        period_days = max((today - first).days, 0)
    else:
        period_days = (last - first).days + 1

    values = aggregate_month(rows, vehicle, period_days)
    key = {"year_month": year_month, "machinery_type": vehicle.machinery_type,
           "vehicle_no": vehicle.vehicle_no}

    if is_current:
        return MonthlySettlement(**key, **values)

    values["generated_at"] = datetime.utcnow()
    row, created = upsert_by_key(db, MonthlySettlement, key, values)
    db.commit()
    logger.debug(f"[MONTHLY] {'inserted' if created else 'updated'} {year_month} "
                 f"{vehicle.machinery_type}-{vehicle.vehicle_no}")
    return row


def generate_monthly_settlements(db: Session, year_month: str,
                                 today: Optional[date] = None) -> BatchResult:
    vehicles = roster_service.active_vehicles(db)
    if not vehicles:
        raise NoActiveVehiclesError(f"No active vehicles to roll up for {year_month}")

    month_bounds(year_month)  # malformed year_month fails the whole run
    result = BatchResult(total=len(vehicles))
    for vehicle in vehicles:
        try:
            rollup_month(db, year_month, vehicle, today)
            result.success += 1
        except Exception as e:
            db.rollback()
            result.record_failure(vehicle, e)
            logger.error(f"[MONTHLY] {vehicle.machinery_type}-{vehicle.vehicle_no} {year_month} failed: {e}",
                         exc_info=True)

    logger.info(f"[MONTHLY] monthly settlements for {year_month}: {result.summary()}")
    return result


def current_month_settlements(db: Session, today: Optional[date] = None) -> list[MonthlySettlement]:
    """Live rollups of the open month for every active vehicle."""
    today = today or date.today()
    year_month = today.strftime("%Y-%m")
    return [rollup_month(db, year_month, vehicle, today) for vehicle in roster_service.active_vehicles(db)]
