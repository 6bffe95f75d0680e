# fleet_settlement/services/analysis_service.py
"""
Read-only figures over a date range: fuel per truck load for one vehicle,
and settlement totals per machinery class.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from fleet_settlement.models.records import OilRecord, TruckRecord
from fleet_settlement.models.settlement import DailySettlement
from fleet_settlement.services.income_strategies import income_strategy_for
from fleet_settlement.utils.money import ZERO, to_decimal
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)

SUMMARY_FIELDS = ("truck_count", "total_capacity", "income", "oil_fee", "actual_balance")


@dataclass
class PerTruckOil:
    machinery_type: str
    vehicle_no: str
    start_date: date
    end_date: date
    total_oil: Decimal = ZERO
    total_trucks: int = 0
    per_truck_oil: Decimal = ZERO


def calculate_per_truck_oil(db: Session, machinery_type: str, vehicle_no: str,
                            start_date: date, end_date: date) -> PerTruckOil:
    """
    Fuel bought and loads hauled over start_date..end_date (both inclusive).
    Loads are matched the way the vehicle's income is: excavators on
    excavator_no, everything else on truck_no.
    """
    if end_date < start_date:
        raise ValueError(f"end_date {end_date} is before start_date {start_date}")

    oil_rows = db.query(OilRecord.oil_amount).filter(
        OilRecord.machinery_type == machinery_type,
        OilRecord.vehicle_no == vehicle_no,
        OilRecord.record_date >= start_date,
        OilRecord.record_date <= end_date,
    ).all()
    total_oil = sum((to_decimal(amount) for (amount,) in oil_rows), ZERO)

    trip_column = getattr(TruckRecord, income_strategy_for(machinery_type).key_column)
    truck_rows = db.query(TruckRecord.truck_count).filter(
        trip_column == vehicle_no,
        TruckRecord.record_date >= start_date,
        TruckRecord.record_date <= end_date,
    ).all()
    total_trucks = sum((count or 0 for (count,) in truck_rows), 0)

    result = PerTruckOil(machinery_type, vehicle_no, start_date, end_date,
                         total_oil=total_oil, total_trucks=total_trucks)
    if total_trucks > 0:
        result.per_truck_oil = (total_oil / total_trucks).quantize(Decimal("0.0001"))
    logger.debug(f"[ANALYSIS] {machinery_type}-{vehicle_no} {start_date}..{end_date}: "
                 f"{total_oil} L / {total_trucks} loads")
    return result


def _empty_totals() -> dict:
    return {name: (0 if name == "truck_count" else ZERO) for name in SUMMARY_FIELDS}


@dataclass
class SettlementSummary:
    totals: dict = field(default_factory=_empty_totals)
    by_type: dict = field(default_factory=dict)
    record_count: int = 0


def settlement_summary(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None,
                       machinery_type: Optional[str] = None) -> SettlementSummary:
    """Daily settlement totals over the range, overall and per machinery class."""
    q = db.query(DailySettlement)
    if start_date:
        q = q.filter(DailySettlement.record_date >= start_date)
    if end_date:
        q = q.filter(DailySettlement.record_date <= end_date)
    if machinery_type:
        q = q.filter(DailySettlement.machinery_type == machinery_type)

    summary = SettlementSummary()
    for row in q.all():
        per_type = summary.by_type.setdefault(row.machinery_type, _empty_totals())
        for name in SUMMARY_FIELDS:
            value = (getattr(row, name) or 0) if name == "truck_count" else to_decimal(getattr(row, name))
            per_type[name] += value
            summary.totals[name] += value
        summary.record_count += 1
    return summary
