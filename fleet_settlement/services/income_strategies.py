# fleet_settlement/services/income_strategies.py
"""
Trip aggregation and income per machinery class.

Each strategy implements the IncomeStrategy protocol:
  aggregate(db, record_date, vehicle_no, prices) -> TripTotals

Haul machinery (dump trucks, bulldozers, loaders) is paid per trip, so income
is the sum of the trip fees. Excavators are paid by volume loaded: trips are
matched on excavator_no and income = total_capacity × coefficient in force.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy.orm import Session
from fleet_settlement.models.machinery import MachineryType
from fleet_settlement.models.records import TruckRecord
from fleet_settlement.services.price_service import PriceResolver
from fleet_settlement.utils.money import ZERO, to_decimal, round_currency


@dataclass
class TripTotals:
    truck_count: int = 0
    total_capacity: Decimal = ZERO
    income: Decimal = ZERO


class IncomeStrategy(Protocol):
    def aggregate(self, db: Session, record_date: date, vehicle_no: str,
                  prices: PriceResolver) -> TripTotals: ...


class HaulIncomeStrategy:
    key_column = "truck_no"

    def aggregate(self, db: Session, record_date: date, vehicle_no: str,
                  prices: PriceResolver) -> TripTotals:
        totals = TripTotals()
        rows = db.query(TruckRecord).filter(
            TruckRecord.record_date == record_date,
            TruckRecord.truck_no == vehicle_no,
        ).all()
        for row in rows:
            count = row.truck_count or 0
            totals.truck_count += count
            totals.total_capacity += to_decimal(row.total_capacity)
            totals.income += self._trip_fee(row, count, record_date, prices)
        return totals

    @staticmethod
    def _trip_fee(row: TruckRecord, count: int, record_date: date, prices: PriceResolver) -> Decimal:
        if row.total_fee is not None:
            return to_decimal(row.total_fee)
        if row.load_type_id is not None and row.distance is not None:
            return round_currency(prices.distance_fare(row.load_type_id, row.distance, record_date) * count)
        return ZERO


class ExcavatorIncomeStrategy:
    key_column = "excavator_no"

    def aggregate(self, db: Session, record_date: date, vehicle_no: str,
                  prices: PriceResolver) -> TripTotals:
        totals = TripTotals()
        rows = db.query(TruckRecord).filter(
            TruckRecord.record_date == record_date,
            TruckRecord.excavator_no == vehicle_no,
        ).all()
        for row in rows:
            totals.truck_count += row.truck_count or 0
            totals.total_capacity += to_decimal(row.total_capacity)
        # Coefficient is required even on an idle day
        coefficient = prices.excavator_coefficient(record_date)
        totals.income = round_currency(totals.total_capacity * coefficient)
        return totals


INCOME_STRATEGIES: dict[str, IncomeStrategy] = {
    MachineryType.DUMP_TRUCK.value: HaulIncomeStrategy(),
    MachineryType.EXCAVATOR.value: ExcavatorIncomeStrategy(),
    MachineryType.BULLDOZER.value: HaulIncomeStrategy(),
    MachineryType.LOADER.value: HaulIncomeStrategy(),
}


def income_strategy_for(machinery_type: str) -> IncomeStrategy:
    """Unknown machinery classes are settled like haul machinery."""
    return INCOME_STRATEGIES.get(machinery_type, INCOME_STRATEGIES[MachineryType.DUMP_TRUCK.value])
