# fleet_settlement/services/price_service.py
"""
Price-as-of-date resolution.

Every price table is a history of dated rows; the price in force on a given
day is the row with the latest effective_date that is not after that day.
A missing price is an error, never a silent zero: an omitted fee would
corrupt the settlement totals.
"""

import enum
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from fleet_settlement.models.prices import (
    ExcavatorCoefficient, ShiftPrice, MealPrice, OilPrice, DistancePrice,
)
from fleet_settlement.services.errors import PriceNotFoundError
from fleet_settlement.utils.money import to_decimal, round_currency
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


class PriceCategory(str, enum.Enum):
    EXCAVATOR_COEFFICIENT = "excavator_coefficient"
    SHIFT_RATE = "shift_rate"
    MEAL = "meal"
    OIL = "oil"
    DISTANCE = "distance"


@dataclass(frozen=True)
class _PriceTable:
    model: type
    key_column: Optional[str]   # None = one price series for the whole category
    value_column: Optional[str]  # None = compound value, use resolve_record()


PRICE_TABLES = {
    PriceCategory.EXCAVATOR_COEFFICIENT: _PriceTable(ExcavatorCoefficient, None, "coefficient"),
    PriceCategory.SHIFT_RATE: _PriceTable(ShiftPrice, "machinery_type", "price_per_hour"),
    PriceCategory.MEAL: _PriceTable(MealPrice, "meal_type", "price"),
    PriceCategory.OIL: _PriceTable(OilPrice, "oil_type", "price"),
    PriceCategory.DISTANCE: _PriceTable(DistancePrice, "load_type_id", None),
}


def tiered_fare(base_price, base_distance, extra_distance, extra_price, amount) -> Decimal:
    """
    base_price up to base_distance; beyond it, one extra_price per started
    extra_distance step.
    """
    amount = to_decimal(amount)
    base_distance = to_decimal(base_distance)
    base_price = to_decimal(base_price)
    if amount <= base_distance:
        return base_price
    step = to_decimal(extra_distance)
    if step <= 0:
        raise ValueError("extra_distance must be positive")
    steps = math.ceil((amount - base_distance) / step)
    return base_price + steps * to_decimal(extra_price)


class PriceResolver:
    """Resolves dated prices against one DB session."""

    def __init__(self, db: Session):
        self.db = db

    def resolve_record(self, category: PriceCategory, as_of: date, key=None):
        table = PRICE_TABLES[PriceCategory(category)]
        model = table.model
        q = self.db.query(model).filter(model.effective_date <= as_of)
        if table.key_column is not None:
            if key is None:
                raise ValueError(f"Price category '{category}' requires a key")
            q = q.filter(getattr(model, table.key_column) == key)
        row = q.order_by(model.effective_date.desc(), model.id.desc()).first()
        if row is None:
            logger.warning(f"[PRICE] missing {PriceCategory(category).value} key={key} as of {as_of}")
            raise PriceNotFoundError(PriceCategory(category).value, as_of, key)
        return row

    def resolve(self, category: PriceCategory, as_of: date, key=None) -> Decimal:
        table = PRICE_TABLES[PriceCategory(category)]
        if table.value_column is None:
            raise ValueError(f"Price category '{category}' has a compound value; use resolve_record()")
        row = self.resolve_record(category, as_of, key)
        return to_decimal(getattr(row, table.value_column))

    # ── Convenience lookups ──────────────────────────────────────────────
    def excavator_coefficient(self, as_of: date) -> Decimal:
        return self.resolve(PriceCategory.EXCAVATOR_COEFFICIENT, as_of)

    def shift_rate(self, machinery_type: str, as_of: date) -> Decimal:
        return self.resolve(PriceCategory.SHIFT_RATE, as_of, machinery_type)

    def meal_price(self, meal_status: str, as_of: date) -> Decimal:
        return self.resolve(PriceCategory.MEAL, as_of, meal_status)

    def oil_price(self, oil_type: str, as_of: date) -> Decimal:
        return self.resolve(PriceCategory.OIL, as_of, oil_type)

    def distance_fare(self, load_type_id: int, distance, as_of: date) -> Decimal:
        row = self.resolve_record(PriceCategory.DISTANCE, as_of, load_type_id)
        fare = tiered_fare(row.base_price, row.base_distance, row.extra_distance, row.extra_price, distance)
        return round_currency(fare)
