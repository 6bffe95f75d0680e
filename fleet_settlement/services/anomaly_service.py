# fleet_settlement/services/anomaly_service.py
"""
Rule-based anomaly detection over recent daily settlements.

Each rule implements the AnomalyRule protocol:
  rule_id: str
  alert_type: str
  window: int                           rows needed, newest first
  check(rows) -> AnomalyEvent | None    None = nothing to report (or too little history)

A rule configured with window 0 never fires.

Rules are independent: the sweep runs each one in its own try block so a
failing rule never hides the others' findings.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, Sequence

from sqlalchemy.orm import Session
from fleet_settlement.config import settings
from fleet_settlement.models.alert import AlertType, AlertSeverity
from fleet_settlement.models.machinery import Machinery
from fleet_settlement.models.settlement import DailySettlement
from fleet_settlement.services import roster_service
from fleet_settlement.services.alert_service import create_alert
from fleet_settlement.services.errors import BatchResult, NoActiveVehiclesError
from fleet_settlement.utils.money import ZERO, to_decimal, as_float
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AnomalyEvent:
    alert_type: str
    severity: str
    content: str
    payload: dict


class AnomalyRule(Protocol):
    rule_id: str
    alert_type: str
    window: int

    def check(self, rows: Sequence[DailySettlement]) -> AnomalyEvent | None: ...


class FuelAnomalyRule:
    """
    Average fuel per truck load over the last `window` days above the threshold.
    avg = Σoil_amount / Σtruck_count (0 when no loads were hauled).
    """

    rule_id = "fuel"
    alert_type = AlertType.FUEL.value

    def __init__(self, window=None, threshold=None):
        self.window = window if window is not None else settings.FUEL_ALERT_WINDOW_DAYS
        self.threshold = Decimal(str(threshold if threshold is not None else settings.FUEL_ALERT_OIL_PER_TRUCK))

    def check(self, rows):
        if self.window <= 0 or len(rows) < self.window:
            return None
        rows = rows[:self.window]
        total_oil = sum((to_decimal(r.oil_amount) for r in rows), ZERO)
        total_trucks = sum((r.truck_count or 0 for r in rows), 0)
        avg_oil_per_truck = total_oil / total_trucks if total_trucks > 0 else ZERO
        if avg_oil_per_truck <= self.threshold:
            return None

        return AnomalyEvent(
            alert_type=self.alert_type,
            severity=AlertSeverity.HIGH.value,
            content=(f"Average fuel per truck over the last {self.window} days is "
                     f"{avg_oil_per_truck:.2f} L (threshold {self.threshold} L)"),
            payload={
                "avg_oil_per_truck": round(float(avg_oil_per_truck), 4),
                "total_oil": as_float(total_oil),
                "total_trucks": total_trucks,
                "recent_data": [
                    {"record_date": r.record_date.isoformat(), "oil_amount": as_float(r.oil_amount),
                     "truck_count": r.truck_count or 0}
                    for r in rows
                ],
            },
        )


class ProfitAnomalyRule:
    """Loss (actual_balance < 0) on every one of the last `window` days."""

    rule_id = "profit"
    alert_type = AlertType.PROFIT.value

    def __init__(self, window=None):
        self.window = window if window is not None else settings.PROFIT_ALERT_WINDOW_DAYS

    def check(self, rows):
        if self.window <= 0 or len(rows) < self.window:
            return None
        rows = rows[:self.window]
        if not all(to_decimal(r.actual_balance) < 0 for r in rows):
            return None

        total_loss = sum((to_decimal(r.actual_balance) for r in rows), ZERO)
        return AnomalyEvent(
            alert_type=self.alert_type,
            severity=AlertSeverity.HIGH.value,
            content=f"Loss on {self.window} consecutive days, total loss {abs(total_loss):.2f}",
            payload={
                "total_loss": as_float(total_loss),
                "recent_balances": [
                    {"record_date": r.record_date.isoformat(), "actual_balance": as_float(r.actual_balance)}
                    for r in rows
                ],
            },
        )


class TruckCountAnomalyRule:
    """At least `zero_days` days without a single load within the last `window` days."""

    rule_id = "truck_count"
    alert_type = AlertType.TRUCK_COUNT.value

    def __init__(self, window=None, zero_days=None):
        self.window = window if window is not None else settings.TRUCK_COUNT_ALERT_WINDOW_DAYS
        self.zero_days = zero_days if zero_days is not None else settings.TRUCK_COUNT_ALERT_ZERO_DAYS

    def check(self, rows):
        if self.window <= 0 or len(rows) < self.window:
            return None
        rows = rows[:self.window]
        zero_days = sum(1 for r in rows if (r.truck_count or 0) == 0)
        if zero_days < self.zero_days:
            return None

        return AnomalyEvent(
            alert_type=self.alert_type,
            severity=AlertSeverity.MEDIUM.value,
            content=f"No loads on {zero_days} of the last {self.window} days, vehicle may be idle",
            payload={
                "zero_days": zero_days,
                "recent_truck_counts": [
                    {"record_date": r.record_date.isoformat(), "truck_count": r.truck_count or 0}
                    for r in rows
                ],
            },
        )


def default_rules() -> list[AnomalyRule]:
    return [FuelAnomalyRule(), ProfitAnomalyRule(), TruckCountAnomalyRule()]


def recent_settlements(db: Session, vehicle: Machinery, as_of: date, limit: int) -> list[DailySettlement]:
    """Up to `limit` daily rows on or before as_of, newest first."""
    return (
        db.query(DailySettlement)
        .filter(
            DailySettlement.machinery_type == vehicle.machinery_type,
            DailySettlement.vehicle_no == vehicle.vehicle_no,
            DailySettlement.record_date <= as_of,
        )
        .order_by(DailySettlement.record_date.desc())
        .limit(limit)
        .all()
    )


def check_vehicle(db: Session, vehicle: Machinery, as_of: date,
                  rules: Sequence[AnomalyRule] = None) -> tuple[list, list]:
    """
    Run every rule for one vehicle. Returns (alerts created, rule failures);
    a failing rule is rolled back and logged, the next rule still runs.
    """
    created, failures = [], []
    # Read the key up front: a rollback expires the instance
    machinery_type, vehicle_no = vehicle.machinery_type, vehicle.vehicle_no
    for rule in rules or default_rules():
        try:
            rows = recent_settlements(db, vehicle, as_of, rule.window)
            event = rule.check(rows)
            if event is None:
                continue
            alert = create_alert(db, event.alert_type, machinery_type, vehicle_no,
                                 event.content, event.severity, as_of, event.payload)
            if alert is not None:
                created.append(alert)
        except Exception as e:
            db.rollback()
            failures.append(f"{rule.rule_id}: {e}")
            logger.error(f"[ANOMALY] rule {rule.rule_id} failed for {machinery_type}-{vehicle_no}: {e}",
                         exc_info=True)
    return created, failures


def run_anomaly_sweep(db: Session, as_of: date, rules: Sequence[AnomalyRule] = None) -> BatchResult:
    vehicles = roster_service.active_vehicles(db)
    if not vehicles:
        raise NoActiveVehiclesError(f"No active vehicles to check for {as_of}")

    rules = rules or default_rules()
    result = BatchResult(total=len(vehicles))
    alerts = 0
    for vehicle in vehicles:
        created, failures = check_vehicle(db, vehicle, as_of, rules)
        alerts += len(created)
        if failures:
            result.record_failure(vehicle, Exception("; ".join(failures)))
        else:
            result.success += 1

    logger.info(f"[ANOMALY] sweep for {as_of}: {result.summary()}, {alerts} alert(s) raised")
    return result
