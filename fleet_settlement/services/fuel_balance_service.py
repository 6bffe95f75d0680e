# fleet_settlement/services/fuel_balance_service.py
"""
Per-vehicle fuel ledger, derived from the daily settlement.

  opening      = closing of the vehicle's previous ledger row (0 for a new vehicle)
  refuel       = Σ that day's fuel purchases
  consumption  = settlement oil_amount
  closing      = opening + refuel - consumption
  theoretical  = truck_count × FUEL_LITERS_PER_TRIP
  difference   = consumption - theoretical

When consumption exceeds theoretical by more than FUEL_VARIANCE_THRESHOLD
a medium "refuel_anomaly" alert is raised before the ledger row is written;
both are committed together, so a failed insert leaves neither behind.
Ledger rows are append-only: an existing row for the day is left untouched.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from fleet_settlement.config import settings
from fleet_settlement.models.alert import AlertType, AlertSeverity
from fleet_settlement.models.fuel_balance import FuelBalance
from fleet_settlement.models.machinery import Machinery
from fleet_settlement.models.records import OilRecord
from fleet_settlement.models.settlement import DailySettlement
from fleet_settlement.services import roster_service
from fleet_settlement.services.alert_service import create_alert
from fleet_settlement.services.errors import BatchResult, NoActiveVehiclesError
from fleet_settlement.utils.money import ZERO, to_decimal, round_currency, as_float
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


def _vehicle_filter(model, vehicle: Machinery):
    return (model.machinery_type == vehicle.machinery_type, model.vehicle_no == vehicle.vehicle_no)


def opening_balance_for(db: Session, record_date: date, vehicle: Machinery) -> Decimal:
    previous = (
        db.query(FuelBalance)
        .filter(*_vehicle_filter(FuelBalance, vehicle), FuelBalance.record_date < record_date)
        .order_by(FuelBalance.record_date.desc())
        .first()
    )
    return to_decimal(previous.closing_balance) if previous else ZERO


def refuel_amount_for(db: Session, record_date: date, vehicle: Machinery) -> Decimal:
    rows = db.query(OilRecord.oil_amount).filter(
        *_vehicle_filter(OilRecord, vehicle), OilRecord.record_date == record_date,
    ).all()
    return sum((to_decimal(amount) for (amount,) in rows), ZERO)


def compute_fuel_balance(db: Session, record_date: date, vehicle: Machinery) -> Optional[FuelBalance]:
    """Append the day's ledger row. Returns None when skipped (no settlement, or already recorded)."""
    settlement = db.query(DailySettlement).filter(
        *_vehicle_filter(DailySettlement, vehicle), DailySettlement.record_date == record_date,
    ).first()
    if settlement is None:
        logger.debug(f"[FUEL] {vehicle.machinery_type}-{vehicle.vehicle_no} {record_date}: no settlement, skipped")
        return None

    existing = db.query(FuelBalance).filter(
        *_vehicle_filter(FuelBalance, vehicle), FuelBalance.record_date == record_date,
    ).first()
    if existing is not None:
        logger.debug(f"[FUEL] {vehicle.machinery_type}-{vehicle.vehicle_no} {record_date}: already recorded")
        return None

    opening = opening_balance_for(db, record_date, vehicle)
    refuel = refuel_amount_for(db, record_date, vehicle)
    consumption = to_decimal(settlement.oil_amount)
    closing = opening + refuel - consumption
    theoretical = round_currency((settlement.truck_count or 0) * Decimal(str(settings.FUEL_LITERS_PER_TRIP)))
    difference = consumption - theoretical

    figures = {
        "opening_balance": opening,
        "refuel_amount": refuel,
        "consumption_amount": consumption,
        "closing_balance": closing,
        "theoretical_consumption": theoretical,
        "consumption_difference": difference,
    }

    threshold = Decimal(str(settings.FUEL_VARIANCE_THRESHOLD))
    if theoretical > 0 and difference / theoretical > threshold:
        create_alert(
            db,
            alert_type=AlertType.REFUEL.value,
            machinery_type=vehicle.machinery_type,
            vehicle_no=vehicle.vehicle_no,
            content=(f"Fuel consumption variance too high: actual {consumption} L, "
                     f"theoretical {theoretical} L"),
            severity=AlertSeverity.MEDIUM.value,
            related_date=record_date,
            payload={name: as_float(value) for name, value in figures.items()},
            commit=False,
        )

    balance = FuelBalance(
        record_date=record_date,
        machinery_type=vehicle.machinery_type,
        vehicle_no=vehicle.vehicle_no,
        created_at=datetime.utcnow(),
        **figures,
    )
    db.add(balance)
    db.flush()
    db.commit()
    logger.debug(f"[FUEL] {vehicle.machinery_type}-{vehicle.vehicle_no} {record_date}: "
                 f"{opening} + {refuel} - {consumption} = {closing}")
    return balance


def run_fuel_balance_sweep(db: Session, record_date: date) -> BatchResult:
    vehicles = roster_service.active_vehicles(db)
    if not vehicles:
        raise NoActiveVehiclesError(f"No active vehicles for fuel balance on {record_date}")

    result = BatchResult(total=len(vehicles))
    for vehicle in vehicles:
        try:
            if compute_fuel_balance(db, record_date, vehicle) is None:
                result.skipped += 1
            else:
                result.success += 1
        except Exception as e:
            db.rollback()
            result.record_failure(vehicle, e)
            logger.error(f"[FUEL] {vehicle.machinery_type}-{vehicle.vehicle_no} {record_date} failed: {e}",
                         exc_info=True)

    logger.info(f"[FUEL] fuel balances for {record_date}: {result.summary()}")
    return result
