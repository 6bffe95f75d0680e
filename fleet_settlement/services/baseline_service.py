# fleet_settlement/services/baseline_service.py
"""
Analysis baselines: mean and population standard deviation of each vehicle's
daily indicators over the BASELINE_WINDOW_DAYS days before calculation_date.

  oil_per_truck   oil_amount / truck_count (days with loads only)
  actual_balance  daily actual_balance
  truck_count     daily truck_count
"""

import statistics
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session
from fleet_settlement.config import settings
from fleet_settlement.models.baseline import AnalysisBaseline
from fleet_settlement.models.machinery import Machinery
from fleet_settlement.models.settlement import DailySettlement
from fleet_settlement.services import roster_service
from fleet_settlement.services.errors import BatchResult, NoActiveVehiclesError
from fleet_settlement.services.persistence import upsert_by_key
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)

INDICATORS = ("oil_per_truck", "actual_balance", "truck_count")


def indicator_samples(rows: list[DailySettlement]) -> dict[str, list[float]]:
    samples = {name: [] for name in INDICATORS}
    for r in rows:
        trucks = r.truck_count or 0
        if trucks > 0:
            samples["oil_per_truck"].append(float(r.oil_amount or 0) / trucks)
        samples["actual_balance"].append(float(r.actual_balance or 0))
        samples["truck_count"].append(float(trucks))
    return samples


def calculate_vehicle_baselines(db: Session, calculation_date: date, vehicle: Machinery) -> int:
    """Upsert one baseline per indicator with at least one sample. Returns the count written."""
    window_end = calculation_date - timedelta(days=1)
    window_start = calculation_date - timedelta(days=settings.BASELINE_WINDOW_DAYS)
    rows = (
        db.query(DailySettlement)
        .filter(
            DailySettlement.machinery_type == vehicle.machinery_type,
            DailySettlement.vehicle_no == vehicle.vehicle_no,
            DailySettlement.record_date >= window_start,
            DailySettlement.record_date <= window_end,
        )
        .all()
    )

    written = 0
    for indicator, values in indicator_samples(rows).items():
        if not values:
            continue
        key = {
            "calculation_date": calculation_date,
            "machinery_type": vehicle.machinery_type,
            "vehicle_no": vehicle.vehicle_no,
            "indicator_type": indicator,
        }
        upsert_by_key(db, AnalysisBaseline, key, {
            "mean_value": round(statistics.mean(values), 4),
            "std_value": round(statistics.pstdev(values), 4),
            "sample_size": len(values),
            "window_start": window_start,
            "window_end": window_end,
            "created_at": datetime.utcnow(),
        })
        written += 1
    db.commit()
    return written


def calculate_baselines(db: Session, calculation_date: date) -> BatchResult:
    vehicles = roster_service.active_vehicles(db)
    if not vehicles:
        raise NoActiveVehiclesError(f"No active vehicles for baselines on {calculation_date}")

    result = BatchResult(total=len(vehicles))
    for vehicle in vehicles:
        try:
            if calculate_vehicle_baselines(db, calculation_date, vehicle):
                result.success += 1
            else:
                result.skipped += 1
        except Exception as e:
            db.rollback()
            result.record_failure(vehicle, e)
            logger.error(f"[BASELINE] {vehicle.machinery_type}-{vehicle.vehicle_no} failed: {e}", exc_info=True)

    logger.info(f"[BASELINE] baselines for {calculation_date}: {result.summary()}")
    return result
