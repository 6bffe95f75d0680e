# fleet_settlement/services/calculation_service.py
"""
Daily settlement engine.

For one (record_date, machinery_type, vehicle_no) it joins every source the
settlement sheet draws on (trips, fuel purchases, shift hours, deductions,
meal fees, misc fees, driver salaries and repairs) into SettlementFigures,
then upserts the daily_settlement row for that key.

    balance        = income - oil_fee
    actual_balance = balance - shift_fee - deduction - six misc fees
                     - driver_salary - repair_fee - parts_fee
                     (- meal_fee when DEDUCT_MEAL_FEE is on)

Both are derived on read from the stored components and never edited directly.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from fleet_settlement.config import settings
from fleet_settlement.models.machinery import Machinery, DriverAssignment
from fleet_settlement.models.records import OilRecord, ShiftHours, Deduction, MiscFee, RepairRecord
from fleet_settlement.models.settlement import DailySettlement
from fleet_settlement.services import roster_service
from fleet_settlement.services.errors import BatchResult, NoActiveVehiclesError, SettlementNotFoundError
from fleet_settlement.services.income_strategies import income_strategy_for
from fleet_settlement.services.persistence import find_by_key, upsert_by_key
from fleet_settlement.services.price_service import PriceResolver
from fleet_settlement.utils.money import ZERO, to_decimal, round_currency
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)

# fee_type label on misc_fee rows → settlement column
MISC_FEE_COLUMNS = {
    "medical": "medical_fee",
    "walkie_talkie": "walkie_talkie_fee",
    "bluetooth_card": "bluetooth_card_fee",
    "amplifier": "amplifier_fee",
    "reflective_vest": "reflective_vest_fee",
    "safety_insurance": "safety_insurance_fee",
}

EXPENSE_COLUMNS = (
    "shift_fee", "deduction", *MISC_FEE_COLUMNS.values(),
    "driver_salary", "repair_fee", "parts_fee",
)


@dataclass
class SettlementFigures:
    record_date: date
    machinery_type: str
    vehicle_no: str
    truck_count: int = 0
    total_capacity: Decimal = ZERO
    income: Decimal = ZERO
    oil_amount: Decimal = ZERO
    oil_fee: Decimal = ZERO
    work_hours: Decimal = ZERO
    shift_fee: Decimal = ZERO
    deduction: Decimal = ZERO
    meal_fee: Decimal = ZERO
    medical_fee: Decimal = ZERO
    walkie_talkie_fee: Decimal = ZERO
    bluetooth_card_fee: Decimal = ZERO
    amplifier_fee: Decimal = ZERO
    reflective_vest_fee: Decimal = ZERO
    safety_insurance_fee: Decimal = ZERO
    driver_salary: Decimal = ZERO
    repair_fee: Decimal = ZERO
    parts_fee: Decimal = ZERO
    unrecognized_fee: Decimal = ZERO
    unrecognized_fee_types: list[str] = field(default_factory=list)
    deduct_meal_fee: bool = False

    @property
    def balance(self) -> Decimal:
        return self.income - self.oil_fee

    @property
    def actual_balance(self) -> Decimal:
        expenses = sum((getattr(self, column) for column in EXPENSE_COLUMNS), ZERO)
        if self.deduct_meal_fee:
            expenses += self.meal_fee
        return self.balance - expenses

    def as_columns(self) -> dict:
        """Values for the daily_settlement row, derived fields included."""
        skip = {"record_date", "machinery_type", "vehicle_no", "unrecognized_fee_types", "deduct_meal_fee"}
        values = {f.name: getattr(self, f.name) for f in fields(self) if f.name not in skip}
        values["balance"] = self.balance
        values["actual_balance"] = self.actual_balance
        return values


def settlement_key(record_date: date, machinery_type: str, vehicle_no: str) -> dict:
    return {"record_date": record_date, "machinery_type": machinery_type, "vehicle_no": vehicle_no}


# ── Aggregators ─────────────────────────────────────────────────────────────

def aggregate_fuel(db: Session, record_date: date, machinery_type: str, vehicle_no: str,
                   prices: PriceResolver) -> tuple[Decimal, Decimal]:
    """(oil_amount, oil_fee). Purchases without a stored fee are priced as of their date."""
    oil_amount, oil_fee = ZERO, ZERO
    rows = db.query(OilRecord).filter(
        OilRecord.record_date == record_date,
        OilRecord.machinery_type == machinery_type,
        OilRecord.vehicle_no == vehicle_no,
    ).all()
    for row in rows:
        amount = to_decimal(row.oil_amount)
        oil_amount += amount
        if row.total_fee is not None:
            oil_fee += to_decimal(row.total_fee)
        else:
            unit_price = (to_decimal(row.oil_price) if row.oil_price is not None
                          else prices.oil_price(row.oil_type, record_date))
            oil_fee += round_currency(amount * unit_price)
    return oil_amount, oil_fee


def lookup_work_hours(db: Session, record_date: date, machinery_type: str, vehicle_no: str) -> Decimal:
    """At most one shift row per key; none logged means 0 hours."""
    row = db.query(ShiftHours).filter(
        ShiftHours.record_date == record_date,
        ShiftHours.machinery_type == machinery_type,
        ShiftHours.vehicle_no == vehicle_no,
    ).first()
    return to_decimal(row.work_hours) if row else ZERO


def aggregate_deductions(db: Session, record_date: date, machinery_type: str, vehicle_no: str) -> Decimal:
    rows = db.query(Deduction.deduction_amount).filter(
        Deduction.record_date == record_date,
        Deduction.machinery_type == machinery_type,
        Deduction.vehicle_no == vehicle_no,
    ).all()
    return sum((to_decimal(amount) for (amount,) in rows), ZERO)


def calculate_meal_fee(db: Session, record_date: date, drivers: list[DriverAssignment],
                       prices: PriceResolver) -> Decimal:
    """
    Sum of each assigned driver's meal price for the day. The attendance
    sheet is looked up by year-month first; no sheet or no row for a
    driver contributes 0. A meal status without a price raises.
    """
    if not drivers:
        return ZERO
    master = roster_service.attendance_master_for(db, record_date.strftime("%Y-%m"))
    if master is None:
        return ZERO

    total = ZERO
    for driver in drivers:
        meal_status = roster_service.meal_status_for(db, master, driver.personnel_id, record_date)
        if meal_status is None:
            continue
        total += prices.meal_price(meal_status, record_date)
    return total


def categorize_misc_fees(db: Session, record_date: date, machinery_type: str,
                         vehicle_no: str) -> tuple[dict, Decimal, list[str]]:
    """
    Bucket misc fees into the six settlement columns.
    Returns (column totals, unrecognised total, unrecognised labels).
    """
    totals = {column: ZERO for column in MISC_FEE_COLUMNS.values()}
    unknown_total = ZERO
    unknown_labels: list[str] = []
    rows = db.query(MiscFee).filter(
        MiscFee.record_date == record_date,
        MiscFee.machinery_type == machinery_type,
        MiscFee.vehicle_no == vehicle_no,
    ).all()
    for row in rows:
        column = MISC_FEE_COLUMNS.get(row.fee_type)
        if column is None:
            unknown_total += to_decimal(row.fee_amount)
            if row.fee_type not in unknown_labels:
                unknown_labels.append(row.fee_type)
            continue
        totals[column] += to_decimal(row.fee_amount)
    return totals, unknown_total, unknown_labels


def sum_driver_salary(drivers: list[DriverAssignment]) -> Decimal:
    return sum((to_decimal(d.personnel.daily_salary) for d in drivers if d.personnel), ZERO)


def aggregate_repairs(db: Session, record_date: date, machinery_type: str,
                      vehicle_no: str) -> tuple[Decimal, Decimal]:
    rows = db.query(RepairRecord.repair_fee, RepairRecord.parts_fee).filter(
        RepairRecord.record_date == record_date,
        RepairRecord.machinery_type == machinery_type,
        RepairRecord.vehicle_no == vehicle_no,
    ).all()
    repair_fee = sum((to_decimal(r) for r, _ in rows), ZERO)
    parts_fee = sum((to_decimal(p) for _, p in rows), ZERO)
    return repair_fee, parts_fee


# ── Engine ──────────────────────────────────────────────────────────────────

def compute_daily_settlement(db: Session, record_date: date, machinery_type: str,
                             vehicle_no: str, prices: Optional[PriceResolver] = None) -> SettlementFigures:
    """Pure read: same source rows in, same figures out. Raises PriceNotFoundError."""
    prices = prices or PriceResolver(db)

    trips = income_strategy_for(machinery_type).aggregate(db, record_date, vehicle_no, prices)
    oil_amount, oil_fee = aggregate_fuel(db, record_date, machinery_type, vehicle_no, prices)
    work_hours = lookup_work_hours(db, record_date, machinery_type, vehicle_no)
    deduction = aggregate_deductions(db, record_date, machinery_type, vehicle_no)
    drivers = roster_service.drivers_for_vehicle(db, machinery_type, vehicle_no, record_date)
    meal_fee = calculate_meal_fee(db, record_date, drivers, prices)
    misc, unknown_total, unknown_labels = categorize_misc_fees(db, record_date, machinery_type, vehicle_no)
    driver_salary = sum_driver_salary(drivers)
    repair_fee, parts_fee = aggregate_repairs(db, record_date, machinery_type, vehicle_no)
    shift_fee = round_currency(work_hours * prices.shift_rate(machinery_type, record_date))

    if unknown_labels:
        logger.warning(
            f"[SETTLEMENT] {machinery_type}-{vehicle_no} {record_date}: unrecognised misc fee types "
            f"{unknown_labels} ({unknown_total}) kept out of actual_balance"
        )

    return SettlementFigures(
        record_date=record_date,
        machinery_type=machinery_type,
        vehicle_no=vehicle_no,
        truck_count=trips.truck_count,
        total_capacity=trips.total_capacity,
        income=trips.income,
        oil_amount=oil_amount,
        oil_fee=oil_fee,
        work_hours=work_hours,
        shift_fee=shift_fee,
        deduction=deduction,
        meal_fee=meal_fee,
        driver_salary=driver_salary,
        repair_fee=repair_fee,
        parts_fee=parts_fee,
        unrecognized_fee=unknown_total,
        unrecognized_fee_types=unknown_labels,
        deduct_meal_fee=settings.DEDUCT_MEAL_FEE,
        **misc,
    )


def save_daily_settlement(db: Session, figures: SettlementFigures) -> DailySettlement:
    """Upsert by (record_date, machinery_type, vehicle_no) and commit."""
    values = figures.as_columns()
    values["last_refresh_time"] = datetime.utcnow()
    row, created = upsert_by_key(
        db, DailySettlement,
        settlement_key(figures.record_date, figures.machinery_type, figures.vehicle_no),
        values,
    )
    db.commit()
    logger.debug(
        f"[SETTLEMENT] {'inserted' if created else 'updated'} {figures.record_date} "
        f"{figures.machinery_type}-{figures.vehicle_no} actual={figures.actual_balance}"
    )
    return row


def get_daily_settlement(db: Session, record_date: date, machinery_type: str,
                         vehicle_no: str) -> DailySettlement:
    row = find_by_key(db, DailySettlement, settlement_key(record_date, machinery_type, vehicle_no))
    if row is None:
        raise SettlementNotFoundError(
            f"No daily settlement for {machinery_type}-{vehicle_no} on {record_date}"
        )
    return row


@dataclass
class SettlementDetail:
    settlement: object          # DailySettlement row, or SettlementFigures when computed live
    vehicle: Optional[Machinery]
    drivers: list[DriverAssignment]
    is_realtime: bool = False


def daily_settlement_detail(db: Session, record_date: date, machinery_type: str,
                            vehicle_no: str) -> SettlementDetail:
    """
    The stored settlement with its vehicle and drivers. A day that has not
    been settled yet is computed on the fly (nothing is written) and flagged
    is_realtime. Raises PriceNotFoundError from the live computation.
    """
    row = find_by_key(db, DailySettlement, settlement_key(record_date, machinery_type, vehicle_no))
    vehicle = roster_service.vehicle_info(db, machinery_type, vehicle_no)
    drivers = roster_service.drivers_for_vehicle(db, machinery_type, vehicle_no, record_date)
    if row is not None:
        return SettlementDetail(settlement=row, vehicle=vehicle, drivers=drivers)

    figures = compute_daily_settlement(db, record_date, machinery_type, vehicle_no)
    return SettlementDetail(settlement=figures, vehicle=vehicle, drivers=drivers, is_realtime=True)


def refresh_daily_settlement(db: Session, record_date: date, machinery_type: str,
                             vehicle_no: str) -> DailySettlement:
    figures = compute_daily_settlement(db, record_date, machinery_type, vehicle_no)
    return save_daily_settlement(db, figures)


def generate_daily_settlements(db: Session, record_date: date,
                               machinery_type: Optional[str] = None) -> BatchResult:
    """
    Compute and upsert settlements for every active vehicle.
    One vehicle's failure is logged and recorded; the rest still run.
    Raises NoActiveVehiclesError when there is nothing to settle.
    """
    vehicles = roster_service.active_vehicles(db, machinery_type)
    if not vehicles:
        raise NoActiveVehiclesError(f"No active vehicles to settle for {record_date}")

    prices = PriceResolver(db)
    result = BatchResult(total=len(vehicles))
    for vehicle in vehicles:
        try:
            figures = compute_daily_settlement(db, record_date, vehicle.machinery_type,
                                               vehicle.vehicle_no, prices)
            save_daily_settlement(db, figures)
            result.success += 1
        except Exception as e:
            db.rollback()
            result.record_failure(vehicle, e)
            logger.error(
                f"[SETTLEMENT] {vehicle.machinery_type}-{vehicle.vehicle_no} {record_date} failed: {e}",
                exc_info=True,
            )

    logger.info(f"[SETTLEMENT] daily settlements for {record_date}: {result.summary()}")
    return result
