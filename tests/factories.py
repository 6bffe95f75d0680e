# tests/factories.py
"""Row builders for the settlement tests."""

from datetime import date
from decimal import Decimal

from fleet_settlement.models.machinery import Machinery, MachineryType, Personnel, DriverAssignment
from fleet_settlement.models.prices import ExcavatorCoefficient, ShiftPrice, MealPrice, OilPrice
from fleet_settlement.models.settlement import DailySettlement

PRICE_START = date(2026, 1, 1)


def add_vehicle(db, vehicle_no="DT-01", machinery_type=MachineryType.DUMP_TRUCK.value, **overrides):
    values = {"is_rental": False, "status": "active", "capacity": Decimal("20")}
    values.update(overrides)
    vehicle = Machinery(machinery_type=machinery_type, vehicle_no=vehicle_no, **values)
    db.add(vehicle)
    db.commit()
    return vehicle


def add_driver(db, vehicle, start_date, end_date=None, daily_salary="100", name="Driver"):
    person = Personnel(name=name, monthly_salary=Decimal(daily_salary) * 30,
                       daily_salary=Decimal(daily_salary), status="active")
    db.add(person)
    db.flush()
    db.add(DriverAssignment(personnel_id=person.id, machinery_type=vehicle.machinery_type,
                            vehicle_no=vehicle.vehicle_no, start_date=start_date, end_date=end_date))
    db.commit()
    return person


def add_prices(db, machinery_types=None, effective_date=PRICE_START):
    types = machinery_types or [t.value for t in MachineryType]
    db.add_all([
        ShiftPrice(machinery_type=t, effective_date=effective_date, price_per_hour=Decimal("50"))
        for t in types
    ])
    db.add(ExcavatorCoefficient(effective_date=effective_date, coefficient=Decimal("2.5")))
    db.add(MealPrice(meal_type="normal", effective_date=effective_date, price=Decimal("20")))
    db.add(OilPrice(oil_type="diesel", effective_date=effective_date, price=Decimal("7.5")))
    db.commit()


def add_daily(db, vehicle, record_date, truck_count=0, oil_amount="0", actual_balance="0", **values):
    row = DailySettlement(
        record_date=record_date,
        machinery_type=vehicle.machinery_type,
        vehicle_no=vehicle.vehicle_no,
        truck_count=truck_count,
        oil_amount=Decimal(str(oil_amount)),
        actual_balance=Decimal(str(actual_balance)),
        **values,
    )
    db.add(row)
    db.commit()
    return row
