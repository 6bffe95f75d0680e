# tests/test_fuel_balance_service.py
"""Unit tests for the fuel balance ledger."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import patch
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from fleet_settlement.models.alert import Alert
from fleet_settlement.models.fuel_balance import FuelBalance
from fleet_settlement.models.records import OilRecord
from fleet_settlement.services.fuel_balance_service import compute_fuel_balance, run_fuel_balance_sweep
from factories import add_vehicle, add_daily

DAY1 = date(2026, 9, 14)
DAY2 = date(2026, 9, 15)


def add_refuel(db, vehicle, record_date, amount):
    db.add(OilRecord(record_date=record_date, machinery_type=vehicle.machinery_type,
                     vehicle_no=vehicle.vehicle_no, oil_amount=Decimal(amount)))
    db.commit()


class TestComputeFuelBalance:
    def test_first_day_opens_at_zero(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_refuel(db, vehicle, DAY1, "50")
        add_daily(db, vehicle, DAY1, truck_count=10, oil_amount="30")

        row = compute_fuel_balance(db, DAY1, vehicle)
        assert row.opening_balance == Decimal("0")
        assert row.refuel_amount == Decimal("50")
        assert row.consumption_amount == Decimal("30")
        assert row.closing_balance == Decimal("20")
        assert row.theoretical_consumption == Decimal("45.00")
        assert row.consumption_difference == Decimal("-15.00")

    def test_opening_carries_previous_closing(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_refuel(db, vehicle, DAY1, "50")
        add_daily(db, vehicle, DAY1, truck_count=10, oil_amount="30")
        add_daily(db, vehicle, DAY2, truck_count=10, oil_amount="15")
        compute_fuel_balance(db, DAY1, vehicle)

        row = compute_fuel_balance(db, DAY2, vehicle)
        assert row.opening_balance == Decimal("20")
        assert row.closing_balance == Decimal("5")

    def test_opening_skips_gap_days(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_refuel(db, vehicle, date(2026, 9, 10), "40")
        add_daily(db, vehicle, date(2026, 9, 10), truck_count=10, oil_amount="10")
        add_daily(db, vehicle, DAY2, truck_count=10, oil_amount="10")
        compute_fuel_balance(db, date(2026, 9, 10), vehicle)

        assert compute_fuel_balance(db, DAY2, vehicle).opening_balance == Decimal("30")

    def test_ledger_is_append_only(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_daily(db, vehicle, DAY1, truck_count=10, oil_amount="30")
        compute_fuel_balance(db, DAY1, vehicle)
        add_refuel(db, vehicle, DAY1, "100")

        assert compute_fuel_balance(db, DAY1, vehicle) is None
        row = db.query(FuelBalance).one()
        assert row.refuel_amount == Decimal("0")

    def test_no_settlement_skipped(self, db):
        vehicle = add_vehicle(db, "DT-01")
        assert compute_fuel_balance(db, DAY1, vehicle) is None
        assert db.query(FuelBalance).count() == 0

    def test_excess_consumption_raises_refuel_alert(self, db):
        vehicle = add_vehicle(db, "DT-01")
        # theoretical 4 × 4.5 = 18, actual 30 → 67% over
        add_daily(db, vehicle, DAY1, truck_count=4, oil_amount="30")

        compute_fuel_balance(db, DAY1, vehicle)
        alert = db.query(Alert).one()
        assert alert.alert_type == "refuel_anomaly"
        assert alert.severity == "medium"
        assert alert.payload["theoretical_consumption"] == 18.0

    def test_within_variance_no_alert(self, db):
        vehicle = add_vehicle(db, "DT-01")
        # theoretical 18, actual 21 → 16.7% over
        add_daily(db, vehicle, DAY1, truck_count=4, oil_amount="21")

        compute_fuel_balance(db, DAY1, vehicle)
        assert db.query(Alert).count() == 0


class TestFuelBalanceSweep:
    def test_counts_skipped_vehicles(self, db):
        truck = add_vehicle(db, "DT-01")
        add_vehicle(db, "DT-02")
        add_daily(db, truck, DAY1, truck_count=10, oil_amount="30")

        result = run_fuel_balance_sweep(db, DAY1)
        assert result.total == 2
        assert result.success == 1
        assert result.skipped == 1

        rerun = run_fuel_balance_sweep(db, DAY1)
        assert rerun.success == 0
        assert rerun.skipped == 2

    def test_failed_insert_leaves_no_alert_behind(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_daily(db, vehicle, DAY1, truck_count=4, oil_amount="30")
        real_flush = db.flush
        flushes = []

        def flush_then_fail(*args, **kwargs):
            flushes.append(1)
            if len(flushes) == 2:       # the ledger row, after the alert
                raise IntegrityError("INSERT INTO fuel_balance", {}, Exception("UNIQUE constraint failed"))
            return real_flush(*args, **kwargs)

        with patch.object(db, "flush", side_effect=flush_then_fail):
            result = run_fuel_balance_sweep(db, DAY1)

        assert result.failed == 1
        assert db.query(Alert).count() == 0
        assert db.query(FuelBalance).count() == 0


class TestVehicleChains:
    def test_each_vehicle_carries_its_own_closing(self, db):
        truck_a = add_vehicle(db, "DT-01")
        truck_b = add_vehicle(db, "DT-02")
        add_refuel(db, truck_a, DAY1, "50")
        add_refuel(db, truck_b, DAY1, "100")
        add_daily(db, truck_a, DAY1, truck_count=10, oil_amount="30")
        add_daily(db, truck_b, DAY1, truck_count=10, oil_amount="10")
        add_daily(db, truck_a, DAY2, truck_count=10, oil_amount="5")
        add_daily(db, truck_b, DAY2, truck_count=10, oil_amount="20")

        compute_fuel_balance(db, DAY1, truck_a)
        compute_fuel_balance(db, DAY1, truck_b)
        b2 = compute_fuel_balance(db, DAY2, truck_b)
        a2 = compute_fuel_balance(db, DAY2, truck_a)

        assert b2.opening_balance == Decimal("90")
        assert b2.closing_balance == Decimal("70")
        assert a2.opening_balance == Decimal("20")
        assert a2.closing_balance == Decimal("15")
