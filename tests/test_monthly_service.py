# tests/test_monthly_service.py
"""Unit tests for the monthly rollup."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fleet_settlement.models.settlement import MonthlySettlement, SUMMED_FIELDS
from fleet_settlement.services.monthly_service import (
    month_bounds, previous_month, rollup_month, generate_monthly_settlements, current_month_settlements,
)
from factories import add_vehicle, add_daily

TODAY = date(2026, 10, 19)


def add_days(db, vehicle, first, count, **values):
    for offset in range(count):
        add_daily(db, vehicle, first + timedelta(days=offset), **values)


class TestMonthHelpers:
    def test_month_bounds(self):
        assert month_bounds("2026-02") == (date(2026, 2, 1), date(2026, 2, 28))
        assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_malformed_month_rejected(self):
        with pytest.raises(ValueError):
            month_bounds("2026/09")

    def test_previous_month_wraps_year(self):
        assert previous_month(date(2026, 1, 5)) == "2025-12"
        assert previous_month(TODAY) == "2026-09"


class TestRollupMonth:
    def test_fields_are_summed(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_days(db, vehicle, date(2026, 9, 1), 3, truck_count=4, oil_amount="12.5",
                 actual_balance="100", income=Decimal("250"))

        row = rollup_month(db, "2026-09", vehicle, today=TODAY)
        assert row.truck_count == 12
        assert row.oil_amount == Decimal("37.5")
        assert row.income == Decimal("750")
        assert row.actual_balance == Decimal("300")
        assert row.rental_fee == Decimal("0")
        assert row.settlement_days == 3
        assert row.missing_days == 27

    def test_daily_rental_charged_per_settled_day(self, db):
        vehicle = add_vehicle(db, "DT-01", is_rental=True, rental_unit="daily", rental_fee=Decimal("100"))
        add_days(db, vehicle, date(2026, 9, 1), 20, actual_balance="500")

        row = rollup_month(db, "2026-09", vehicle, today=TODAY)
        assert row.rental_fee == Decimal("2000.00")
        assert row.actual_balance == Decimal("8000.00")
        assert row.missing_days == 10

    def test_monthly_rental_is_flat(self, db):
        vehicle = add_vehicle(db, "DT-01", is_rental=True, rental_unit="monthly", rental_fee=Decimal("3000"))
        add_days(db, vehicle, date(2026, 9, 1), 5, actual_balance="100")

        row = rollup_month(db, "2026-09", vehicle, today=TODAY)
        assert row.rental_fee == Decimal("3000")
        assert row.actual_balance == Decimal("-2500")

    def test_empty_month_with_daily_rental_is_all_zero(self, db):
        vehicle = add_vehicle(db, "DT-01", is_rental=True, rental_unit="daily", rental_fee=Decimal("100"))

        row = rollup_month(db, "2026-09", vehicle, today=TODAY)
        for name in SUMMED_FIELDS:
            assert getattr(row, name) == 0, name
        assert row.rental_fee == Decimal("0")
        assert row.settlement_days == 0
        assert row.missing_days == 30

    def test_empty_month_with_monthly_rental_charges_the_fee(self, db):
        vehicle = add_vehicle(db, "DT-01", is_rental=True, rental_unit="monthly", rental_fee=Decimal("3000"))

        row = rollup_month(db, "2026-09", vehicle, today=TODAY)
        assert row.rental_fee == Decimal("3000")
        assert row.actual_balance == Decimal("-3000")
        assert row.income == Decimal("0")
        assert row.truck_count == 0

    def test_completed_month_upserted(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_days(db, vehicle, date(2026, 9, 1), 2, actual_balance="10")
        rollup_month(db, "2026-09", vehicle, today=TODAY)
        add_daily(db, vehicle, date(2026, 9, 3), actual_balance="5")
        rollup_month(db, "2026-09", vehicle, today=TODAY)

        rows = db.query(MonthlySettlement).all()
        assert len(rows) == 1
        assert rows[0].actual_balance == Decimal("25")
        assert rows[0].settlement_days == 3
        assert rows[0].generated_at is not None

    def test_current_month_is_not_stored(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_days(db, vehicle, date(2026, 10, 1), 18, truck_count=1)

        row = rollup_month(db, "2026-10", vehicle, today=TODAY)
        assert row.id is None
        assert row.truck_count == 18
        assert row.missing_days == 0
        assert db.query(MonthlySettlement).count() == 0

    def test_future_month_rejected(self, db):
        vehicle = add_vehicle(db, "DT-01")
        with pytest.raises(ValueError):
            rollup_month(db, "2026-11", vehicle, today=TODAY)


class TestGenerateMonthly:
    def test_every_active_vehicle_rolled_up(self, db):
        truck = add_vehicle(db, "DT-01")
        add_vehicle(db, "DT-02")
        add_days(db, truck, date(2026, 9, 1), 2, actual_balance="10")

        result = generate_monthly_settlements(db, "2026-09", today=TODAY)
        assert result.success == 2
        by_vehicle = {r.vehicle_no: r for r in db.query(MonthlySettlement).all()}
        assert by_vehicle["DT-01"].actual_balance == Decimal("20")
        assert by_vehicle["DT-02"].settlement_days == 0

    def test_current_month_settlements(self, db):
        add_vehicle(db, "DT-01")
        add_vehicle(db, "DT-02")

        rows = current_month_settlements(db, today=TODAY)
        assert [r.year_month for r in rows] == ["2026-10", "2026-10"]
        assert db.query(MonthlySettlement).count() == 0
