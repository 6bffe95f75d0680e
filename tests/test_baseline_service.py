# tests/test_baseline_service.py
"""Unit tests for analysis baselines."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import patch
from datetime import date
from decimal import Decimal
from fleet_settlement.config import settings
from fleet_settlement.models.baseline import AnalysisBaseline
from fleet_settlement.services.baseline_service import calculate_baselines
from factories import add_vehicle, add_daily

CALC_DATE = date(2026, 10, 1)


class TestCalculateBaselines:
    def test_mean_and_population_std(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_daily(db, vehicle, date(2026, 9, 28), truck_count=10, oil_amount="40", actual_balance="100")
        add_daily(db, vehicle, date(2026, 9, 29), truck_count=20, oil_amount="40", actual_balance="200")
        add_daily(db, vehicle, date(2026, 9, 30), truck_count=30, oil_amount="60", actual_balance="300")

        result = calculate_baselines(db, CALC_DATE)
        assert result.success == 1

        rows = {r.indicator_type: r for r in db.query(AnalysisBaseline).all()}
        assert rows["truck_count"].mean_value == Decimal("20")
        assert rows["truck_count"].std_value == Decimal("8.1650")
        assert rows["actual_balance"].mean_value == Decimal("200")
        # 4, 2, 2 litres per load
        assert rows["oil_per_truck"].mean_value == Decimal("2.6667")
        assert rows["truck_count"].sample_size == 3
        assert rows["truck_count"].window_end == date(2026, 9, 30)

    def test_zero_load_days_excluded_from_oil_per_truck(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_daily(db, vehicle, date(2026, 9, 29), truck_count=0, oil_amount="40")
        add_daily(db, vehicle, date(2026, 9, 30), truck_count=10, oil_amount="40")

        calculate_baselines(db, CALC_DATE)
        rows = {r.indicator_type: r for r in db.query(AnalysisBaseline).all()}
        assert rows["oil_per_truck"].sample_size == 1
        assert rows["truck_count"].sample_size == 2

    def test_rows_outside_window_ignored(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_daily(db, vehicle, date(2026, 9, 20), truck_count=100)
        add_daily(db, vehicle, date(2026, 9, 30), truck_count=10)
        add_daily(db, vehicle, CALC_DATE, truck_count=50)

        with patch.object(settings, "BASELINE_WINDOW_DAYS", 7):
            calculate_baselines(db, CALC_DATE)
        row = db.query(AnalysisBaseline).filter(AnalysisBaseline.indicator_type == "truck_count").one()
        assert row.mean_value == Decimal("10")

    def test_vehicle_without_history_skipped(self, db):
        add_vehicle(db, "DT-01")
        result = calculate_baselines(db, CALC_DATE)
        assert result.skipped == 1
        assert db.query(AnalysisBaseline).count() == 0

    def test_rerun_updates_in_place(self, db):
        vehicle = add_vehicle(db, "DT-01")
        add_daily(db, vehicle, date(2026, 9, 30), truck_count=10, oil_amount="40")
        calculate_baselines(db, CALC_DATE)
        calculate_baselines(db, CALC_DATE)
        assert db.query(AnalysisBaseline).count() == 3
