# tests/test_anomaly_service.py
"""Unit tests for the anomaly rules and sweep."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from types import SimpleNamespace
from datetime import date, timedelta
from decimal import Decimal
from fleet_settlement.models.alert import Alert
from fleet_settlement.services.anomaly_service import (
    FuelAnomalyRule, ProfitAnomalyRule, TruckCountAnomalyRule, run_anomaly_sweep, check_vehicle,
)
from fleet_settlement.services.errors import NoActiveVehiclesError
from factories import add_vehicle, add_daily

AS_OF = date(2026, 9, 30)


def make_rows(values, field, **defaults):
    """Rows newest first, one per day ending at AS_OF."""
    rows = []
    for offset, value in enumerate(values):
        row = {"record_date": AS_OF - timedelta(days=offset), "truck_count": 0,
               "oil_amount": Decimal("0"), "actual_balance": Decimal("0")}
        row.update(defaults)
        row[field] = value
        rows.append(SimpleNamespace(**row))
    return rows


class TestFuelAnomalyRule:
    def test_average_over_threshold_alerts(self):
        rows = make_rows([14, 14, 14, 14, 14, 15, 15], "truck_count", oil_amount=Decimal("300"))
        event = FuelAnomalyRule(window=7, threshold=20).check(rows)

        assert event is not None
        assert event.alert_type == "fuel"
        assert event.severity == "high"
        assert event.payload["total_oil"] == 2100.0
        assert event.payload["total_trucks"] == 100
        assert event.payload["avg_oil_per_truck"] == 21.0
        assert len(event.payload["recent_data"]) == 7

    def test_insufficient_history_is_silent(self):
        rows = make_rows([14] * 6, "truck_count", oil_amount=Decimal("300"))
        assert FuelAnomalyRule(window=7, threshold=20).check(rows) is None

    def test_exactly_at_threshold_is_silent(self):
        rows = make_rows([15] * 7, "truck_count", oil_amount=Decimal("300"))
        assert FuelAnomalyRule(window=7, threshold=20).check(rows) is None

    def test_no_loads_means_zero_average(self):
        rows = make_rows([0] * 7, "truck_count", oil_amount=Decimal("300"))
        assert FuelAnomalyRule(window=7, threshold=20).check(rows) is None


class TestProfitAnomalyRule:
    def test_consecutive_losses_alert(self):
        rows = make_rows([Decimal("-50"), Decimal("-30"), Decimal("-1")], "actual_balance")
        event = ProfitAnomalyRule(window=3).check(rows)

        assert event is not None
        assert event.payload["total_loss"] == -81.0
        assert [r["actual_balance"] for r in event.payload["recent_balances"]] == [-50.0, -30.0, -1.0]

    def test_one_break_even_day_is_silent(self):
        rows = make_rows([Decimal("-50"), Decimal("0"), Decimal("-1")], "actual_balance")
        assert ProfitAnomalyRule(window=3).check(rows) is None

    def test_insufficient_history_is_silent(self):
        rows = make_rows([Decimal("-50"), Decimal("-30")], "actual_balance")
        assert ProfitAnomalyRule(window=3).check(rows) is None


class TestTruckCountAnomalyRule:
    def test_idle_days_alert(self):
        rows = make_rows([0, 5, 0, 0, 3], "truck_count")
        event = TruckCountAnomalyRule(window=5, zero_days=3).check(rows)

        assert event is not None
        assert event.severity == "medium"
        assert event.payload["zero_days"] == 3

    def test_fewer_idle_days_is_silent(self):
        rows = make_rows([0, 5, 0, 2, 3], "truck_count")
        assert TruckCountAnomalyRule(window=5, zero_days=3).check(rows) is None

    def test_zero_idle_days_threshold_is_kept(self):
        rule = TruckCountAnomalyRule(window=5, zero_days=0)
        assert rule.zero_days == 0
        assert rule.check(make_rows([1, 5, 2, 2, 3], "truck_count")) is not None


class TestZeroWindow:
    def test_explicit_zero_is_not_replaced_by_default(self):
        assert FuelAnomalyRule(window=0).window == 0
        assert ProfitAnomalyRule(window=0).window == 0
        assert TruckCountAnomalyRule(window=0).window == 0

    def test_zero_window_never_fires(self):
        losses = make_rows([Decimal("-10")] * 3, "actual_balance")
        assert ProfitAnomalyRule(window=0).check(losses) is None
        assert ProfitAnomalyRule(window=0).check([]) is None
        assert TruckCountAnomalyRule(window=0, zero_days=0).check([]) is None


class BrokenRule:
    rule_id = "broken"
    window = 1

    def check(self, rows):
        raise RuntimeError("boom")


class TestAnomalySweep:
    def seed_losses(self, db, vehicle_no="DT-01"):
        vehicle = add_vehicle(db, vehicle_no)
        for offset, balance in enumerate(["-50", "-30", "-1"]):
            add_daily(db, vehicle, AS_OF - timedelta(days=offset), truck_count=5, actual_balance=balance)
        return vehicle

    def test_sweep_raises_profit_alert(self, db):
        self.seed_losses(db)
        result = run_anomaly_sweep(db, AS_OF, rules=[ProfitAnomalyRule(window=3)])

        assert result.success == 1
        alert = db.query(Alert).one()
        assert alert.alert_type == "profit"
        assert alert.related_date == AS_OF
        assert alert.payload["total_loss"] == -81.0

    def test_rerun_creates_no_duplicate(self, db):
        self.seed_losses(db)
        run_anomaly_sweep(db, AS_OF, rules=[ProfitAnomalyRule(window=3)])
        run_anomaly_sweep(db, AS_OF, rules=[ProfitAnomalyRule(window=3)])
        assert db.query(Alert).count() == 1

    def test_rows_after_as_of_are_ignored(self, db):
        vehicle = self.seed_losses(db)
        add_daily(db, vehicle, AS_OF + timedelta(days=1), actual_balance="500")

        run_anomaly_sweep(db, AS_OF, rules=[ProfitAnomalyRule(window=3)])
        assert db.query(Alert).count() == 1

    def test_failing_rule_does_not_hide_others(self, db):
        vehicle = self.seed_losses(db)
        created, failures = check_vehicle(db, vehicle, AS_OF, rules=[BrokenRule(), ProfitAnomalyRule(window=3)])

        assert len(created) == 1
        assert failures == ["broken: boom"]

    def test_failing_rule_recorded_on_batch(self, db):
        self.seed_losses(db)
        result = run_anomaly_sweep(db, AS_OF, rules=[BrokenRule()])
        assert result.failed == 1
        assert "boom" in result.errors[0].message

    def test_no_active_vehicles_raises(self, db):
        with pytest.raises(NoActiveVehiclesError):
            run_anomaly_sweep(db, AS_OF)
