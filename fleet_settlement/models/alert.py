"""
Alerts table: rule-based anomaly alerts (fuel, profit, truck count, refuel).
Written by anomaly_service and fuel_balance_service through alert_service;
status/handle_remark are updated by the triage screen.
"""

import enum

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, JSON
from fleet_settlement.database import Base


class AlertType(str, enum.Enum):
    FUEL = "fuel"
    PROFIT = "profit"
    TRUCK_COUNT = "truck_count"
    REFUEL = "refuel_anomaly"


class AlertSeverity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"


class AlertStatus(str, enum.Enum):
    UNHANDLED = "unhandled"
    HANDLED = "handled"


class Alert(Base):
    __tablename__ = "alert"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_type = Column(String(30), nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False, index=True)
    content = Column(Text)
    severity = Column(String(10), nullable=False)
    related_date = Column(Date, nullable=False, index=True)
    payload = Column(JSON)                      # evidence window + computed metric
    status = Column(String(20), default=AlertStatus.UNHANDLED.value, nullable=False, index=True)
    handle_remark = Column(Text)
    handle_time = Column(DateTime)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Alert {self.id} type={self.alert_type} {self.machinery_type}-{self.vehicle_no} status={self.status}>"
