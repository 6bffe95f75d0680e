# fleet_settlement/services/alert_service.py
"""
Shared alert creation service.
Used by anomaly_service and fuel_balance_service.

Re-running a sweep for the same day must not pile up copies of the same
alert: an alert is suppressed when one already exists for the same
(alert_type, machinery_type, vehicle_no, related_date), or, with
ALERT_COOLDOWN_DAYS > 0, when an unhandled alert of the same type for the
vehicle falls within the cool-down window.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session
from fleet_settlement.config import settings
from fleet_settlement.models.alert import Alert, AlertStatus
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


def find_recent_alert(db: Session, alert_type: str, machinery_type: str, vehicle_no: str,
                      related_date: date) -> Optional[Alert]:
    same_key = db.query(Alert).filter(
        Alert.alert_type == alert_type,
        Alert.machinery_type == machinery_type,
        Alert.vehicle_no == vehicle_no,
        Alert.related_date == related_date,
    ).first()
    if same_key or settings.ALERT_COOLDOWN_DAYS <= 0:
        return same_key

    cooldown = timedelta(days=settings.ALERT_COOLDOWN_DAYS)
    return db.query(Alert).filter(
        Alert.alert_type == alert_type,
        Alert.machinery_type == machinery_type,
        Alert.vehicle_no == vehicle_no,
        Alert.status == AlertStatus.UNHANDLED.value,
        Alert.related_date >= related_date - cooldown,
        Alert.related_date <= related_date,
    ).first()


def create_alert(db: Session, alert_type: str, machinery_type: str, vehicle_no: str,
                 content: str, severity: str, related_date: date, payload: dict,
                 commit: bool = True) -> Optional[Alert]:
    """
    Create and persist an alert record; returns None when suppressed.
    With commit=False the alert is only flushed and the caller commits it
    together with its own rows.
    """
    recent = find_recent_alert(db, alert_type, machinery_type, vehicle_no, related_date)
    if recent:
        logger.info(f"[ALERT][{alert_type.upper()}] {machinery_type}-{vehicle_no} {related_date} "
                    f"suppressed, alert #{recent.id} already open")
        return None

    alert = Alert(
        alert_type=alert_type,
        machinery_type=machinery_type,
        vehicle_no=vehicle_no,
        content=content,
        severity=severity,
        related_date=related_date,
        payload=payload,
        status=AlertStatus.UNHANDLED.value,
        created_at=datetime.utcnow(),
    )
    db.add(alert)
    if commit:
        db.commit()
    else:
        db.flush()
    logger.warning(f"[ALERT][{alert_type.upper()}] {machinery_type}-{vehicle_no}: {content}")
    return alert
