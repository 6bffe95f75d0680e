# fleet_settlement/routers/alerts.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import datetime
from fleet_settlement.database import get_db
from fleet_settlement.models.alert import Alert, AlertStatus
from fleet_settlement.schemas.alert import AlertOut, AlertHandle
from typing import Optional

router = APIRouter()


@router.get("/alerts", response_model=list[AlertOut], summary="Anomaly alerts, filterable by type and status")
def get_all_alerts(
    alert_type: Optional[str] = None,
    status: Optional[str] = None,
    vehicle_no: Optional[str] = None,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """Newest first. Filter by alert_type (fuel, profit, truck_count, refuel_anomaly) or status."""
    q = db.query(Alert)
    if alert_type:
        q = q.filter(Alert.alert_type == alert_type)
    if status:
        q = q.filter(Alert.status == status)
    if vehicle_no:
        q = q.filter(Alert.vehicle_no == vehicle_no)
    return q.order_by(Alert.created_at.desc()).limit(limit).all()


@router.put("/alerts/{alert_id}/handle", response_model=AlertOut, summary="Mark an alert as handled")
def handle_alert(alert_id: int, body: AlertHandle, db: Session = Depends(get_db)):
    alert = db.query(Alert).filter(Alert.id == alert_id).first()
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    alert.status = AlertStatus.HANDLED.value
    alert.handle_remark = body.handle_remark
    alert.handle_time = datetime.utcnow()
    db.commit()
    return alert
