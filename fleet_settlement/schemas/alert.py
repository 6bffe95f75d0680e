# fleet_settlement/schemas/alert.py
from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional


class AlertOut(BaseModel):
    id: int
    alert_type: str
    machinery_type: str
    vehicle_no: str
    content: Optional[str]
    severity: str
    related_date: date
    payload: Optional[dict]
    status: str
    handle_remark: Optional[str]
    handle_time: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class AlertHandle(BaseModel):
    handle_remark: Optional[str] = None
