# fleet_settlement/schemas/task.py
from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional


class TaskStatusOut(BaseModel):
    name: str
    last_run: Optional[datetime]
    next_run: Optional[datetime]
    running: bool
    status: str
    last_error: Optional[str]

    class Config:
        from_attributes = True


class VehicleFailureOut(BaseModel):
    machinery_type: str
    vehicle_no: str
    message: str

    class Config:
        from_attributes = True


class BatchResultOut(BaseModel):
    total: int
    success: int
    failed: int
    skipped: int
    errors: list[VehicleFailureOut]

    class Config:
        from_attributes = True


class TriggerRequest(BaseModel):
    run_date: Optional[date] = None
