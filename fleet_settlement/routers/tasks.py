# fleet_settlement/routers/tasks.py
"""Scheduler status and manual job triggers."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from fleet_settlement.schemas.task import TaskStatusOut, BatchResultOut, TriggerRequest
from fleet_settlement.services.errors import NoActiveVehiclesError
from fleet_settlement.services.scheduler import TaskScheduler

router = APIRouter()


def get_scheduler(request: Request) -> TaskScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not available")
    return scheduler


@router.get("/tasks/status", response_model=list[TaskStatusOut], summary="Scheduled job status")
def task_status(scheduler: TaskScheduler = Depends(get_scheduler)):
    return scheduler.get_task_status()


@router.post("/tasks/daily-settlement/trigger", response_model=BatchResultOut,
             summary="Re-run daily settlement generation for a date")
async def trigger_daily_settlement(record_date: date, scheduler: TaskScheduler = Depends(get_scheduler)):
    try:
        result = await scheduler.trigger_daily_settlement(record_date)
    except NoActiveVehiclesError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if result is None:
        raise HTTPException(status_code=409, detail="Daily settlement is already running")
    return result


@router.post("/tasks/{name}/trigger", summary="Run any scheduled job now")
async def trigger_task(name: str, body: TriggerRequest, scheduler: TaskScheduler = Depends(get_scheduler)):
    if name not in scheduler.job_names:
        raise HTTPException(status_code=404, detail=f"Unknown task '{name}'")
    try:
        result = await scheduler.trigger(name, body.run_date)
    except NoActiveVehiclesError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if result is None:
        return {"task": name, "status": "skipped"}
    return {"task": name, "status": "done", "result": BatchResultOut.model_validate(result)}
