# fleet_settlement/services/scheduler.py
"""
In-process job scheduler, started from the FastAPI startup hook.

One asyncio timer loop per job sleeps until the job's next firing, then hands
the run to a worker thread with a fresh DB session (the services are
synchronous SQLAlchemy code). Jobs:

  generate_daily_settlements   daily   DAILY_SETTLEMENT_HOUR   yesterday
  check_abnormal_data          daily   ANOMALY_CHECK_HOUR      yesterday
  calculate_fuel_balances      daily   FUEL_BALANCE_HOUR       yesterday
  monthly_close                monthly MONTHLY_JOB_DAY         last month's rollups,
                                                               this month's attendance,
                                                               baselines

A job that is still running when it fires again (or is triggered manually)
is skipped with a warning, never queued. Daily settlement generation also
holds a task_lease row for the run date, so a second process sharing the
database skips it too.
"""

import asyncio
import calendar
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session
from fleet_settlement.config import settings
from fleet_settlement.database import SessionLocal
from fleet_settlement.services import lease_service
from fleet_settlement.services.anomaly_service import run_anomaly_sweep
from fleet_settlement.services.attendance_service import generate_attendance
from fleet_settlement.services.baseline_service import calculate_baselines
from fleet_settlement.services.calculation_service import generate_daily_settlements
from fleet_settlement.services.fuel_balance_service import run_fuel_balance_sweep
from fleet_settlement.services.monthly_service import generate_monthly_settlements, previous_month
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)

DAILY_SETTLEMENT = "generate_daily_settlements"
MONTHLY_CLOSE = "monthly_close"
ANOMALY_CHECK = "check_abnormal_data"
FUEL_BALANCE = "calculate_fuel_balances"


@dataclass
class TaskStatus:
    name: str
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    running: bool = False
    status: str = "idle"             # idle | running | error
    last_error: Optional[str] = None


class DailyTrigger:
    def __init__(self, hour: int, minute: int = 0):
        self.hour = hour
        self.minute = minute

    def next_fire(self, after: datetime) -> datetime:
        candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate


class MonthlyTrigger:
    """Fires on `day` of every month; months shorter than `day` fire on their last day."""

    def __init__(self, day: int, hour: int, minute: int = 0):
        self.day = day
        self.hour = hour
        self.minute = minute

    def next_fire(self, after: datetime) -> datetime:
        year, month = after.year, after.month
        while True:
            day = min(self.day, calendar.monthrange(year, month)[1])
            candidate = after.replace(year=year, month=month, day=day, hour=self.hour,
                                      minute=self.minute, second=0, microsecond=0)
            if candidate > after:
                return candidate
            month += 1
            if month > 12:
                year, month = year + 1, 1


@dataclass
class ScheduledJob:
    trigger: object
    func: Callable[..., object]          # (db, run_date, **options)
    days_back: int      # run date = firing date - days_back


class TaskScheduler:
    """Timer loops, the running-job guard and the status table for one process."""

    def __init__(self, session_factory=SessionLocal, now=datetime.now, holder: Optional[str] = None):
        self._session_factory = session_factory
        self._now = now
        self._holder = holder or lease_service.default_holder()
        self._jobs = {
            DAILY_SETTLEMENT: ScheduledJob(DailyTrigger(settings.DAILY_SETTLEMENT_HOUR),
                                           self._daily_settlement_job, days_back=1),
            MONTHLY_CLOSE: ScheduledJob(MonthlyTrigger(settings.MONTHLY_JOB_DAY, settings.MONTHLY_JOB_HOUR),
                                        self._monthly_close_job, days_back=0),
            ANOMALY_CHECK: ScheduledJob(DailyTrigger(settings.ANOMALY_CHECK_HOUR),
                                        self._anomaly_job, days_back=1),
            FUEL_BALANCE: ScheduledJob(DailyTrigger(settings.FUEL_BALANCE_HOUR),
                                       self._fuel_balance_job, days_back=1),
        }
        self._status = {name: TaskStatus(name=name) for name in self._jobs}
        self._loops: list[asyncio.Task] = []
        self._inflight: set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    # ── Lifecycle ────────────────────────────────────────────────────────────
    async def start(self):
        if self._running:
            logger.warning("[SCHEDULER] already started")
            return
        self._running = True
        self._loops = [asyncio.create_task(self._timer_loop(name)) for name in self._jobs]
        logger.info(f"[SCHEDULER] started {len(self._loops)} job(s): {', '.join(self._jobs)}")

    def stop_all(self):
        """Cancel future firings. Runs already in a worker thread finish on their own."""
        self._running = False
        for task in self._loops:
            task.cancel()
        for status in self._status.values():
            status.next_run = None
        logger.info("[SCHEDULER] timers stopped")

    async def shutdown(self):
        """stop_all() and wait for in-flight runs to complete."""
        loops = self._loops
        self.stop_all()
        await asyncio.gather(*loops, return_exceptions=True)
        self._loops = []
        if self._inflight:
            logger.info(f"[SCHEDULER] waiting for {len(self._inflight)} running job(s)")
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("[SCHEDULER] shut down")

    async def _timer_loop(self, name: str):
        job = self._jobs[name]
        while self._running:
            try:
                next_run = job.trigger.next_fire(self._now())
                self._status[name].next_run = next_run
                delay = max((next_run - self._now()).total_seconds(), 0)
                await asyncio.sleep(delay)
                if not self._running:
                    break
                run_date = next_run.date() - timedelta(days=job.days_back)
                run = asyncio.create_task(self._run_task(name, run_date))
                self._inflight.add(run)
                run.add_done_callback(self._inflight.discard)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[SCHEDULER] timer for {name} failed: {e}", exc_info=True)
                await asyncio.sleep(5)

    # ── Running ──────────────────────────────────────────────────────────────
    async def _run_task(self, name: str, run_date: date, raise_errors: bool = False,
                        options: Optional[dict] = None):
        """Run one job in a worker thread. Returns its result, or None when skipped or failed."""
        status = self._status[name]
        if status.running:
            logger.warning(f"[SCHEDULER] {name} is still running, skipping run for {run_date}")
            return None

        status.running = True
        status.status = "running"
        status.last_run = self._now()
        logger.info(f"[SCHEDULER] {name} started for {run_date}")
        try:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(None, self._run_in_session, name, run_date, options or {})
        except Exception as e:
            status.status = "error"
            status.last_error = str(e)
            logger.error(f"[SCHEDULER] {name} for {run_date} failed: {e}", exc_info=True)
            if raise_errors:
                raise
            return None
        finally:
            status.running = False

        status.status = "idle"
        status.last_error = None
        logger.info(f"[SCHEDULER] {name} finished for {run_date}")
        return result

    def _run_in_session(self, name: str, run_date: date, options: dict):
        db = self._session_factory()
        try:
            return self._jobs[name].func(db, run_date, **options)
        finally:
            db.close()

    async def trigger(self, name: str, run_date: Optional[date] = None, **options):
        """Manual run of any job. Errors propagate to the caller; options go to the job function."""
        if name not in self._jobs:
            raise KeyError(name)
        if run_date is None:
            run_date = self._now().date() - timedelta(days=self._jobs[name].days_back)
        return await self._run_task(name, run_date, raise_errors=True, options=options)

    async def trigger_daily_settlement(self, record_date: date, machinery_type: Optional[str] = None):
        """Manual re-run of daily settlement. Returns the BatchResult, or None when skipped."""
        return await self.trigger(DAILY_SETTLEMENT, record_date, machinery_type=machinery_type)

    def get_task_status(self) -> list[TaskStatus]:
        return [replace(status) for status in self._status.values()]

    # ── Jobs (worker thread) ─────────────────────────────────────────────────
    def _daily_settlement_job(self, db: Session, run_date: date, machinery_type: Optional[str] = None):
        lease = f"daily_settlement:{run_date.isoformat()}"
        if not lease_service.acquire_lease(db, lease, self._holder, settings.LEASE_TTL_SECONDS):
            logger.warning(f"[SCHEDULER] {lease} is held by another process, skipped")
            return None
        try:
            return generate_daily_settlements(db, run_date, machinery_type)
        finally:
            db.rollback()
            lease_service.release_lease(db, lease, self._holder)

    def _monthly_close_job(self, db: Session, run_date: date):
        steps = [
            ("monthly settlements", lambda: generate_monthly_settlements(db, previous_month(run_date),
                                                                         today=run_date)),
            ("attendance", lambda: generate_attendance(db, run_date.strftime("%Y-%m"))),
            ("baselines", lambda: calculate_baselines(db, run_date)),
        ]
        results, failed = {}, []
        for label, step in steps:
            try:
                results[label] = step()
            except Exception as e:
                db.rollback()
                failed.append(f"{label}: {e}")
                logger.error(f"[SCHEDULER] monthly close step '{label}' failed: {e}", exc_info=True)
        if failed:
            raise RuntimeError("; ".join(failed))
        return results["monthly settlements"]

    def _anomaly_job(self, db: Session, run_date: date):
        return run_anomaly_sweep(db, run_date)

    def _fuel_balance_job(self, db: Session, run_date: date):
        return run_fuel_balance_sweep(db, run_date)
