# fleet_settlement/services/lease_service.py
"""
Named run leases in the task_lease table, so two scheduler processes
sharing one database never run the same job for the same day at once.
"""

import os
import socket
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fleet_settlement.models.task_lease import TaskLease
from fleet_settlement.utils.logger import get_logger

logger = get_logger(__name__)


def default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def acquire_lease(db: Session, name: str, holder: str, ttl_seconds: int) -> bool:
    """Take the lease if it is free, expired, or already ours. Commits on success."""
    now = datetime.utcnow()
    held_until = now + timedelta(seconds=ttl_seconds)

    lease = db.get(TaskLease, name)
    if lease is None:
        db.add(TaskLease(name=name, holder=holder, held_until=held_until))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(f"[LEASE] {name} taken by another process")
            return False
        return True

    if lease.holder != holder and lease.held_until > now:
        logger.info(f"[LEASE] {name} held by {lease.holder} until {lease.held_until}")
        return False

    lease.holder = holder
    lease.held_until = held_until
    db.commit()
    return True


def release_lease(db: Session, name: str, holder: str):
    lease = db.get(TaskLease, name)
    if lease is not None and lease.holder == holder:
        db.delete(lease)
        db.commit()
