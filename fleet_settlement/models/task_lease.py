"""
Task leases: a row per named job run currently held by some scheduler
process. A lease whose held_until has passed is free to take over.
"""

from sqlalchemy import Column, String, DateTime
from fleet_settlement.database import Base


class TaskLease(Base):
    __tablename__ = "task_lease"

    name = Column(String(100), primary_key=True)
    holder = Column(String(100), nullable=False)
    held_until = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<TaskLease {self.name} holder={self.holder} until={self.held_until}>"
