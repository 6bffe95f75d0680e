"""
Analysis baselines: per-vehicle mean / standard deviation of key daily
indicators, recalculated by the monthly job.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, UniqueConstraint
from fleet_settlement.database import Base


class AnalysisBaseline(Base):
    __tablename__ = "analysis_baseline"
    __table_args__ = (
        UniqueConstraint("calculation_date", "machinery_type", "vehicle_no", "indicator_type",
                         name="uq_analysis_baseline_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    calculation_date = Column(Date, nullable=False, index=True)
    machinery_type = Column(String(30), nullable=False)
    vehicle_no = Column(String(50), nullable=False, index=True)
    indicator_type = Column(String(30), nullable=False)      # oil_per_truck | actual_balance | truck_count
    mean_value = Column(Numeric(14, 4), default=0, nullable=False)
    std_value = Column(Numeric(14, 4), default=0, nullable=False)
    sample_size = Column(Integer, default=0, nullable=False)
    window_start = Column(Date)
    window_end = Column(Date)
    created_at = Column(DateTime)
