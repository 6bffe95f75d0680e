"""
Dated price tables. Every row takes effect on effective_date and stays in
force until a later row for the same key supersedes it.
"""

from sqlalchemy import Column, Integer, String, Date, Numeric
from fleet_settlement.database import Base


class ExcavatorCoefficient(Base):
    __tablename__ = "excavator_coefficient"

    id = Column(Integer, primary_key=True, autoincrement=True)
    effective_date = Column(Date, nullable=False, index=True)
    coefficient = Column(Numeric(10, 4), nullable=False)   # income per unit of capacity moved


class ShiftPrice(Base):
    __tablename__ = "shift_price"

    id = Column(Integer, primary_key=True, autoincrement=True)
    machinery_type = Column(String(30), nullable=False, index=True)
    effective_date = Column(Date, nullable=False, index=True)
    price_per_hour = Column(Numeric(10, 2), nullable=False)


class MealPrice(Base):
    __tablename__ = "meal_price"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meal_type = Column(String(30), nullable=False, index=True)   # matches attendance meal_status
    effective_date = Column(Date, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)


class OilPrice(Base):
    __tablename__ = "oil_price"

    id = Column(Integer, primary_key=True, autoincrement=True)
    oil_type = Column(String(30), nullable=False, index=True)
    effective_date = Column(Date, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)


class DistancePrice(Base):
    __tablename__ = "distance_price"

    id = Column(Integer, primary_key=True, autoincrement=True)
    load_type_id = Column(Integer, nullable=False, index=True)
    effective_date = Column(Date, nullable=False, index=True)
    base_distance = Column(Numeric(10, 2), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    extra_distance = Column(Numeric(10, 2), nullable=False)   # size of each extra step
    extra_price = Column(Numeric(10, 2), nullable=False)
