# fleet_settlement/services/persistence.py
"""
Insert-or-update by natural key. Used for every core-owned table
(daily / monthly settlements, baselines), never a blind insert.
"""

from sqlalchemy.orm import Session


def find_by_key(db: Session, model, key: dict):
    q = db.query(model)
    for column, value in key.items():
        q = q.filter(getattr(model, column) == value)
    return q.first()


def upsert_by_key(db: Session, model, key: dict, values: dict):
    """
    Update the row matching `key` in place, or insert a new one.
    Returns (row, created). Does not commit; the caller owns the unit of work.
    """
    row = find_by_key(db, model, key)
    created = row is None
    if created:
        row = model(**key)
        db.add(row)
    for column, value in values.items():
        setattr(row, column, value)
    return row, created
