"""Shared existence and dependency checks used by the services."""

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from branch_finance.exceptions import NotFoundError


def get_or_404(db: Session, model, key, label: str):
    """Load a row by primary key or raise NotFoundError('<label> not found.')."""
    instance = db.get(model, key) if key is not None else None
    if instance is None:
        raise NotFoundError(f"{label} not found.")
    return instance


def count_rows(db: Session, column, value) -> int:
    return db.execute(
        select(func.count()).select_from(column.class_).where(column == value)
    ).scalar_one()


def dependents(db: Session, checks) -> list[str]:
    """
    Names of the dependent tables that still reference a row.

    checks is an iterable of (label, column, value).
    """
    return [
        label for label, column, value in checks
        if count_rows(db, column, value) > 0
    ]


def paginate(db: Session, stmt, limit: int, offset: int):
    """Run a select with limit/offset and return (rows, total)."""
    total = db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()
    rows = db.execute(stmt.limit(limit).offset(offset)).scalars().all()
    return rows, total
