"""
SQL utilities shared by the routers.

- scalar_int(): COUNT results may come back as int or as a 1-tuple/Row
- commit_or_conflict(): commit and map unique-constraint violations to 409
"""

from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int or 1-tuple/Row."""
    try:
        return int(x[0])
    except (TypeError, IndexError, KeyError):
        return int(x)


def is_unique_violation(exc: Exception) -> bool:
    message = str(exc).lower()
    return "unique constraint" in message or "duplicate key" in message


def commit_or_conflict(session: Session, detail: str, instance: Any = None) -> None:
    """
    Commit the session; refresh `instance` afterwards when given.

    Raises:
        HTTPException 409: a unique constraint was violated
        HTTPException 400: any other integrity error (e.g. missing foreign key)
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if is_unique_violation(e):
            raise HTTPException(status_code=409, detail=detail)
        raise HTTPException(status_code=400, detail=str(e.orig))
    if instance is not None:
        session.refresh(instance)
