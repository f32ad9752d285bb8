"""FastAPI dependencies: DB session and the clock.

Overriding get_today / get_now in tests pins "today" for every route.
"""
from datetime import date, datetime
from typing import Generator, Optional

from fastapi import Header
from sqlalchemy.orm import Session

from clinicrx.db.session import SessionLocal
from clinicrx.services.date_utils import system_now, system_today


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_today() -> date:
    return system_today()


def get_now() -> datetime:
    return system_now()


def get_actor(x_actor: Optional[str] = Header(None)) -> Optional[str]:
    """Who is acting, for the audit log. Authentication happens upstream."""
    return x_actor
