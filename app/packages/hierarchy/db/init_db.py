"""Database bootstrapping utilities."""

from __future__ import annotations

import logging

from app.packages.hierarchy.core.config import get_settings
from app.packages.hierarchy.core.constants import DEFAULT_DEPARTMENTS
from app.packages.hierarchy.crud.departments import department_crud
from app.packages.hierarchy.db import session as db_session
from app.packages.hierarchy.models.base import Base
from app.packages.hierarchy.models.department import Department  # noqa: F401 - ensure table creation
from app.packages.hierarchy.models.employee import Employee  # noqa: F401 - ensure table creation

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables if they do not exist and seed the default departments."""
    Base.metadata.create_all(bind=db_session.engine)

    if not get_settings().seed_default_departments:
        return

    session = db_session.SessionLocal()
    try:
        _seed_default_departments(session)
    except Exception:  # pragma: no cover - initialization failures should surface
        session.rollback()
        logger.exception("Failed to seed default departments during database initialization")
        raise
    finally:
        session.close()


def _seed_default_departments(db) -> None:
    """Create the default company tree through the engine when the table is empty."""
    from app.packages.hierarchy.services.department_service import department_service

    if department_crud.query(db).first() is not None:
        return

    for name, code, description, parent_code, sort_order in DEFAULT_DEPARTMENTS:
        parent_id = None
        if parent_code is not None:
            parent = department_crud.get_by_code(db, parent_code)
            parent_id = parent.id if parent is not None else None
        department_service.create(
            db,
            name=name,
            code=code,
            description=description,
            parent_id=parent_id,
            sort_order=sort_order,
        )
    logger.info("Seeded %s default departments", len(DEFAULT_DEPARTMENTS))
