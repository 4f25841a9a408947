"""Utility script to create the database schema and seed the default role."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .session import Base, get_engine, get_session
from . import models  # noqa: F401  # ensure models are imported for metadata

logger = logging.getLogger(__name__)

DEFAULT_ROLES = ("USER",)


def seed_roles() -> None:
    with get_session() as session:
        existing = set(session.execute(select(models.Role.name)).scalars().all())
        for name in DEFAULT_ROLES:
            if name not in existing:
                session.add(models.Role(name=name))
                logger.info("Seeded role %s", name)
        session.commit()


def create_all() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    seed_roles()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        create_all()
        print("Database tables created successfully.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
