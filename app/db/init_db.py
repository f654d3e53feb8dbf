# app/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import engine
from app.db.base import Base
from app.models.permission import Permission
from app.models.pickup import Shift
from app.services.rbac_helpers import (
    ensure_admin_has_all_permissions,
    ensure_staff_baseline,
    ensure_bootstrap_admin,
)

logger = logging.getLogger(__name__)

CRUD = ["view", "create", "update", "delete"]

MODULES = [
    # -------- CORE / ADMIN ----------
    ("users", CRUD),
    ("roles", CRUD),
    ("permissions", CRUD),

    # -------- REGISTRY ----------
    ("patients", CRUD),
    ("medications", CRUD),
    ("pharmaceutical_forms", CRUD),
    ("medication_types", CRUD),
    ("lots", CRUD),

    # -------- STOCK MOVEMENTS ----------
    ("withdrawals", CRUD),
    ("solicitations", ["view", "create", "approve", "conclude", "refuse", "delete"]),

    # -------- HOME PICKUPS ----------
    ("pickups", ["view", "update", "visit", "delete"]),
]

DEFAULT_SHIFTS = ["Morning", "Afternoon"]


def seed_permissions(db: Session) -> int:
    """
    Seed ONLY missing permission codes; safe to run multiple times.
    """
    existing = {c for (c, ) in db.query(Permission.code).all()}
    added = 0
    for module, actions in MODULES:
        for action in actions:
            code = f"{module}.{action}"
            if code in existing:
                continue
            existing.add(code)
            label = f"{module.replace('_', ' ').title()} - {action.title()}"
            db.add(Permission(code=code, label=label, module=module))
            added += 1
    db.flush()
    return added


def seed_shifts(db: Session) -> None:
    if db.query(Shift.id).first():
        return
    for desc in DEFAULT_SHIFTS:
        db.add(Shift(description=desc))
    db.flush()


def seed_all(db: Session) -> None:
    """Everything a fresh install needs. Does NOT commit."""
    added = seed_permissions(db)
    ensure_admin_has_all_permissions(db)
    ensure_staff_baseline(db)
    seed_shifts(db)
    admin = ensure_bootstrap_admin(
        db,
        name=settings.ADMIN_NAME,
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
    )
    logger.info("seed done: %s new permissions, bootstrap admin=%s", added, getattr(admin, "email", None))


def run(fresh: bool = False) -> None:
    if fresh:
        logger.warning("Dropping ALL tables (dev only) ...")
        Base.metadata.drop_all(bind=engine)

    logger.info("Creating all missing tables ...")
    Base.metadata.create_all(bind=engine)
    logger.info("Existing tables: %s", sorted(inspect(engine).get_table_names()))

    try:
        with Session(engine) as db:
            seed_all(db)
            db.commit()
    except SQLAlchemyError:
        logger.exception("Seeding failed")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    parser = argparse.ArgumentParser(
        description="Initialize DB (create tables, seed permissions, roles, shifts, admin).")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (DEV ONLY).",
    )
    args = parser.parse_args()
    run(fresh=args.fresh)
