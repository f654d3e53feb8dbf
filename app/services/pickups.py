# FILE: app/services/pickups.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from app.models.pickup import PickupSchedule, Shift
from app.models.user import User
from app.services.errors import IntegrityConflict, InvalidInput, NotFound, StateConflict
from app.services.stock import get_or_404

logger = logging.getLogger(__name__)

MAX_PHOTOS = 10
REQUIRED = ("name", "address", "number", "district", "postal_code", "phone")


def _clean_text(data: dict) -> dict:
    return {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}


# -------------------------
# Shifts
# -------------------------
def list_shifts(db: Session):
    return db.query(Shift).order_by(Shift.id.asc()).all()


def create_shift(db: Session, description: str) -> Shift:
    desc = (description or "").strip()
    if not desc:
        raise InvalidInput("Description is required")
    if db.query(Shift.id).filter(Shift.description == desc).first():
        raise InvalidInput("Shift already exists")
    s = Shift(description=desc)
    db.add(s)
    db.flush()
    return s


def delete_shift(db: Session, shift_id: int) -> None:
    s = get_or_404(db, Shift, shift_id, "Shift")
    if db.query(PickupSchedule.id).filter(PickupSchedule.shift_id == s.id).first():
        raise IntegrityConflict("Shift is used by pickup schedules and cannot be deleted")
    db.delete(s)
    db.flush()


# -------------------------
# Pickup schedules
# -------------------------
def list_pickups(db: Session, *, visited: Optional[bool] = None):
    q = db.query(PickupSchedule).options(selectinload(PickupSchedule.shift))
    if visited is True:
        q = q.filter(PickupSchedule.visited_by_id.isnot(None))
    elif visited is False:
        q = q.filter(PickupSchedule.visited_by_id.is_(None))
    return q.order_by(PickupSchedule.created_at.desc(), PickupSchedule.id.desc()).all()


def get_pickup(db: Session, pickup_id: int) -> PickupSchedule:
    p = (
        db.query(PickupSchedule)
        .options(selectinload(PickupSchedule.shift))
        .filter(PickupSchedule.id == pickup_id)
        .first()
    )
    if not p:
        raise NotFound("Pickup schedule not found")
    return p


def create_pickup(
    db: Session,
    data: dict,
    *,
    photos: Optional[List[str]] = None,
) -> PickupSchedule:
    data = _clean_text(data)
    missing = [k for k in REQUIRED if not data.get(k)]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    visit_date: Optional[date] = data.get("visit_date")
    if not visit_date:
        raise InvalidInput("Visit date is required")

    get_or_404(db, Shift, data.get("shift_id"), "Shift")

    photos = list(photos or [])
    if len(photos) > MAX_PHOTOS:
        raise InvalidInput(f"At most {MAX_PHOTOS} photos are allowed")

    p = PickupSchedule(
        **{k: data[k] for k in REQUIRED},
        visit_date=visit_date,
        shift_id=data["shift_id"],
        maps_url=data.get("maps_url") or None,
        photos=photos,
    )
    db.add(p)
    db.flush()
    logger.info("pickup scheduled id=%s visit_date=%s shift_id=%s photos=%s", p.id, visit_date, p.shift_id, len(photos))
    return p


def update_pickup(db: Session, pickup_id: int, data: dict) -> PickupSchedule:
    p = get_pickup(db, pickup_id)
    data = _clean_text({k: v for k, v in data.items() if v is not None})

    for k in REQUIRED:
        if k in data and not data[k]:
            raise InvalidInput(f"{k} cannot be empty")
    if "shift_id" in data:
        get_or_404(db, Shift, data["shift_id"], "Shift")

    for k, v in data.items():
        setattr(p, k, v)
    db.flush()
    return p


def mark_visited(db: Session, pickup_id: int, user_id: int) -> PickupSchedule:
    p = (
        db.query(PickupSchedule)
        .filter(PickupSchedule.id == pickup_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not p:
        raise NotFound("Pickup schedule not found")
    if p.visited_by_id is not None:
        raise StateConflict("Pickup schedule was already visited")
    get_or_404(db, User, user_id, "User")

    p.visited_by_id = user_id
    p.visited_at = datetime.utcnow()
    db.flush()
    logger.info("pickup visited id=%s by_user=%s", p.id, user_id)
    return p


def delete_pickup(db: Session, pickup_id: int) -> List[str]:
    """Returns the photo references so the caller can remove the files after commit."""
    p = get_pickup(db, pickup_id)
    photos = list(p.photos or [])
    db.delete(p)
    db.flush()
    logger.info("pickup deleted id=%s", pickup_id)
    return photos
