# FILE: app/services/stock.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.models.lot import Lot
from app.services.errors import InvalidInput, NotFound, StateConflict
from app.utils.timezone import today_local

logger = logging.getLogger(__name__)

T = TypeVar("T")


def ensure_positive_quantity(quantity) -> int:
    if quantity is None:
        raise InvalidInput("Quantity is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput("Quantity must be an integer")
    if quantity <= 0:
        raise InvalidInput("Quantity must be greater than zero")
    return quantity


def get_or_404(db: Session, model: Type[T], obj_id: Optional[int], label: str) -> T:
    if not obj_id:
        raise InvalidInput(f"{label} id is required")
    obj = db.get(model, obj_id)
    if not obj:
        raise NotFound(f"{label} not found")
    return obj


def lock_lot(db: Session, lot_id: Optional[int]) -> Lot:
    """Reads the lot row with SELECT ... FOR UPDATE (held until commit)."""
    if not lot_id:
        raise InvalidInput("Lot id is required")
    lot = (
        db.query(Lot)
        .filter(Lot.id == lot_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not lot:
        raise NotFound("Lot not found")
    return lot


def lock_lots(db: Session, *lot_ids: int) -> dict[int, Lot]:
    """Locks several lots in ascending id order so two movers never deadlock."""
    return {lid: lock_lot(db, lid) for lid in sorted(set(lot_ids))}


def ensure_not_expired(lot: Lot, today: Optional[date] = None) -> None:
    # day granularity: a lot expiring today is still usable
    today = today or today_local()
    if lot.expiry_date < today:
        raise StateConflict(
            f"Lot {lot.batch_number} expired on {lot.expiry_date.strftime('%d/%m/%Y')}"
        )


def ensure_available(lot: Lot, needed: int, held: int = 0) -> None:
    """
    `held` is what the record being edited already took from this lot,
    so the pool is lot.quantity + held.
    """
    pool = int(lot.quantity or 0) + int(held or 0)
    if pool < needed:
        raise StateConflict(
            f"Insufficient stock in lot {lot.batch_number}. Available {pool}, requested {needed}."
        )


def adjust_lot_qty(*, lot: Lot, delta: int) -> None:
    """
    Positive delta = stock back in, negative delta = stock out.
    Callers validate first; this only protects against negative stock.
    """
    new_qty = int(lot.quantity or 0) + int(delta or 0)
    if new_qty < 0:
        raise StateConflict(f"Negative stock for lot {lot.id}")
    lot.quantity = new_qty
    logger.debug("lot qty adjusted lot_id=%s delta=%s new_qty=%s", lot.id, delta, new_qty)
