# FILE: app/services/withdrawals.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.models.patient import Patient
from app.models.solicitation import Solicitation
from app.models.user import User
from app.models.withdrawal import Withdrawal
from app.services.errors import IntegrityConflict, NotFound
from app.services.stock import (
    adjust_lot_qty,
    ensure_available,
    ensure_not_expired,
    ensure_positive_quantity,
    get_or_404,
    lock_lot,
    lock_lots,
)

logger = logging.getLogger(__name__)


def _load_opts():
    return (
        selectinload(Withdrawal.lot),
        selectinload(Withdrawal.patient),
        selectinload(Withdrawal.user),
    )


def list_withdrawals(db: Session, *, patient_id: Optional[int] = None, lot_id: Optional[int] = None):
    q = db.query(Withdrawal).options(*_load_opts())
    if patient_id:
        q = q.filter(Withdrawal.patient_id == patient_id)
    if lot_id:
        q = q.filter(Withdrawal.lot_id == lot_id)
    return q.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc()).all()


def get_withdrawal(db: Session, withdrawal_id: int) -> Withdrawal:
    w = (
        db.query(Withdrawal)
        .options(*_load_opts())
        .filter(Withdrawal.id == withdrawal_id)
        .first()
    )
    if not w:
        raise NotFound("Withdrawal not found")
    return w


def create_withdrawal(
    db: Session,
    *,
    quantity,
    lot_id: Optional[int],
    patient_id: Optional[int],
    user_id: Optional[int],
) -> Withdrawal:
    """
    Debits `quantity` from the lot and records who took it.
    Must run inside one transaction; the lot row stays locked until commit.
    """
    qty = ensure_positive_quantity(quantity)
    get_or_404(db, User, user_id, "User")
    get_or_404(db, Patient, patient_id, "Patient")

    lot = lock_lot(db, lot_id)
    ensure_not_expired(lot)
    ensure_available(lot, qty)

    w = Withdrawal(quantity=qty, lot_id=lot.id, patient_id=patient_id, user_id=user_id)
    db.add(w)
    adjust_lot_qty(lot=lot, delta=-qty)
    db.flush()

    logger.info(
        "withdrawal created id=%s lot_id=%s patient_id=%s qty=%s lot_qty_after=%s",
        w.id, lot.id, patient_id, qty, lot.quantity,
    )
    return w


def update_withdrawal(
    db: Session,
    withdrawal_id: int,
    *,
    quantity=None,
    lot_id: Optional[int] = None,
    patient_id: Optional[int] = None,
) -> Withdrawal:
    """
    Lot change: old lot gets the original quantity back, new lot is debited
    the new (or kept) quantity.
    Same lot: the pool is lot.quantity + what this withdrawal already holds.
    Lowering the quantity always succeeds and credits the difference back.
    """
    w = (
        db.query(Withdrawal)
        .filter(Withdrawal.id == withdrawal_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not w:
        raise NotFound("Withdrawal not found")

    old_qty = int(w.quantity)
    new_qty = ensure_positive_quantity(quantity) if quantity is not None else old_qty

    if patient_id is not None and patient_id != w.patient_id:
        get_or_404(db, Patient, patient_id, "Patient")
        w.patient_id = patient_id

    if lot_id is not None and lot_id != w.lot_id:
        lots = lock_lots(db, w.lot_id, lot_id)
        old_lot, new_lot = lots[w.lot_id], lots[lot_id]

        ensure_not_expired(new_lot)
        ensure_available(new_lot, new_qty)

        adjust_lot_qty(lot=old_lot, delta=old_qty)
        adjust_lot_qty(lot=new_lot, delta=-new_qty)
        w.lot_id = new_lot.id

        logger.info(
            "withdrawal moved id=%s from_lot=%s to_lot=%s qty=%s->%s",
            w.id, old_lot.id, new_lot.id, old_qty, new_qty,
        )
    else:
        delta = new_qty - old_qty
        if delta:
            lot = lock_lot(db, w.lot_id)
            if delta > 0:
                ensure_not_expired(lot)
                ensure_available(lot, new_qty, held=old_qty)
            adjust_lot_qty(lot=lot, delta=-delta)
            logger.info(
                "withdrawal quantity changed id=%s lot_id=%s qty=%s->%s lot_qty_after=%s",
                w.id, lot.id, old_qty, new_qty, lot.quantity,
            )

    w.quantity = new_qty
    w.updated_at = datetime.utcnow()
    db.flush()
    return w


def delete_withdrawal(db: Session, withdrawal_id: int) -> None:
    w = (
        db.query(Withdrawal)
        .filter(Withdrawal.id == withdrawal_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not w:
        raise NotFound("Withdrawal not found")

    linked = (
        db.query(Solicitation.id)
        .filter(Solicitation.withdrawal_id == w.id)
        .first()
    )
    if linked:
        raise IntegrityConflict(
            "Withdrawal belongs to a concluded solicitation and cannot be deleted"
        )

    lot = lock_lot(db, w.lot_id)
    adjust_lot_qty(lot=lot, delta=int(w.quantity))
    db.delete(w)
    db.flush()

    logger.info(
        "withdrawal deleted id=%s lot_id=%s qty_returned=%s lot_qty_after=%s",
        withdrawal_id, lot.id, w.quantity, lot.quantity,
    )
