# FILE: app/services/lots.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.models.lot import Lot
from app.models.medication import Medication, PharmaceuticalForm, MedicationType
from app.models.solicitation import Solicitation
from app.models.withdrawal import Withdrawal
from app.services.errors import IntegrityConflict, InvalidInput, NotFound
from app.services.stock import get_or_404, lock_lot
from app.utils.timezone import today_local

logger = logging.getLogger(__name__)


def _load_opts():
    return (
        selectinload(Lot.medication),
        selectinload(Lot.form),
        selectinload(Lot.medication_type),
    )


def _clean_batch(batch_number: Optional[str]) -> str:
    bn = (batch_number or "").strip()
    if not bn:
        raise InvalidInput("Batch number is required")
    return bn


def _check_dates(manufacture_date: Optional[date], expiry_date: Optional[date]) -> None:
    if not manufacture_date or not expiry_date:
        raise InvalidInput("Manufacture and expiry dates are required")
    if manufacture_date >= expiry_date:
        raise InvalidInput("Manufacture date must be before the expiry date")


def _check_refs(db: Session, medication_id, form_id, type_id) -> None:
    get_or_404(db, Medication, medication_id, "Medication")
    get_or_404(db, PharmaceuticalForm, form_id, "Pharmaceutical form")
    get_or_404(db, MedicationType, type_id, "Medication type")


def list_lots(db: Session, *, medication_id: Optional[int] = None):
    q = db.query(Lot).options(*_load_opts())
    if medication_id:
        q = q.filter(Lot.medication_id == medication_id)
    return q.order_by(Lot.created_at.desc(), Lot.id.desc()).all()


def list_available_lots(db: Session, *, today: Optional[date] = None):
    """Lots with stock left and not past expiry, earliest expiry first."""
    today = today or today_local()
    return (
        db.query(Lot)
        .options(*_load_opts())
        .filter(Lot.quantity > 0, Lot.expiry_date >= today)
        .order_by(Lot.expiry_date.asc(), Lot.id.asc())
        .all()
    )


def get_lot(db: Session, lot_id: int) -> Lot:
    lot = db.query(Lot).options(*_load_opts()).filter(Lot.id == lot_id).first()
    if not lot:
        raise NotFound("Lot not found")
    return lot


def create_lot(
    db: Session,
    *,
    batch_number: Optional[str],
    manufacture_date: Optional[date],
    expiry_date: Optional[date],
    quantity,
    medication_id: Optional[int],
    form_id: Optional[int],
    type_id: Optional[int],
) -> Lot:
    bn = _clean_batch(batch_number)
    _check_dates(manufacture_date, expiry_date)
    if quantity is None or int(quantity) < 0:
        raise InvalidInput("Quantity must be zero or more")
    _check_refs(db, medication_id, form_id, type_id)

    lot = Lot(
        batch_number=bn,
        manufacture_date=manufacture_date,
        expiry_date=expiry_date,
        quantity=int(quantity),
        medication_id=medication_id,
        form_id=form_id,
        type_id=type_id,
    )
    db.add(lot)
    db.flush()
    logger.info("lot created id=%s batch=%s qty=%s expiry=%s", lot.id, bn, lot.quantity, expiry_date)
    return lot


def update_lot(db: Session, lot_id: int, **fields) -> Lot:
    """Quantity is not editable here; it only moves through withdrawals."""
    lot = lock_lot(db, lot_id)

    if "quantity" in fields:
        raise InvalidInput("Lot quantity cannot be edited directly")

    if "batch_number" in fields and fields["batch_number"] is not None:
        lot.batch_number = _clean_batch(fields["batch_number"])

    mfg = fields.get("manufacture_date") or lot.manufacture_date
    exp = fields.get("expiry_date") or lot.expiry_date
    _check_dates(mfg, exp)
    lot.manufacture_date = mfg
    lot.expiry_date = exp

    if fields.get("medication_id") is not None:
        lot.medication_id = get_or_404(db, Medication, fields["medication_id"], "Medication").id
    if fields.get("form_id") is not None:
        lot.form_id = get_or_404(db, PharmaceuticalForm, fields["form_id"], "Pharmaceutical form").id
    if fields.get("type_id") is not None:
        lot.type_id = get_or_404(db, MedicationType, fields["type_id"], "Medication type").id

    db.flush()
    logger.info("lot updated id=%s", lot.id)
    return lot


def delete_lot(db: Session, lot_id: int) -> None:
    lot = lock_lot(db, lot_id)

    if db.query(Withdrawal.id).filter(Withdrawal.lot_id == lot.id).first():
        raise IntegrityConflict("Lot has withdrawals and cannot be deleted")
    if db.query(Solicitation.id).filter(Solicitation.lot_id == lot.id).first():
        raise IntegrityConflict("Lot has solicitations and cannot be deleted")

    db.delete(lot)
    db.flush()
    logger.info("lot deleted id=%s batch=%s", lot_id, lot.batch_number)
