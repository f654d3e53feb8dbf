# FILE: app/services/solicitations.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models.patient import Patient
from app.models.solicitation import (
    Solicitation,
    SolicitationStatus,
    UNDELETABLE_STATUSES,
    can_transition,
)
from app.services.errors import InvalidInput, NotFound, StateConflict
from app.services.stock import (
    ensure_available,
    ensure_not_expired,
    ensure_positive_quantity,
    get_or_404,
    lock_lot,
)
from app.services.withdrawals import create_withdrawal

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    SolicitationStatus.PENDING_APPROVAL: "pending approval",
    SolicitationStatus.APPROVED_FOR_WITHDRAWAL: "approved for withdrawal",
    SolicitationStatus.WITHDRAWAL_COMPLETED: "withdrawal completed",
    SolicitationStatus.REFUSED: "refused",
}


def parse_status(value: Optional[str]) -> Optional[SolicitationStatus]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return SolicitationStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in SolicitationStatus)
        raise InvalidInput(f"Invalid status '{value}'. Allowed: {allowed}")


def ensure_transition(sol: Solicitation, target: SolicitationStatus) -> None:
    current = SolicitationStatus(sol.status)
    if not can_transition(current, target):
        raise StateConflict(
            f"Solicitation is {STATUS_LABELS[current]}; cannot move to {STATUS_LABELS[target]}"
        )


def _lock_solicitation(db: Session, solicitation_id: int) -> Solicitation:
    sol = (
        db.query(Solicitation)
        .filter(Solicitation.id == solicitation_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not sol:
        raise NotFound("Solicitation not found")
    return sol


def list_solicitations(
    db: Session,
    *,
    status: Optional[SolicitationStatus] = None,
    patient_id: Optional[int] = None,
):
    q = db.query(Solicitation).options(
        selectinload(Solicitation.lot),
        selectinload(Solicitation.patient),
    )
    if status is not None:
        q = q.filter(Solicitation.status == status)
    if patient_id:
        q = q.filter(Solicitation.patient_id == patient_id)
    return q.order_by(Solicitation.created_at.desc(), Solicitation.id.desc()).all()


def get_solicitation(db: Session, solicitation_id: int) -> Solicitation:
    sol = (
        db.query(Solicitation)
        .options(selectinload(Solicitation.lot), selectinload(Solicitation.patient))
        .filter(Solicitation.id == solicitation_id)
        .first()
    )
    if not sol:
        raise NotFound("Solicitation not found")
    return sol


def count_pending(db: Session) -> int:
    return int(
        db.query(func.count(Solicitation.id))
        .filter(Solicitation.status == SolicitationStatus.PENDING_APPROVAL)
        .scalar()
        or 0
    )


def create_solicitation(
    db: Session,
    *,
    quantity,
    lot_id: Optional[int],
    patient_id: Optional[int],
    prescription_photo: Optional[str],
) -> Solicitation:
    """New request in pending_approval. Stock is only checked, never touched."""
    qty = ensure_positive_quantity(quantity)
    if not prescription_photo:
        raise InvalidInput("Prescription photo is required")
    get_or_404(db, Patient, patient_id, "Patient")

    lot = lock_lot(db, lot_id)
    ensure_not_expired(lot)
    ensure_available(lot, qty)

    sol = Solicitation(
        quantity=qty,
        lot_id=lot.id,
        patient_id=patient_id,
        prescription_photo=prescription_photo,
        status=SolicitationStatus.PENDING_APPROVAL,
    )
    db.add(sol)
    db.flush()
    logger.info("solicitation created id=%s lot_id=%s patient_id=%s qty=%s", sol.id, lot.id, patient_id, qty)
    return sol


def confirm_solicitation(db: Session, solicitation_id: int, user_id: Optional[int] = None) -> Solicitation:
    sol = _lock_solicitation(db, solicitation_id)
    ensure_transition(sol, SolicitationStatus.APPROVED_FOR_WITHDRAWAL)

    lot = lock_lot(db, sol.lot_id)
    ensure_not_expired(lot)
    ensure_available(lot, int(sol.quantity))

    sol.status = SolicitationStatus.APPROVED_FOR_WITHDRAWAL
    sol.reviewed_by_id = user_id
    sol.updated_at = datetime.utcnow()
    db.flush()
    logger.info("solicitation approved id=%s by_user=%s", sol.id, user_id)
    return sol


def conclude_donation(db: Session, solicitation_id: int, user_id: Optional[int]) -> Solicitation:
    """
    Hands the medication over: writes the Withdrawal (debiting the lot) and
    closes the solicitation, both in the caller's transaction.
    """
    sol = _lock_solicitation(db, solicitation_id)
    ensure_transition(sol, SolicitationStatus.WITHDRAWAL_COMPLETED)

    w = create_withdrawal(
        db,
        quantity=sol.quantity,
        lot_id=sol.lot_id,
        patient_id=sol.patient_id,
        user_id=user_id,
    )

    sol.status = SolicitationStatus.WITHDRAWAL_COMPLETED
    sol.withdrawal_id = w.id
    sol.updated_at = datetime.utcnow()
    db.flush()
    logger.info("solicitation concluded id=%s withdrawal_id=%s", sol.id, w.id)
    return sol


def refuse_solicitation(
    db: Session,
    solicitation_id: int,
    *,
    reason: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Solicitation:
    sol = _lock_solicitation(db, solicitation_id)
    ensure_transition(sol, SolicitationStatus.REFUSED)

    sol.status = SolicitationStatus.REFUSED
    sol.refusal_reason = (reason or "").strip() or None
    sol.reviewed_by_id = user_id
    sol.updated_at = datetime.utcnow()
    db.flush()
    logger.info("solicitation refused id=%s by_user=%s", sol.id, user_id)
    return sol


def delete_solicitation(db: Session, solicitation_id: int) -> str:
    """Returns the prescription photo reference so the caller can drop the file after commit."""
    sol = _lock_solicitation(db, solicitation_id)
    current = SolicitationStatus(sol.status)
    if current in UNDELETABLE_STATUSES:
        raise StateConflict(
            f"Solicitation is {STATUS_LABELS[current]} and cannot be deleted"
        )

    photo = sol.prescription_photo
    db.delete(sol)
    db.flush()
    logger.info("solicitation deleted id=%s status=%s", solicitation_id, current.value)
    return photo
