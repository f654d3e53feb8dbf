# FILE: app/api/routes_withdrawals.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.user import User
from app.models.withdrawal import Withdrawal
from app.schemas.withdrawal import WithdrawalCreate, WithdrawalUpdate, WithdrawalOut
from app.services import withdrawals as svc
from app.utils.resp import ok, safe_err

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


def withdrawal_out(w: Withdrawal) -> dict:
    return WithdrawalOut(
        id=w.id,
        quantity=w.quantity,
        lot_id=w.lot_id,
        batch_number=w.lot.batch_number if w.lot else None,
        patient_id=w.patient_id,
        patient_name=w.patient.name if w.patient else None,
        user_id=w.user_id,
        user_name=w.user.name if w.user else None,
        created_at=w.created_at,
        updated_at=w.updated_at,
    ).model_dump()


@router.get("")
def list_withdrawals(
    patient_id: Optional[int] = Query(None),
    lot_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "withdrawals.view")
    rows = svc.list_withdrawals(db, patient_id=patient_id, lot_id=lot_id)
    return ok([withdrawal_out(w) for w in rows])


@router.get("/{withdrawal_id}")
def get_withdrawal(withdrawal_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "withdrawals.view")
    try:
        return ok(withdrawal_out(svc.get_withdrawal(db, withdrawal_id)))
    except Exception as e:
        return safe_err(e)


@router.post("", status_code=201)
def create_withdrawal(payload: WithdrawalCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "withdrawals.create")
    try:
        with transaction(db):
            w = svc.create_withdrawal(
                db,
                quantity=payload.quantity,
                lot_id=payload.lot_id,
                patient_id=payload.patient_id,
                user_id=me.id,
            )
        return ok(withdrawal_out(svc.get_withdrawal(db, w.id)), 201)
    except Exception as e:
        return safe_err(e)


@router.put("/{withdrawal_id}")
def update_withdrawal(
    withdrawal_id: int,
    payload: WithdrawalUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "withdrawals.update")
    try:
        with transaction(db):
            svc.update_withdrawal(
                db,
                withdrawal_id,
                quantity=payload.quantity,
                lot_id=payload.lot_id,
                patient_id=payload.patient_id,
            )
        return ok(withdrawal_out(svc.get_withdrawal(db, withdrawal_id)))
    except Exception as e:
        return safe_err(e)


@router.delete("/{withdrawal_id}")
def delete_withdrawal(withdrawal_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "withdrawals.delete")
    try:
        with transaction(db):
            svc.delete_withdrawal(db, withdrawal_id)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
