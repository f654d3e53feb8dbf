# FILE: app/api/routes_patients.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.patient import Patient
from app.models.user import User
from app.schemas.patient import (
    PatientCreate,
    PatientUpdate,
    PatientOut,
    PatientDetailOut,
    PatientWithdrawalOut,
)
from app.services import patients as svc
from app.utils.resp import ok, safe_err

router = APIRouter(prefix="/patients", tags=["patients"])


def _patient_out(p: Patient) -> dict:
    return PatientOut.model_validate(p).model_dump()


def _patient_detail(p: Patient) -> dict:
    base = PatientOut.model_validate(p).model_dump()
    history = [
        PatientWithdrawalOut(
            id=w.id,
            quantity=w.quantity,
            lot_id=w.lot_id,
            batch_number=w.lot.batch_number if w.lot else None,
            created_at=w.created_at,
        )
        for w in p.withdrawals
    ]
    return PatientDetailOut(**base, withdrawals=history).model_dump()


@router.get("")
def list_patients(
    q: Optional[str] = Query(None, description="Search by name or CPF"),
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "patients.view")
    return ok([_patient_out(p) for p in svc.list_patients(db, q=q)])


@router.get("/{patient_id}")
def get_patient(patient_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "patients.view")
    try:
        return ok(_patient_detail(svc.get_patient(db, patient_id, with_history=True)))
    except Exception as e:
        return safe_err(e)


@router.post("", status_code=201)
def create_patient(payload: PatientCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "patients.create")
    try:
        with transaction(db):
            p = svc.create_patient(db, payload.model_dump())
        db.refresh(p)
        return ok(_patient_out(p), 201)
    except Exception as e:
        return safe_err(e)


@router.put("/{patient_id}")
def update_patient(
    patient_id: int,
    payload: PatientUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "patients.update")
    try:
        with transaction(db):
            p = svc.update_patient(db, patient_id, payload.model_dump(exclude_unset=True))
        db.refresh(p)
        return ok(_patient_out(p))
    except Exception as e:
        return safe_err(e)


@router.delete("/{patient_id}")
def delete_patient(patient_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "patients.delete")
    try:
        with transaction(db):
            svc.delete_patient(db, patient_id)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
