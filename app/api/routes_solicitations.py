# FILE: app/api/routes_solicitations.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.solicitation import Solicitation
from app.models.user import User
from app.schemas.common import CountOut
from app.schemas.solicitation import RefuseIn, SolicitationOut
from app.services import solicitations as svc
from app.utils.files import save_image, delete_stored, public_url
from app.utils.resp import ok, safe_err

router = APIRouter(prefix="/solicitations", tags=["solicitations"])

UPLOAD_MODULE = "solicitations"


def solicitation_out(s: Solicitation) -> dict:
    return SolicitationOut(
        id=s.id,
        quantity=s.quantity,
        lot_id=s.lot_id,
        batch_number=s.lot.batch_number if s.lot else None,
        patient_id=s.patient_id,
        patient_name=s.patient.name if s.patient else None,
        prescription_photo=s.prescription_photo,
        prescription_photo_url=public_url(s.prescription_photo),
        status=s.status,
        refusal_reason=s.refusal_reason,
        withdrawal_id=s.withdrawal_id,
        reviewed_by_id=s.reviewed_by_id,
        created_at=s.created_at,
        updated_at=s.updated_at,
    ).model_dump()


@router.get("")
def list_solicitations(
    status: Optional[str] = Query(None, description="pending_approval | approved_for_withdrawal | withdrawal_completed | refused"),
    patient_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "solicitations.view")
    try:
        rows = svc.list_solicitations(db, status=svc.parse_status(status), patient_id=patient_id)
        return ok([solicitation_out(s) for s in rows])
    except Exception as e:
        return safe_err(e)


@router.get("/pending/count")
def pending_count(db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "solicitations.view")
    return ok(CountOut(count=svc.count_pending(db)).model_dump())


@router.get("/{solicitation_id}")
def get_solicitation(solicitation_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "solicitations.view")
    try:
        return ok(solicitation_out(svc.get_solicitation(db, solicitation_id)))
    except Exception as e:
        return safe_err(e)


@router.post("", status_code=201)
def create_solicitation(
    quantity: int = Form(...),
    lot_id: int = Form(...),
    patient_id: int = Form(...),
    foto_receita: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "solicitations.create")

    ref = None
    try:
        if foto_receita is not None and foto_receita.filename:
            ref = save_image(foto_receita, UPLOAD_MODULE)
        with transaction(db):
            s = svc.create_solicitation(
                db,
                quantity=quantity,
                lot_id=lot_id,
                patient_id=patient_id,
                prescription_photo=ref,
            )
        return ok(solicitation_out(svc.get_solicitation(db, s.id)), 201)
    except Exception as e:
        # drop the orphaned upload
        delete_stored(ref)
        return safe_err(e)


@router.post("/{solicitation_id}/confirm")
def confirm_solicitation(solicitation_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "solicitations.approve")
    try:
        with transaction(db):
            svc.confirm_solicitation(db, solicitation_id, user_id=me.id)
        return ok(solicitation_out(svc.get_solicitation(db, solicitation_id)))
    except Exception as e:
        return safe_err(e)


@router.post("/{solicitation_id}/conclude")
def conclude_donation(solicitation_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "solicitations.conclude")
    try:
        with transaction(db):
            svc.conclude_donation(db, solicitation_id, user_id=me.id)
        return ok(solicitation_out(svc.get_solicitation(db, solicitation_id)))
    except Exception as e:
        return safe_err(e)


@router.post("/{solicitation_id}/refuse")
def refuse_solicitation(
    solicitation_id: int,
    payload: Optional[RefuseIn] = None,
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "solicitations.refuse")
    try:
        with transaction(db):
            svc.refuse_solicitation(
                db,
                solicitation_id,
                reason=payload.reason if payload else None,
                user_id=me.id,
            )
        return ok(solicitation_out(svc.get_solicitation(db, solicitation_id)))
    except Exception as e:
        return safe_err(e)


@router.delete("/{solicitation_id}")
def delete_solicitation(solicitation_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "solicitations.delete")
    try:
        with transaction(db):
            photo = svc.delete_solicitation(db, solicitation_id)
        delete_stored(photo)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
