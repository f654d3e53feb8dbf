# FILE: app/api/routes_lots.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.lot import Lot
from app.models.user import User
from app.schemas.lot import LotCreate, LotUpdate, LotOut
from app.services import lots as svc
from app.utils.resp import ok, safe_err

router = APIRouter(prefix="/lots", tags=["lots"])


def lot_out(lot: Lot) -> dict:
    med = lot.medication
    return LotOut(
        id=lot.id,
        batch_number=lot.batch_number,
        manufacture_date=lot.manufacture_date,
        expiry_date=lot.expiry_date,
        quantity=lot.quantity,
        medication_id=lot.medication_id,
        form_id=lot.form_id,
        type_id=lot.type_id,
        medication=med.description if med else None,
        active_ingredient=med.active_ingredient if med else None,
        form=lot.form.description if lot.form else None,
        medication_type=lot.medication_type.description if lot.medication_type else None,
        created_at=lot.created_at,
        updated_at=lot.updated_at,
    ).model_dump()


@router.get("")
def list_lots(
    medication_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "lots.view")
    return ok([lot_out(x) for x in svc.list_lots(db, medication_id=medication_id)])


# Public: feeds the donation request form
@router.get("/available")
def list_available_lots(db: Session = Depends(get_db)):
    return ok([lot_out(x) for x in svc.list_available_lots(db)])


@router.get("/{lot_id}")
def get_lot(lot_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "lots.view")
    try:
        return ok(lot_out(svc.get_lot(db, lot_id)))
    except Exception as e:
        return safe_err(e)


@router.post("", status_code=201)
def create_lot(payload: LotCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "lots.create")
    try:
        with transaction(db):
            lot = svc.create_lot(db, **payload.model_dump())
        return ok(lot_out(svc.get_lot(db, lot.id)), 201)
    except Exception as e:
        return safe_err(e)


@router.put("/{lot_id}")
def update_lot(lot_id: int, payload: LotUpdate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "lots.update")
    try:
        with transaction(db):
            svc.update_lot(db, lot_id, **payload.model_dump(exclude_unset=True))
        return ok(lot_out(svc.get_lot(db, lot_id)))
    except Exception as e:
        return safe_err(e)


@router.delete("/{lot_id}")
def delete_lot(lot_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "lots.delete")
    try:
        with transaction(db):
            svc.delete_lot(db, lot_id)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
