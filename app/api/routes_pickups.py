# FILE: app/api/routes_pickups.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.pickup import PickupSchedule
from app.models.user import User
from app.schemas.pickup import PickupOut, PickupUpdate, ShiftIn, ShiftOut
from app.services import pickups as svc
from app.utils.files import save_images, delete_stored, public_url
from app.utils.resp import ok, safe_err

router = APIRouter(tags=["pickups"])

UPLOAD_MODULE = "pickups"


def pickup_out(p: PickupSchedule) -> dict:
    photos = list(p.photos or [])
    return PickupOut(
        id=p.id,
        name=p.name,
        address=p.address,
        number=p.number,
        district=p.district,
        postal_code=p.postal_code,
        phone=p.phone,
        visit_date=p.visit_date,
        photos=photos,
        photo_urls=[public_url(x) for x in photos],
        maps_url=p.maps_url,
        shift_id=p.shift_id,
        shift=p.shift.description if p.shift else None,
        visited_by_id=p.visited_by_id,
        visited_at=p.visited_at,
        created_at=p.created_at,
        updated_at=p.updated_at,
    ).model_dump()


# =========================
# SHIFTS
# =========================
@router.get("/shifts")
def list_shifts(db: Session = Depends(get_db)):
    return ok([ShiftOut.model_validate(s).model_dump() for s in svc.list_shifts(db)])


@router.post("/shifts", status_code=201)
def create_shift(payload: ShiftIn, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pickups.update")
    try:
        with transaction(db):
            s = svc.create_shift(db, payload.description)
        db.refresh(s)
        return ok(ShiftOut.model_validate(s).model_dump(), 201)
    except Exception as e:
        return safe_err(e)


@router.delete("/shifts/{shift_id}")
def delete_shift(shift_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pickups.delete")
    try:
        with transaction(db):
            svc.delete_shift(db, shift_id)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)


# =========================
# PICKUP SCHEDULES
# =========================
# Public: citizens book a home pickup without an account
@router.post("/pickups", status_code=201)
def create_pickup(
    name: str = Form(...),
    address: str = Form(...),
    number: str = Form(...),
    district: str = Form(...),
    postal_code: str = Form(...),
    phone: str = Form(...),
    visit_date: date = Form(...),
    shift_id: int = Form(...),
    maps_url: Optional[str] = Form(None),
    fotos: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
):
    refs: list[str] = []
    try:
        refs = save_images(fotos or [], UPLOAD_MODULE, svc.MAX_PHOTOS)
        with transaction(db):
            p = svc.create_pickup(
                db,
                {
                    "name": name,
                    "address": address,
                    "number": number,
                    "district": district,
                    "postal_code": postal_code,
                    "phone": phone,
                    "visit_date": visit_date,
                    "shift_id": shift_id,
                    "maps_url": maps_url,
                },
                photos=refs,
            )
        return ok(pickup_out(svc.get_pickup(db, p.id)), 201)
    except Exception as e:
        for ref in refs:
            delete_stored(ref)
        return safe_err(e)


@router.get("/pickups")
def list_pickups(
    visited: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "pickups.view")
    return ok([pickup_out(p) for p in svc.list_pickups(db, visited=visited)])


@router.get("/pickups/{pickup_id}")
def get_pickup(pickup_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pickups.view")
    try:
        return ok(pickup_out(svc.get_pickup(db, pickup_id)))
    except Exception as e:
        return safe_err(e)


@router.put("/pickups/{pickup_id}")
def update_pickup(
    pickup_id: int,
    payload: PickupUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "pickups.update")
    try:
        with transaction(db):
            svc.update_pickup(db, pickup_id, payload.model_dump(exclude_unset=True))
        return ok(pickup_out(svc.get_pickup(db, pickup_id)))
    except Exception as e:
        return safe_err(e)


@router.post("/pickups/{pickup_id}/visit")
def mark_visited(pickup_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pickups.visit")
    try:
        with transaction(db):
            svc.mark_visited(db, pickup_id, me.id)
        return ok(pickup_out(svc.get_pickup(db, pickup_id)))
    except Exception as e:
        return safe_err(e)


@router.delete("/pickups/{pickup_id}")
def delete_pickup(pickup_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pickups.delete")
    try:
        with transaction(db):
            photos = svc.delete_pickup(db, pickup_id)
        for ref in photos:
            delete_stored(ref)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
