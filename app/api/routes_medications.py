# FILE: app/api/routes_medications.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.medication import Medication, PharmaceuticalForm, MedicationType
from app.models.user import User
from app.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    MedicationOut,
    DescriptionIn,
    DescriptionOut,
)
from app.services import catalog
from app.utils.resp import ok, safe_err

router = APIRouter(tags=["catalog"])


def _list(db: Session, model, out):
    return ok([out.model_validate(x).model_dump() for x in catalog.list_items(db, model)])


def _get(db: Session, model, out, item_id: int):
    try:
        return ok(out.model_validate(catalog.get_item(db, model, item_id)).model_dump())
    except Exception as e:
        return safe_err(e)


def _create(db: Session, model, out, data: dict):
    try:
        with transaction(db):
            obj = catalog.create_item(db, model, data)
        db.refresh(obj)
        return ok(out.model_validate(obj).model_dump(), 201)
    except Exception as e:
        return safe_err(e)


def _update(db: Session, model, out, item_id: int, data: dict):
    try:
        with transaction(db):
            obj = catalog.update_item(db, model, item_id, data)
        db.refresh(obj)
        return ok(out.model_validate(obj).model_dump())
    except Exception as e:
        return safe_err(e)


def _delete(db: Session, model, item_id: int):
    try:
        with transaction(db):
            catalog.delete_item(db, model, item_id)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)


# =========================
# MEDICATIONS
# =========================
@router.get("/medications")
def list_medications(db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medications.view")
    return _list(db, Medication, MedicationOut)


@router.get("/medications/{item_id}")
def get_medication(item_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medications.view")
    return _get(db, Medication, MedicationOut, item_id)


@router.post("/medications", status_code=201)
def create_medication(payload: MedicationCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medications.create")
    return _create(db, Medication, MedicationOut, payload.model_dump())


@router.put("/medications/{item_id}")
def update_medication(
    item_id: int,
    payload: MedicationUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(current_user),
):
    require_perm(me, "medications.update")
    return _update(db, Medication, MedicationOut, item_id, payload.model_dump(exclude_unset=True))


@router.delete("/medications/{item_id}")
def delete_medication(item_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medications.delete")
    return _delete(db, Medication, item_id)


# =========================
# PHARMACEUTICAL FORMS
# =========================
@router.get("/pharmaceutical-forms")
def list_forms(db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pharmaceutical_forms.view")
    return _list(db, PharmaceuticalForm, DescriptionOut)


@router.get("/pharmaceutical-forms/{item_id}")
def get_form(item_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pharmaceutical_forms.view")
    return _get(db, PharmaceuticalForm, DescriptionOut, item_id)


@router.post("/pharmaceutical-forms", status_code=201)
def create_form(payload: DescriptionIn, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pharmaceutical_forms.create")
    return _create(db, PharmaceuticalForm, DescriptionOut, payload.model_dump())


@router.put("/pharmaceutical-forms/{item_id}")
def update_form(item_id: int, payload: DescriptionIn, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pharmaceutical_forms.update")
    return _update(db, PharmaceuticalForm, DescriptionOut, item_id, payload.model_dump())


@router.delete("/pharmaceutical-forms/{item_id}")
def delete_form(item_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "pharmaceutical_forms.delete")
    return _delete(db, PharmaceuticalForm, item_id)


# =========================
# MEDICATION TYPES
# =========================
@router.get("/medication-types")
def list_types(db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medication_types.view")
    return _list(db, MedicationType, DescriptionOut)


@router.get("/medication-types/{item_id}")
def get_type(item_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medication_types.view")
    return _get(db, MedicationType, DescriptionOut, item_id)


@router.post("/medication-types", status_code=201)
def create_type(payload: DescriptionIn, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medication_types.create")
    return _create(db, MedicationType, DescriptionOut, payload.model_dump())


@router.put("/medication-types/{item_id}")
def update_type(item_id: int, payload: DescriptionIn, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medication_types.update")
    return _update(db, MedicationType, DescriptionOut, item_id, payload.model_dump())


@router.delete("/medication-types/{item_id}")
def delete_type(item_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "medication_types.delete")
    return _delete(db, MedicationType, item_id)
