# FILE: app/services/catalog.py
from __future__ import annotations

import logging
from typing import Type, Union

from sqlalchemy.orm import Session

from app.models.lot import Lot
from app.models.medication import Medication, PharmaceuticalForm, MedicationType
from app.services.errors import IntegrityConflict, InvalidInput, NotFound

logger = logging.getLogger(__name__)

CatalogModel = Union[Medication, PharmaceuticalForm, MedicationType]

# model -> (label, Lot column that points at it)
CATALOG = {
    Medication: ("Medication", Lot.medication_id),
    PharmaceuticalForm: ("Pharmaceutical form", Lot.form_id),
    MedicationType: ("Medication type", Lot.type_id),
}


def _required(data: dict, *keys: str) -> dict:
    out = {}
    for k in keys:
        v = (data.get(k) or "").strip() if isinstance(data.get(k), str) else data.get(k)
        if not v:
            raise InvalidInput(f"{k} is required")
        out[k] = v
    return out


def fields_for(model: Type[CatalogModel]) -> tuple[str, ...]:
    if model is Medication:
        return ("description", "active_ingredient")
    return ("description",)


def list_items(db: Session, model: Type[CatalogModel]):
    return db.query(model).order_by(model.description.asc()).all()


def get_item(db: Session, model: Type[CatalogModel], item_id: int):
    obj = db.get(model, item_id)
    if not obj:
        raise NotFound(f"{CATALOG[model][0]} not found")
    return obj


def create_item(db: Session, model: Type[CatalogModel], data: dict):
    obj = model(**_required(data, *fields_for(model)))
    db.add(obj)
    db.flush()
    logger.info("%s created id=%s", model.__tablename__, obj.id)
    return obj


def update_item(db: Session, model: Type[CatalogModel], item_id: int, data: dict):
    obj = get_item(db, model, item_id)
    present = {k: v for k, v in data.items() if k in fields_for(model) and v is not None}
    for k, v in _required(present, *present.keys()).items():
        setattr(obj, k, v)
    db.flush()
    return obj


def delete_item(db: Session, model: Type[CatalogModel], item_id: int) -> None:
    label, fk = CATALOG[model]
    obj = get_item(db, model, item_id)
    if db.query(Lot.id).filter(fk == obj.id).first():
        raise IntegrityConflict(f"{label} is used by lots and cannot be deleted")
    db.delete(obj)
    db.flush()
    logger.info("%s deleted id=%s", model.__tablename__, item_id)
