# FILE: app/services/patients.py
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.models.patient import Patient
from app.models.solicitation import Solicitation
from app.models.withdrawal import Withdrawal
from app.services.errors import IntegrityConflict, InvalidInput, NotFound

logger = logging.getLogger(__name__)

REQUIRED = ("name", "cpf", "birth_date", "phone", "sus_card")


def normalize_cpf(value: Optional[str]) -> str:
    """Keeps digits only, so '123.456.789-09' and '12345678909' collide."""
    return re.sub(r"\D", "", value or "")


def _clean(data: dict) -> dict:
    out = {}
    for k, v in data.items():
        out[k] = v.strip() if isinstance(v, str) else v
    if "cpf" in out and out["cpf"] is not None:
        out["cpf"] = normalize_cpf(out["cpf"])
    return out


def _ensure_cpf_free(db: Session, cpf: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(Patient.id).filter(Patient.cpf == cpf)
    if exclude_id:
        q = q.filter(Patient.id != exclude_id)
    if q.first():
        raise InvalidInput("A patient with this CPF already exists")


def list_patients(db: Session, *, q: Optional[str] = None):
    qry = db.query(Patient)
    if q and q.strip():
        conds = [Patient.name.ilike(f"%{q.strip()}%")]
        digits = normalize_cpf(q)
        if digits:
            conds.append(Patient.cpf.like(f"%{digits}%"))
        qry = qry.filter(or_(*conds))
    return qry.order_by(Patient.name.asc()).all()


def get_patient(db: Session, patient_id: int, *, with_history: bool = False) -> Patient:
    qry = db.query(Patient)
    if with_history:
        qry = qry.options(selectinload(Patient.withdrawals).selectinload(Withdrawal.lot))
    p = qry.filter(Patient.id == patient_id).first()
    if not p:
        raise NotFound("Patient not found")
    return p


def create_patient(db: Session, data: dict) -> Patient:
    data = _clean(data)
    missing = [k for k in REQUIRED if not data.get(k)]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")
    _ensure_cpf_free(db, data["cpf"])

    p = Patient(**{k: data[k] for k in REQUIRED})
    db.add(p)
    db.flush()
    logger.info("patient created id=%s", p.id)
    return p


def update_patient(db: Session, patient_id: int, data: dict) -> Patient:
    p = db.get(Patient, patient_id)
    if not p:
        raise NotFound("Patient not found")

    data = _clean(data)
    for k in REQUIRED:
        if k in data and not data[k]:
            raise InvalidInput(f"{k} cannot be empty")
    if data.get("cpf") and data["cpf"] != p.cpf:
        _ensure_cpf_free(db, data["cpf"], exclude_id=p.id)

    for k in REQUIRED:
        if k in data:
            setattr(p, k, data[k])
    db.flush()
    logger.info("patient updated id=%s", p.id)
    return p


def delete_patient(db: Session, patient_id: int) -> None:
    p = db.get(Patient, patient_id)
    if not p:
        raise NotFound("Patient not found")
    if db.query(Withdrawal.id).filter(Withdrawal.patient_id == p.id).first():
        raise IntegrityConflict("Patient has withdrawals and cannot be deleted")
    if db.query(Solicitation.id).filter(Solicitation.patient_id == p.id).first():
        raise IntegrityConflict("Patient has solicitations and cannot be deleted")
    db.delete(p)
    db.flush()
    logger.info("patient deleted id=%s", patient_id)
