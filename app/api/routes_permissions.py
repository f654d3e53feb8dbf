# FILE: app/api/routes_permissions.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.user import User
from app.models.permission import Permission
from app.schemas.permission import PermissionCreate, PermissionOut, ModuleCountOut
from app.utils.resp import ok, err, safe_err

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _perm_out(p: Permission) -> dict:
    return PermissionOut.model_validate(p).model_dump()


def _clean(payload: PermissionCreate) -> tuple[str, str, str]:
    return (
        (payload.code or "").strip(),
        (payload.label or "").strip(),
        (payload.module or "").strip(),
    )


# -------------------------
# Routes
# -------------------------

@router.get("/modules")
def permission_modules(
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    require_perm(user, "permissions.view")

    rows = (
        db.query(Permission.module, func.count(Permission.id))
        .group_by(Permission.module)
        .order_by(Permission.module.asc())
        .all()
    )
    return ok([ModuleCountOut(module=m or "unknown", count=int(c or 0)).model_dump() for (m, c) in rows])


@router.get("")
def list_permissions(
    q: Optional[str] = Query(default=None, description="Search in code/label/module"),
    module: Optional[str] = Query(default=None, description="Filter by module"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    require_perm(user, "permissions.view")

    qry = db.query(Permission)
    if module:
        qry = qry.filter(Permission.module == module)
    if q:
        s = f"%{q.strip()}%"
        qry = qry.filter(
            or_(
                Permission.code.ilike(s),
                Permission.label.ilike(s),
                Permission.module.ilike(s),
            )
        )

    rows = qry.order_by(Permission.module.asc(), Permission.code.asc()).all()
    return ok([_perm_out(p) for p in rows])


@router.post("", status_code=201)
def create_permission(
    payload: PermissionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    require_perm(user, "permissions.create")

    code, label, module = _clean(payload)
    if not code or not label or not module:
        return err("code, label, module are required", 400)

    try:
        with transaction(db):
            if db.query(Permission.id).filter(Permission.code == code).first():
                return err("Permission code exists", 409)
            p = Permission(code=code, label=label, module=module)
            db.add(p)
        db.refresh(p)
        return ok(_perm_out(p), 201)
    except Exception as e:
        return safe_err(e)


@router.put("/{perm_id}")
def update_permission(
    perm_id: int,
    payload: PermissionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    require_perm(user, "permissions.update")

    code, label, module = _clean(payload)
    if not code or not label or not module:
        return err("code, label, module are required", 400)

    try:
        with transaction(db):
            p = db.get(Permission, perm_id)
            if not p:
                return err("Permission not found", 404)
            if code != p.code and db.query(Permission.id).filter(Permission.code == code).first():
                return err("Permission code exists", 409)
            p.code, p.label, p.module = code, label, module
        db.refresh(p)
        return ok(_perm_out(p))
    except Exception as e:
        return safe_err(e)


@router.delete("/{perm_id}")
def delete_permission(
    perm_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    require_perm(user, "permissions.delete")
    try:
        with transaction(db):
            p = db.get(Permission, perm_id)
            if not p:
                return err("Permission not found", 404)
            db.delete(p)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
