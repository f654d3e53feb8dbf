import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.api.deps import get_db, current_user, require_perm
from app.db.session import transaction
from app.models.permission import Permission
from app.models.role import Role
from app.models.user import User
from app.schemas.role import RoleCreate, RoleOut
from app.services.rbac_helpers import ROLE_ADMIN
from app.utils.resp import ok, err, safe_err

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/roles", tags=["roles"])


def _role_out(r: Role) -> dict:
    return RoleOut(
        id=r.id,
        name=r.name,
        description=r.description,
        permission_ids=sorted(p.id for p in r.permissions),
    ).model_dump()


def _permissions_or_400(db: Session, ids: list[int]) -> list[Permission]:
    wanted = set(ids or [])
    if not wanted:
        return []
    perms = db.query(Permission).filter(Permission.id.in_(wanted)).all()
    if len(perms) != len(wanted):
        raise HTTPException(status_code=400, detail="Invalid permission_ids")
    return perms


def _name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    q = db.query(Role.id).filter(func.lower(Role.name) == name.strip().lower())
    if exclude_id:
        q = q.filter(Role.id != exclude_id)
    return q.first() is not None


@router.get("")
def list_roles(db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "roles.view")
    roles = db.query(Role).options(selectinload(Role.permissions)).order_by(Role.name.asc()).all()
    return ok([_role_out(r) for r in roles])


@router.get("/{role_id}")
def get_role(role_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "roles.view")
    r = db.get(Role, role_id)
    if not r:
        return err("Role not found", 404)
    return ok(_role_out(r))


@router.post("", status_code=201)
def create_role(payload: RoleCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "roles.create")
    try:
        with transaction(db):
            if _name_taken(db, payload.name):
                return err("Role exists", 409)
            r = Role(name=payload.name.strip(), description=payload.description)
            r.permissions = _permissions_or_400(db, payload.permission_ids)
            db.add(r)
        db.refresh(r)
        logger.info("role created id=%s name=%s", r.id, r.name)
        return ok(_role_out(r), 201)
    except Exception as e:
        return safe_err(e)


@router.put("/{role_id}")
def update_role(role_id: int, payload: RoleCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "roles.update")
    try:
        with transaction(db):
            r = db.get(Role, role_id)
            if not r:
                return err("Role not found", 404)
            if _name_taken(db, payload.name, exclude_id=r.id):
                return err("Role exists", 409)
            r.name = payload.name.strip()
            r.description = payload.description
            r.permissions = _permissions_or_400(db, payload.permission_ids)
        db.refresh(r)
        return ok(_role_out(r))
    except Exception as e:
        return safe_err(e)


@router.delete("/{role_id}")
def delete_role(role_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_perm(me, "roles.delete")
    try:
        with transaction(db):
            r = db.get(Role, role_id)
            if not r:
                return err("Role not found", 404)
            if r.name == ROLE_ADMIN:
                return err("The Admin role cannot be deleted", 409)
            db.delete(r)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
