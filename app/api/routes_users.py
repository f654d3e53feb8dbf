# app/api/routes_users.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.api.deps import get_db, current_user, require_admin
from app.core.security import hash_password
from app.db.session import transaction
from app.models.role import Role
from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserUpdate, UserRolesIn
from app.utils.resp import ok, err, safe_err

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _user_out(u: User) -> dict:
    return UserOut(
        id=u.id,
        name=u.name,
        email=u.email,
        is_active=u.is_active,
        is_admin=u.is_admin,
        role_ids=[r.id for r in (u.roles or [])],
    ).model_dump()


def _roles_or_400(db: Session, role_ids: List[int]) -> List[Role]:
    ids = set(role_ids or [])
    if not ids:
        return []
    roles = db.query(Role).filter(Role.id.in_(ids)).all()
    if len(roles) != len(ids):
        raise HTTPException(status_code=400, detail="Invalid role_ids")
    return roles


def _email_taken(db: Session, email: str, exclude_id: int | None = None) -> bool:
    q = db.query(User.id).filter(func.lower(User.email) == email.lower())
    if exclude_id:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


@router.get("")
def list_users(db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_admin(me)
    users = db.query(User).options(joinedload(User.roles)).order_by(User.name.asc()).all()
    return ok([_user_out(u) for u in users])


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_admin(me)
    u = db.get(User, user_id)
    if not u:
        return err("User not found", 404)
    return ok(_user_out(u))


@router.post("", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_admin(me)
    try:
        with transaction(db):
            email = payload.email.strip().lower()
            if _email_taken(db, email):
                return err("Email already exists", 409)

            u = User(
                name=payload.name.strip(),
                email=email,
                password_hash=hash_password(payload.password),
                is_active=payload.is_active,
                is_admin=payload.is_admin,
            )
            u.roles = _roles_or_400(db, payload.role_ids)
            db.add(u)
        db.refresh(u)
        logger.info("user created id=%s by=%s", u.id, me.id)
        return ok(_user_out(u), 201)
    except Exception as e:
        return safe_err(e)


@router.put("/{user_id}")
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_admin(me)
    try:
        with transaction(db):
            u = db.get(User, user_id)
            if not u:
                return err("User not found", 404)

            if payload.is_admin is False and u.id == me.id:
                return err("You cannot remove your own admin flag", 400)

            if payload.email is not None:
                email = payload.email.strip().lower()
                if email != u.email and _email_taken(db, email, exclude_id=u.id):
                    return err("Email already exists", 409)
                u.email = email
            if payload.name is not None:
                u.name = payload.name.strip()
            if payload.is_active is not None:
                u.is_active = payload.is_active
            if payload.is_admin is not None:
                u.is_admin = payload.is_admin
            if payload.password:
                u.password_hash = hash_password(payload.password)
            if payload.role_ids is not None:
                u.roles = _roles_or_400(db, payload.role_ids)
        db.refresh(u)
        return ok(_user_out(u))
    except Exception as e:
        return safe_err(e)


@router.put("/{user_id}/roles")
def assign_roles(user_id: int, payload: UserRolesIn, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_admin(me)
    try:
        with transaction(db):
            u = db.get(User, user_id)
            if not u:
                return err("User not found", 404)
            u.roles = _roles_or_400(db, payload.role_ids)
        db.refresh(u)
        logger.info("roles assigned user_id=%s roles=%s", u.id, payload.role_ids)
        return ok(_user_out(u))
    except Exception as e:
        return safe_err(e)


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), me: User = Depends(current_user)):
    require_admin(me)
    if user_id == me.id:
        return err("You cannot delete your own account", 400)
    try:
        with transaction(db):
            u = db.get(User, user_id)
            if not u:
                return err("User not found", 404)
            db.delete(u)
        return ok({"message": "Deleted"})
    except Exception as e:
        return safe_err(e)
