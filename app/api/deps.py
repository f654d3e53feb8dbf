# app/api/deps.py
from __future__ import annotations

from typing import Optional, Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session, joinedload

from app.core.rbac import require_perm, require_admin  # noqa: F401  (re-export for routes)
from app.db.session import SessionLocal
from app.models.user import User
from app.models.role import Role
from app.utils.jwt import decode_token


# =========================================================
# DB (per request)
# =========================================================
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def get_user_from_token(raw_token: Optional[str]) -> User:
    if not raw_token:
        raise HTTPException(status_code=401, detail="Missing token")

    payload = decode_token(raw_token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub or not str(sub).isdigit():
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # own short session: roles/permissions are loaded eagerly so the
    # returned user can be checked after the session is closed
    db = SessionLocal()
    try:
        user: Optional[User] = (
            db.query(User)
            .options(joinedload(User.roles).joinedload(Role.permissions))
            .filter(User.id == int(sub))
            .first()
        )
        if not user:
            raise HTTPException(status_code=401, detail="User not found")
        if not user.is_active:
            raise HTTPException(status_code=403, detail="User inactive")
        db.expunge(user)
        return user
    finally:
        db.close()


def current_user(authorization: Optional[str] = Header(None)) -> User:
    return get_user_from_token(_extract_bearer(authorization))
