# app/api/routes_auth.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user
from app.core.emailer import EmailError
from app.core.rbac import iter_user_perm_codes
from app.core.security import verify_password
from app.db.session import transaction
from app.models.permission import Permission
from app.models.user import User
from app.schemas.auth import LoginIn, TokenOut, ForgotPasswordIn, ResetPasswordIn
from app.services.password_reset import forgot_password, reset_password
from app.utils.jwt import create_access_token
from app.utils.resp import ok, err, safe_err

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_MSG = "If the email is registered, a reset link has been sent."


def _me_out(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "is_admin": bool(u.is_admin),
        "is_active": bool(u.is_active),
        "roles": [{"id": r.id, "name": r.name} for r in (u.roles or [])],
    }


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("login failed email=%s", email)
        return err("Invalid credentials", 401)
    if not user.is_active:
        return err("User inactive", 403)

    token = create_access_token(user.id, user.email)
    logger.info("login ok user_id=%s", user.id)
    data = TokenOut(access_token=token).model_dump()
    data["user"] = _me_out(user)
    return ok(data)


@router.get("/me")
def me(user: User = Depends(current_user)):
    return ok(_me_out(user))


@router.get("/me/permissions")
def my_permissions(db: Session = Depends(get_db), user: User = Depends(current_user)):
    if user.is_admin:
        codes = [c for (c, ) in db.query(Permission.code).order_by(Permission.code.asc()).all()]
    else:
        codes = sorted(iter_user_perm_codes(user))
    return ok({"is_admin": bool(user.is_admin), "permissions": codes})


@router.post("/forgot-password")
def forgot(payload: ForgotPasswordIn, db: Session = Depends(get_db)):
    try:
        with transaction(db):
            forgot_password(db, payload.email)
    except EmailError as e:
        return err(str(e), 503)
    except Exception as e:
        return safe_err(e)
    return ok({"message": FORGOT_MSG})


@router.post("/reset-password")
def reset(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    try:
        with transaction(db):
            reset_password(db, payload.token, payload.new_password)
    except Exception as e:
        return safe_err(e)
    return ok({"message": "Password updated"})
