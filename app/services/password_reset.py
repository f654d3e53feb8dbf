# FILE: app/services/password_reset.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.emailer import send_email
from app.core.security import hash_password
from app.models.password_reset import PasswordResetToken
from app.models.user import User
from app.services.errors import InvalidInput

logger = logging.getLogger(__name__)

MIN_PASSWORD_LEN = 6


def reset_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/resetar-senha?token={token}"


def issue_reset_token(db: Session, user: User) -> PasswordResetToken:
    # older unused tokens for the same user stop working
    db.query(PasswordResetToken).filter(
        PasswordResetToken.user_id == user.id,
        PasswordResetToken.used.is_(False),
    ).update({PasswordResetToken.used: True}, synchronize_session=False)

    row = PasswordResetToken(
        user_id=user.id,
        token=secrets.token_urlsafe(48),
        expires_at=PasswordResetToken.expiry(settings.PASSWORD_RESET_EXPIRE_MINUTES),
    )
    db.add(row)
    db.flush()
    return row


def forgot_password(db: Session, email: Optional[str]) -> Optional[PasswordResetToken]:
    """
    Emails a reset link when the address belongs to an active user.
    Returns None otherwise; callers answer the same either way.
    """
    email = (email or "").strip().lower()
    if not email:
        raise InvalidInput("Email is required")

    user = db.query(User).filter(func.lower(User.email) == email).first()
    if not user or not user.is_active:
        logger.info("password reset requested for unknown/inactive email")
        return None

    row = issue_reset_token(db, user)
    minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
    send_email(
        to_email=user.email,
        subject=f"{settings.PROJECT_NAME} - Password reset",
        body=(
            f"Hello {user.name},\n\n"
            f"Use the link below to choose a new password:\n{reset_link(row.token)}\n\n"
            f"The link expires in {minutes} minutes. "
            "If you did not ask for this, ignore this email."
        ),
    )
    logger.info("password reset token issued user_id=%s", user.id)
    return row


def reset_password(db: Session, token: Optional[str], new_password: Optional[str]) -> User:
    token = (token or "").strip()
    if not token:
        raise InvalidInput("Token is required")
    if not new_password or len(new_password) < MIN_PASSWORD_LEN:
        raise InvalidInput(f"Password must have at least {MIN_PASSWORD_LEN} characters")

    row = (
        db.query(PasswordResetToken)
        .filter(PasswordResetToken.token == token)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not row or not row.is_usable(datetime.utcnow()):
        raise InvalidInput("Invalid or expired token")

    user = db.get(User, row.user_id)
    if not user or not user.is_active:
        raise InvalidInput("Invalid or expired token")

    user.password_hash = hash_password(new_password)
    row.used = True
    db.flush()
    logger.info("password reset completed user_id=%s", user.id)
    return user
