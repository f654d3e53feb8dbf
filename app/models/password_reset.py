# app/models/password_reset.py
from __future__ import annotations

from datetime import datetime, timedelta
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import Base


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    token = Column(String(128), unique=True, nullable=False)

    used = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")

    @staticmethod
    def expiry(minutes: int = 60) -> datetime:
        return datetime.utcnow() + timedelta(minutes=minutes)

    def is_usable(self, now: datetime | None = None) -> bool:
        now = now or datetime.utcnow()
        return not self.used and self.expires_at >= now
