from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db.base import Base

MYSQL_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class Shift(Base):
    """Visit window offered to citizens (morning, afternoon ...)."""
    __tablename__ = "shifts"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(60), nullable=False, unique=True)


class PickupSchedule(Base):
    """
    A citizen asks staff to collect leftover / expired medication at home.
    `visited_by_id` stays NULL until a staff member marks the visit done.
    """
    __tablename__ = "pickup_schedules"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(120), nullable=False)
    address = Column(String(255), nullable=False)
    number = Column(String(20), nullable=False)
    district = Column(String(120), nullable=False)
    postal_code = Column(String(10), nullable=False)
    phone = Column(String(20), nullable=False)
    visit_date = Column(Date, nullable=False)

    photos = Column(JSON, nullable=True)  # list of stored file references
    maps_url = Column(String(500), nullable=True)

    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False, index=True)
    visited_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    visited_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    shift = relationship("Shift")
    visited_by = relationship("User")
