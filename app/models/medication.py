from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from app.db.base import Base

MYSQL_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


# -------------------------
# Catalog masters
# -------------------------
class Medication(Base):
    __tablename__ = "medications"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(255), nullable=False)
    active_ingredient = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lots = relationship("Lot", back_populates="medication")


class PharmaceuticalForm(Base):
    """Tablet, capsule, syrup, ointment ..."""
    __tablename__ = "pharmaceutical_forms"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(120), nullable=False)

    lots = relationship("Lot", back_populates="form")


class MedicationType(Base):
    """Generic, reference, similar ..."""
    __tablename__ = "medication_types"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(120), nullable=False)

    lots = relationship("Lot", back_populates="medication_type")
