from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class Lot(Base):
    """
    A received batch of one medication.

    `quantity` is the stock on hand. After creation it only moves through
    app.services.stock (withdrawals debit it, deleting / shrinking them
    credits it back).
    """
    __tablename__ = "lots"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_lots_quantity_nonneg"),
        CheckConstraint("manufacture_date < expiry_date", name="ck_lots_dates_order"),
        Index("ix_lots_expiry_qty", "expiry_date", "quantity"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    batch_number = Column(String(64), nullable=False, index=True)
    manufacture_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)

    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False, index=True)
    form_id = Column(Integer, ForeignKey("pharmaceutical_forms.id"), nullable=False, index=True)
    type_id = Column(Integer, ForeignKey("medication_types.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    medication = relationship("Medication", back_populates="lots")
    form = relationship("PharmaceuticalForm", back_populates="lots")
    medication_type = relationship("MedicationType", back_populates="lots")

    withdrawals = relationship("Withdrawal", back_populates="lot")
    solicitations = relationship("Solicitation", back_populates="lot")
