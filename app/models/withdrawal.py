from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from app.db.base import Base


class Withdrawal(Base):
    """
    Medication handed to a patient out of one lot. The lot was debited by
    `quantity` when this row was written.
    """
    __tablename__ = "withdrawals"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_withdrawals_quantity_pos"),
        Index("ix_withdrawals_lot_created", "lot_id", "created_at"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    quantity = Column(Integer, nullable=False)

    lot_id = Column(Integer, ForeignKey("lots.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lot = relationship("Lot", back_populates="withdrawals")
    patient = relationship("Patient", back_populates="withdrawals")
    user = relationship("User")
