from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Enum, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class SolicitationStatus(str, enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED_FOR_WITHDRAWAL = "approved_for_withdrawal"
    WITHDRAWAL_COMPLETED = "withdrawal_completed"
    REFUSED = "refused"


# Forward-only lifecycle: pending -> approved -> completed, pending -> refused
SOLICITATION_TRANSITIONS: dict[SolicitationStatus, frozenset[SolicitationStatus]] = {
    SolicitationStatus.PENDING_APPROVAL: frozenset({
        SolicitationStatus.APPROVED_FOR_WITHDRAWAL,
        SolicitationStatus.REFUSED,
    }),
    SolicitationStatus.APPROVED_FOR_WITHDRAWAL: frozenset({
        SolicitationStatus.WITHDRAWAL_COMPLETED,
    }),
    SolicitationStatus.WITHDRAWAL_COMPLETED: frozenset(),
    SolicitationStatus.REFUSED: frozenset(),
}

# Once approved, the row backs a promise to the patient (or a real withdrawal)
UNDELETABLE_STATUSES = frozenset({
    SolicitationStatus.APPROVED_FOR_WITHDRAWAL,
    SolicitationStatus.WITHDRAWAL_COMPLETED,
})


def can_transition(current: SolicitationStatus, target: SolicitationStatus) -> bool:
    return target in SOLICITATION_TRANSITIONS[SolicitationStatus(current)]


class Solicitation(Base):
    """
    Patient request to withdraw medication from a lot, backed by a
    prescription photo. Stock is untouched until staff conclude it, which
    writes a Withdrawal.
    """
    __tablename__ = "solicitations"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_solicitations_quantity_pos"),
        Index("ix_solicitations_status_created", "status", "created_at"),
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

    # stored file reference (relative path under STORAGE_DIR)
    prescription_photo = Column(String(255), nullable=False)

    status = Column(
        Enum(
            SolicitationStatus,
            name="solicitation_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=SolicitationStatus.PENDING_APPROVAL,
    )
    refusal_reason = Column(String(500), nullable=True)

    # set when the donation is concluded
    withdrawal_id = Column(Integer, ForeignKey("withdrawals.id"), nullable=True)
    reviewed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lot = relationship("Lot", back_populates="solicitations")
    patient = relationship("Patient", back_populates="solicitations")
    withdrawal = relationship("Withdrawal")
    reviewed_by = relationship("User")
