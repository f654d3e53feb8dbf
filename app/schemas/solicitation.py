# FILE: app/schemas/solicitation.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.solicitation import SolicitationStatus


class RefuseIn(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class SolicitationOut(BaseModel):
    id: int
    quantity: int
    lot_id: int
    batch_number: Optional[str] = None
    patient_id: int
    patient_name: Optional[str] = None
    prescription_photo: str
    prescription_photo_url: Optional[str] = None
    status: SolicitationStatus
    refusal_reason: Optional[str] = None
    withdrawal_id: Optional[int] = None
    reviewed_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
