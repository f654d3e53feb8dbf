# FILE: app/schemas/withdrawal.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WithdrawalCreate(BaseModel):
    quantity: int = Field(gt=0)
    lot_id: int
    patient_id: int


class WithdrawalUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, gt=0)
    lot_id: Optional[int] = None
    patient_id: Optional[int] = None


class WithdrawalOut(BaseModel):
    id: int
    quantity: int
    lot_id: int
    batch_number: Optional[str] = None
    patient_id: int
    patient_name: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
