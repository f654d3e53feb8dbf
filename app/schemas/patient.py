# FILE: app/schemas/patient.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PatientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    cpf: str = Field(min_length=11, max_length=14)
    birth_date: date
    phone: str = Field(min_length=1, max_length=20)
    sus_card: str = Field(min_length=1, max_length=20)


class PatientUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=120)
    cpf: Optional[str] = Field(default=None, max_length=14)
    birth_date: Optional[date] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    sus_card: Optional[str] = Field(default=None, max_length=20)


class PatientOut(BaseModel):
    id: int
    name: str
    cpf: str
    birth_date: date
    phone: str
    sus_card: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PatientWithdrawalOut(BaseModel):
    id: int
    quantity: int
    lot_id: int
    batch_number: Optional[str] = None
    created_at: datetime


class PatientDetailOut(PatientOut):
    withdrawals: List[PatientWithdrawalOut] = []
