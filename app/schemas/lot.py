# FILE: app/schemas/lot.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LotCreate(BaseModel):
    batch_number: str = Field(min_length=1, max_length=64)
    manufacture_date: date
    expiry_date: date
    quantity: int = Field(ge=0)
    medication_id: int
    form_id: int
    type_id: int

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.manufacture_date >= self.expiry_date:
            raise ValueError("manufacture_date must be before expiry_date")
        return self


class LotUpdate(BaseModel):
    # no quantity here: stock only moves through withdrawals
    model_config = ConfigDict(extra="forbid")

    batch_number: Optional[str] = Field(default=None, max_length=64)
    manufacture_date: Optional[date] = None
    expiry_date: Optional[date] = None
    medication_id: Optional[int] = None
    form_id: Optional[int] = None
    type_id: Optional[int] = None


class LotOut(BaseModel):
    id: int
    batch_number: str
    manufacture_date: date
    expiry_date: date
    quantity: int
    medication_id: int
    form_id: int
    type_id: int
    medication: Optional[str] = None
    active_ingredient: Optional[str] = None
    form: Optional[str] = None
    medication_type: Optional[str] = None
    created_at: datetime
    updated_at: datetime
