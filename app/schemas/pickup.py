# FILE: app/schemas/pickup.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShiftIn(BaseModel):
    description: str = Field(min_length=1, max_length=60)


class ShiftOut(BaseModel):
    id: int
    description: str

    model_config = ConfigDict(from_attributes=True)


class PickupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=120)
    address: Optional[str] = Field(default=None, max_length=255)
    number: Optional[str] = Field(default=None, max_length=20)
    district: Optional[str] = Field(default=None, max_length=120)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    phone: Optional[str] = Field(default=None, max_length=20)
    visit_date: Optional[date] = None
    maps_url: Optional[str] = Field(default=None, max_length=500)
    shift_id: Optional[int] = None


class PickupOut(BaseModel):
    id: int
    name: str
    address: str
    number: str
    district: str
    postal_code: str
    phone: str
    visit_date: date
    photos: List[str] = []
    photo_urls: List[str] = []
    maps_url: Optional[str] = None
    shift_id: int
    shift: Optional[str] = None
    visited_by_id: Optional[int] = None
    visited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
