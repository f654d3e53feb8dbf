# FILE: app/schemas/medication.py
from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class MedicationCreate(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    active_ingredient: str = Field(min_length=1, max_length=255)


class MedicationUpdate(BaseModel):
    description: Optional[str] = Field(default=None, max_length=255)
    active_ingredient: Optional[str] = Field(default=None, max_length=255)


class MedicationOut(BaseModel):
    id: int
    description: str
    active_ingredient: str

    model_config = ConfigDict(from_attributes=True)


class DescriptionIn(BaseModel):
    """Pharmaceutical forms and medication types only carry a description."""
    description: str = Field(min_length=1, max_length=120)


class DescriptionOut(BaseModel):
    id: int
    description: str

    model_config = ConfigDict(from_attributes=True)
