# FILE: app/schemas/permission.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PermissionCreate(BaseModel):
    code: str
    label: str
    module: str


class PermissionOut(BaseModel):
    id: int
    code: str
    label: str
    module: str

    model_config = ConfigDict(from_attributes=True)


class ModuleCountOut(BaseModel):
    module: str
    count: int
